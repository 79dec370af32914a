"""Tests for configuration validation with Pydantic."""

import tempfile
from datetime import timedelta
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from retrykit.domain.config import BackoffSettings, PolicySettings, RetrykitConfig
from retrykit.domain.policy import DelayOrderingError, OutOfRangeError, RetryPolicy
from retrykit.infrastructure.config.config_manager import ConfigManager, ConfigurationError


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep config discovery and env overrides out of the real environment"""
    monkeypatch.chdir(tmp_path)
    for name in ("RETRYKIT_MAX_ATTEMPTS", "RETRYKIT_MAX_RETRIES", "RETRYKIT_MAX_DURATION"):
        monkeypatch.delenv(name, raising=False)


def write_config(path: Path, data: dict) -> Path:
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f)
    return path


class TestPolicySettingsValidation:
    """Tests for PolicySettings shape validation."""

    def test_durations_parsed_from_seconds(self):
        """Test numbers are read as seconds"""
        settings = PolicySettings(delay=1.5, max_duration=30)
        assert settings.delay == timedelta(seconds=1.5)
        assert settings.max_duration == timedelta(seconds=30)

    def test_durations_parsed_from_iso(self):
        """Test ISO 8601 durations"""
        settings = PolicySettings(delay="PT2S")
        assert settings.delay == timedelta(seconds=2)

    def test_unknown_field_rejected(self):
        """Test unknown fields are rejected"""
        with pytest.raises(ValidationError, match="extra"):
            PolicySettings(retries=3)

    def test_multiple_delay_modes_rejected(self):
        """Test only one delay mode may be set"""
        with pytest.raises(ValidationError, match="only one delay mode"):
            PolicySettings(delay=1, backoff={"delay": 1, "max_delay": 10})

    def test_half_range_rejected(self):
        """Test delay_min requires delay_max"""
        with pytest.raises(ValidationError, match="set together"):
            PolicySettings(delay_min=1)

    def test_both_jitters_rejected(self):
        """Test jitter and jitter_factor are exclusive"""
        with pytest.raises(ValidationError, match="jitter"):
            PolicySettings(jitter=0.1, jitter_factor=0.5)

    def test_attempts_and_retries_rejected(self):
        """Test max_attempts and max_retries are exclusive"""
        with pytest.raises(ValidationError, match="mutually exclusive"):
            PolicySettings(max_attempts=3, max_retries=2)

    @pytest.mark.parametrize("field", ["max_attempts", "max_retries"])
    def test_bool_counts_rejected(self, field):
        """Test YAML booleans are not read as counts"""
        with pytest.raises(ValidationError, match=field):
            PolicySettings(**{field: True})

    def test_backoff_default_factor(self):
        """Test backoff factor defaults to 2.0"""
        assert BackoffSettings(delay=1, max_delay=10).factor == 2.0


class TestPolicySettingsToPolicy:
    """Tests for building policies from settings."""

    def test_empty_settings_give_defaults(self):
        """Test empty settings build the default policy"""
        assert PolicySettings().to_policy().get_config() == RetryPolicy.of_defaults().get_config()

    def test_backoff_policy(self):
        """Test a full backoff policy"""
        policy = PolicySettings(
            backoff={"delay": 1, "max_delay": 10},
            jitter_factor=0.5,
            max_attempts=5,
            max_duration=30,
        ).to_policy()

        assert policy.delay == timedelta(seconds=1)
        assert policy.max_delay == timedelta(seconds=10)
        assert policy.delay_factor == 2.0
        assert policy.jitter_factor == 0.5
        assert policy.max_retries == 4
        assert policy.max_duration == timedelta(seconds=30)

    def test_random_delay_with_jitter_duration(self):
        """Test jitter duration is applied before the delay range"""
        policy = PolicySettings(delay_min=1, delay_max=3, jitter=0.5, max_retries=-1).to_policy()
        assert policy.jitter == timedelta(seconds=0.5)
        assert policy.delay_min == timedelta(seconds=1)
        assert policy.is_unlimited

    def test_delay_not_below_max_duration_rejected(self):
        """Test max_duration is checked whatever the key order in the file"""
        with pytest.raises(DelayOrderingError):
            PolicySettings(delay_min=1, delay_max=60, max_duration=30).to_policy()

    def test_backoff_cap_above_max_duration_rejected(self):
        """Test strict build catches a cap above the time budget"""
        with pytest.raises(DelayOrderingError, match="maxDelay"):
            PolicySettings(backoff={"delay": 1, "max_delay": 60}, max_duration=30).to_policy()

    def test_zero_attempts_rejected(self):
        """Test builder rules apply to file values"""
        with pytest.raises(OutOfRangeError):
            PolicySettings(max_attempts=0).to_policy()


class TestRetrykitConfigValidation:
    """Tests for RetrykitConfig validation."""

    def test_default_policy_always_present(self):
        """Test a default policy is added when missing"""
        config = RetrykitConfig(policies={"polling": {"delay": 1}})
        assert set(config.policies) == {"polling", "default"}

    def test_unknown_field_rejected(self):
        """Test unknown fields are rejected"""
        with pytest.raises(ValidationError, match="extra"):
            RetrykitConfig(unknown_field="value")

    def test_nested_validation(self):
        """Test nested validation works"""
        with pytest.raises(ValidationError, match="max_attempts"):
            RetrykitConfig(policies={"default": {"max_attempts": "many"}})


class TestConfigManagerValidation:
    """Tests for ConfigManager validation."""

    def test_load_valid_config_from_file(self, tmp_path):
        """Test loading valid configuration from file"""
        config_path = write_config(
            tmp_path / "retry.yml",
            {
                "policies": {
                    "default": {"delay": 1, "max_attempts": 3},
                    "polling": {"delay_min": 0.5, "delay_max": 2, "max_retries": -1},
                }
            },
        )

        manager = ConfigManager(config_path=config_path)
        assert manager.policy_names() == ["default", "polling"]
        assert manager.get_policy().max_retries == 2
        assert manager.get_policy("polling").is_unlimited

    def test_load_config_from_string_path(self, tmp_path):
        """Test config path given as string"""
        config_path = write_config(tmp_path / "retry.yml", {"policies": {"default": {"max_retries": 1}}})
        manager = ConfigManager(config_path=str(config_path))
        assert manager.get_policy().max_retries == 1

    def test_config_file_discovered_from_cwd(self, tmp_path, monkeypatch):
        """Test .retrykit.yml is found in a parent directory"""
        write_config(tmp_path / ".retrykit.yml", {"policies": {"default": {"max_retries": 5}}})
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        manager = ConfigManager()
        assert manager.config_path == tmp_path / ".retrykit.yml"
        assert manager.get_policy().max_retries == 5

    def test_load_invalid_shape_raises_error(self):
        """Test loading invalid configuration raises error"""
        config_data = {"policies": {"default": {"delay": 1, "delay_min": 1, "delay_max": 2}}}

        with tempfile.NamedTemporaryFile(mode="w", suffix=".yml", delete=False) as f:
            yaml.dump(config_data, f)
            config_path = f.name

        try:
            with pytest.raises(ConfigurationError, match="policies.default"):
                ConfigManager(config_path=config_path)
        finally:
            Path(config_path).unlink()

    def test_load_invalid_values_raises_error(self, tmp_path):
        """Test builder rejections are reported per policy"""
        config_path = write_config(
            tmp_path / "retry.yml",
            {"policies": {"fast": {"jitter_factor": 1.5}}},
        )

        with pytest.raises(ConfigurationError, match="policies.fast: jitterFactor") as exc_info:
            ConfigManager(config_path=config_path)
        assert isinstance(exc_info.value, ConfigurationError)

    def test_malformed_yaml_raises_error(self, tmp_path):
        """Test YAML syntax errors"""
        config_path = tmp_path / "retry.yml"
        config_path.write_text("policies: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Failed to load config"):
            ConfigManager(config_path=config_path)

    def test_non_mapping_yaml_raises_error(self, tmp_path):
        """Test a YAML list at top level"""
        config_path = tmp_path / "retry.yml"
        config_path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            ConfigManager(config_path=config_path)

    def test_default_config_is_valid(self):
        """Test default configuration is valid"""
        manager = ConfigManager()
        assert manager.config_path is None
        assert isinstance(manager.config, RetrykitConfig)
        assert manager.get_policy().get_config() == RetryPolicy.of_defaults().get_config()

    def test_unknown_policy(self):
        """Test unknown policy names raise KeyError"""
        manager = ConfigManager()
        with pytest.raises(KeyError, match="missing"):
            manager.get_policy("missing")

    def test_get_policy_returns_fresh_policy(self):
        """Test callers do not share a mutable config"""
        manager = ConfigManager()
        manager.get_policy().get_config().with_max_retries(9)
        assert manager.get_policy().max_retries == 0

    def test_get_dot_notation(self, tmp_path):
        """Test dotted key lookup"""
        config_path = write_config(tmp_path / "retry.yml", {"policies": {"default": {"max_attempts": 4}}})
        manager = ConfigManager(config_path=config_path)
        assert manager.get("policies.default.max_attempts") == 4
        assert manager.get("policies.nope", "fallback") == "fallback"

    def test_env_overrides_work(self, monkeypatch):
        """Test environment variable overrides"""
        monkeypatch.setenv("RETRYKIT_MAX_ATTEMPTS", "4")
        monkeypatch.setenv("RETRYKIT_MAX_DURATION", "45")

        manager = ConfigManager()
        policy = manager.get_policy()
        assert policy.max_retries == 3
        assert policy.max_duration == timedelta(seconds=45)

    def test_env_retries_replace_file_attempts(self, tmp_path, monkeypatch):
        """Test RETRYKIT_MAX_RETRIES wins over max_attempts from the file"""
        config_path = write_config(tmp_path / "retry.yml", {"policies": {"default": {"max_attempts": 10}}})
        monkeypatch.setenv("RETRYKIT_MAX_RETRIES", "2")

        manager = ConfigManager(config_path=config_path)
        assert manager.get_policy().max_retries == 2

    def test_invalid_env_value(self, monkeypatch):
        """Test non-numeric env values"""
        monkeypatch.setenv("RETRYKIT_MAX_RETRIES", "lots")
        with pytest.raises(ConfigurationError, match="RETRYKIT_MAX_RETRIES"):
            ConfigManager()
