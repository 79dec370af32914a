"""Configuration manager for loading and validating .retrykit.yml"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from pydantic import ValidationError

from retrykit.domain.config import PolicySettings, RetrykitConfig
from retrykit.domain.config.settings import DEFAULT_POLICY
from retrykit.domain.policy import RetryPolicy, RetryPolicyError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".retrykit.yml"


class ConfigurationError(Exception):
    """Configuration validation error."""

    pass


class ConfigManager:
    """Manages retry policies from .retrykit.yml and environment variables

    Configuration priority:
    1. Default values (no retries, no delay)
    2. .retrykit.yml file (searched from current directory upwards)
    3. Environment variables (RETRYKIT_*), applied to the "default" policy

    Every policy is built with strict validation when the manager is created,
    so a bad file fails fast.
    """

    DEFAULT_CONFIG: Dict[str, Any] = {
        "policies": {
            DEFAULT_POLICY: {},
        },
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config manager

        Args:
            config_path: Path to .retrykit.yml (searches from current dir if None)

        Raises:
            ConfigurationError: If configuration validation fails
        """
        if isinstance(config_path, str):
            config_path = Path(config_path)
        self.config_path = config_path or self._find_config_file()
        try:
            self.config: RetrykitConfig = self._load_config()
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                msg = error["msg"]
                errors.append(f"  - {field}: {msg}")
            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(errors)
            ) from e
        self._check_policies()

    def _find_config_file(self) -> Optional[Path]:
        """Find .retrykit.yml starting from current directory

        Returns:
            Path to config file or None if not found
        """
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            config_file = parent / CONFIG_FILE_NAME
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return config_file
        logger.debug(f"No {CONFIG_FILE_NAME} found, using defaults")
        return None

    def _load_config(self) -> RetrykitConfig:
        """Load configuration from file and validate with Pydantic

        Returns:
            Validated RetrykitConfig instance

        Raises:
            ValidationError: If configuration shape is invalid
            ConfigurationError: If the file cannot be read or parsed
        """
        config_dict = copy.deepcopy(self.DEFAULT_CONFIG)

        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(
                    f"Failed to load config from {self.config_path}: {e}"
                ) from e
            if not isinstance(file_config, dict):
                raise ConfigurationError(
                    f"Config file {self.config_path} must contain a mapping"
                )
            config_dict = self._merge_config(config_dict, file_config)
            logger.info(f"Loaded configuration from {self.config_path}")

        config_dict = self._apply_env_overrides(config_dict)

        return RetrykitConfig(**config_dict)

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries

        Args:
            base: Base configuration
            override: Override configuration

        Returns:
            Merged configuration
        """
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to the default policy

        Args:
            config: Configuration dictionary

        Returns:
            Configuration with env overrides applied
        """
        policies = config.get("policies")
        if not isinstance(policies, dict):
            return config
        default = policies.get(DEFAULT_POLICY)
        if default is None:
            default = policies[DEFAULT_POLICY] = {}
        if not isinstance(default, dict):
            return config

        max_attempts = self._read_env("RETRYKIT_MAX_ATTEMPTS", int)
        if max_attempts is not None:
            default.pop("max_retries", None)
            default["max_attempts"] = max_attempts

        max_retries = self._read_env("RETRYKIT_MAX_RETRIES", int)
        if max_retries is not None:
            default.pop("max_attempts", None)
            default["max_retries"] = max_retries

        max_duration = self._read_env("RETRYKIT_MAX_DURATION", float)
        if max_duration is not None:
            default["max_duration"] = max_duration

        return config

    @staticmethod
    def _read_env(name: str, convert: Callable[[str], Any]) -> Any:
        raw = os.getenv(name)
        if not raw:
            return None
        try:
            value = convert(raw)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from e
        logger.debug(f"Environment override {name}={value}")
        return value

    def _check_policies(self) -> None:
        """Build every policy once so invalid values fail at load time

        Raises:
            ConfigurationError: If any policy is rejected by the builder
        """
        errors = []
        for name, settings in self.config.policies.items():
            try:
                settings.to_policy()
            except RetryPolicyError as e:
                errors.append(f"  - policies.{name}: {e}")
        if errors:
            raise ConfigurationError("Retry policy validation failed:\n" + "\n".join(errors))

    def policy_names(self) -> List[str]:
        """Get names of all configured policies

        Returns:
            Policy names in file order
        """
        return list(self.config.policies)

    def get_policy_settings(self, name: str = DEFAULT_POLICY) -> PolicySettings:
        """Get raw settings of a named policy

        Raises:
            KeyError: If no policy has that name
        """
        try:
            return self.config.policies[name]
        except KeyError:
            raise KeyError(f"Unknown retry policy: {name}") from None

    def get_policy(self, name: str = DEFAULT_POLICY) -> RetryPolicy:
        """Build a named retry policy

        Each call returns a new RetryPolicy, so changes an executor makes to
        its config do not leak into other callers.

        Args:
            name: Policy name

        Returns:
            Validated retry policy

        Raises:
            KeyError: If no policy has that name
        """
        return self.get_policy_settings(name).to_policy()

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key (supports dot notation)

        Args:
            key: Configuration key (e.g., "policies.default.max_attempts")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self.config.model_dump()
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value
