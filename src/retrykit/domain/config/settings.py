"""Config file models for named retry policies."""

from datetime import timedelta
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator

from retrykit.domain.policy.policy import RetryPolicy

DEFAULT_POLICY = "default"


class BackoffSettings(BaseModel):
    """Exponential backoff section.

    Attributes:
        delay: Initial delay
        max_delay: Backoff cap
        factor: Growth rate per retry
    """

    delay: timedelta
    max_delay: timedelta
    factor: float = 2.0

    model_config = ConfigDict(extra="forbid")


class PolicySettings(BaseModel):
    """One retry policy as written in a config file.

    Durations accept seconds (int/float) or ISO 8601 strings ("PT1.5S").
    Only the shape is checked here; value rules are enforced by
    RetryPolicyBuilder when the policy is built.

    Attributes:
        delay: Fixed delay between attempts
        delay_min: Lower bound of a random delay (requires delay_max)
        delay_max: Upper bound of a random delay (requires delay_min)
        backoff: Exponential backoff settings
        jitter: Fixed jitter duration
        jitter_factor: Proportional jitter (0.0-1.0)
        max_attempts: Total attempts (-1 = unlimited)
        max_retries: Retries after the first attempt (-1 = unlimited)
        max_duration: Wall-clock ceiling for the retry sequence
    """

    delay: Optional[timedelta] = None
    delay_min: Optional[timedelta] = None
    delay_max: Optional[timedelta] = None
    backoff: Optional[BackoffSettings] = None
    jitter: Optional[timedelta] = None
    jitter_factor: Optional[float] = None
    max_attempts: Optional[StrictInt] = None
    max_retries: Optional[StrictInt] = None
    max_duration: Optional[timedelta] = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def check_exclusive_fields(self) -> "PolicySettings":
        modes = [
            name
            for name, is_set in (
                ("delay", self.delay is not None),
                ("delay_min/delay_max", self.delay_min is not None or self.delay_max is not None),
                ("backoff", self.backoff is not None),
            )
            if is_set
        ]
        if len(modes) > 1:
            raise ValueError(f"only one delay mode may be set, got: {', '.join(modes)}")
        if (self.delay_min is None) != (self.delay_max is None):
            raise ValueError("delay_min and delay_max must be set together")
        if self.jitter is not None and self.jitter_factor is not None:
            raise ValueError("jitter and jitter_factor are mutually exclusive")
        if self.max_attempts is not None and self.max_retries is not None:
            raise ValueError("max_attempts and max_retries are mutually exclusive")
        return self

    def to_policy(self) -> RetryPolicy:
        """Build a strictly validated RetryPolicy from these settings.

        Settings are applied so that every setter sees the fields it is
        checked against: max_duration and jitter first, then the delay.

        Raises:
            RetryPolicyError: If any value is rejected
        """
        builder = RetryPolicy.builder()
        if self.max_duration is not None:
            builder.with_max_duration(self.max_duration)
        if self.jitter is not None:
            builder.with_jitter_duration(self.jitter)

        if self.backoff is not None:
            builder.with_backoff(self.backoff.delay, self.backoff.max_delay, self.backoff.factor)
        elif self.delay is not None:
            builder.with_delay(self.delay)
        elif self.delay_min is not None:
            builder.with_delay_min_max(self.delay_min, self.delay_max)

        if self.jitter_factor is not None:
            builder.with_jitter(self.jitter_factor)
        if self.max_attempts is not None:
            builder.with_max_attempts(self.max_attempts)
        elif self.max_retries is not None:
            builder.with_max_retries(self.max_retries)

        return builder.build(strict=True)


class RetrykitConfig(BaseModel):
    """Root of a .retrykit.yml file.

    Attributes:
        policies: Retry policies by name; a "default" policy always exists
    """

    policies: Dict[str, PolicySettings] = Field(default_factory=dict)

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "policies": {
                    "default": {
                        "backoff": {"delay": 1.0, "max_delay": 10.0, "factor": 2.0},
                        "jitter_factor": 0.5,
                        "max_attempts": 5,
                        "max_duration": 30.0,
                    },
                    "polling": {
                        "delay_min": 0.5,
                        "delay_max": 2.0,
                        "max_retries": -1,
                    },
                }
            }
        },
    )

    @model_validator(mode="after")
    def ensure_default_policy(self) -> "RetrykitConfig":
        self.policies.setdefault(DEFAULT_POLICY, PolicySettings())
        return self
