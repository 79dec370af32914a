"""Retry policy handle passed to retry executors."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Optional

from retrykit.domain.config.retry import RetryConfig

if TYPE_CHECKING:
    from retrykit.domain.policy.builder import RetryPolicyBuilder


class RetryPolicy:
    """Holds a RetryConfig produced by RetryPolicyBuilder.

    The properties give read-only access to the settings. get_config()
    returns the live config for executors that need to adjust it; changes
    made that way are not validated.
    """

    def __init__(self, config: Optional[RetryConfig] = None):
        self._config = config if config is not None else RetryConfig()

    @staticmethod
    def builder() -> RetryPolicyBuilder:
        """Start building a new policy."""
        from retrykit.domain.policy.builder import RetryPolicyBuilder

        return RetryPolicyBuilder()

    @classmethod
    def of_defaults(cls) -> RetryPolicy:
        """Policy with no retries and no delay."""
        return cls.builder().build()

    def get_config(self) -> RetryConfig:
        return self._config

    @property
    def delay(self) -> Optional[timedelta]:
        return self._config.delay

    @property
    def delay_min(self) -> Optional[timedelta]:
        return self._config.delay_min

    @property
    def delay_max(self) -> Optional[timedelta]:
        return self._config.delay_max

    @property
    def delay_factor(self) -> float:
        return self._config.delay_factor

    @property
    def max_delay(self) -> Optional[timedelta]:
        return self._config.max_delay

    @property
    def jitter(self) -> Optional[timedelta]:
        return self._config.jitter

    @property
    def jitter_factor(self) -> float:
        return self._config.jitter_factor

    @property
    def max_duration(self) -> Optional[timedelta]:
        return self._config.max_duration

    @property
    def max_retries(self) -> int:
        return self._config.max_retries

    @property
    def is_unlimited(self) -> bool:
        """True if retries never run out on their own."""
        return self._config.max_retries == -1

    def __repr__(self) -> str:
        return f"RetryPolicy({self._config!r})"
