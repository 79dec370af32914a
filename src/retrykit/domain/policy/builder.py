"""Fluent builder that validates retry settings as they are applied.

Each setter checks the new value against the fields already present in the
config and only then applies it. Checks are local to the call: a setter does
not look at fields set after it, so a later call can leave the config
inconsistent with an earlier one. Pass strict=True to build() to re-check
every invariant once all fields are in place.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional

from retrykit.domain.config.retry import RetryConfig
from retrykit.domain.policy.errors import (
    BackoffFactorError,
    BuilderConsumedError,
    DelayOrderingError,
    InvalidDurationError,
    OutOfRangeError,
    RetryPolicyError,
)
from retrykit.domain.policy.policy import RetryPolicy

logger = logging.getLogger(__name__)

SIMPLE_BACKOFF_FACTOR = 2.0


def _rejected(error: RetryPolicyError) -> RetryPolicyError:
    logger.debug(f"Rejected retry setting: {error}")
    return error


def _require_duration(value: Any, message: str) -> timedelta:
    """Return value if it is a strictly positive timedelta."""
    if not isinstance(value, timedelta) or value <= timedelta(0):
        raise _rejected(InvalidDurationError(message))
    return value


def _require_count(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise _rejected(OutOfRangeError(f"{name} must be an integer"))
    return value


def _require_number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _rejected(OutOfRangeError(f"{name} must be a number"))
    return float(value)


def check_consistency(config: RetryConfig) -> None:
    """Check every cross-field invariant of a config, regardless of set order.

    Raises:
        RetryPolicyError: On the first violated invariant
    """
    durations = {
        "delay": config.delay,
        "delayMin": config.delay_min,
        "delayMax": config.delay_max,
        "maxDelay": config.max_delay,
        "jitter": config.jitter,
        "maxDuration": config.max_duration,
    }
    for name, value in durations.items():
        if value is not None:
            _require_duration(value, f"{name} must be greater than zero")

    if not 0.0 <= config.jitter_factor <= 1.0:
        raise _rejected(OutOfRangeError("jitterFactor must be >= 0 and <= 1"))
    if not config.delay_factor >= 0.0:
        raise _rejected(BackoffFactorError("Delay factor must not be negative"))
    if config.max_retries < -1:
        raise _rejected(OutOfRangeError("maxRetries must be >= -1"))

    if (config.delay_min is None) != (config.delay_max is None):
        raise _rejected(DelayOrderingError("delayMin and delayMax must be set together"))
    if config.delay_min is not None and config.delay_min >= config.delay_max:
        raise _rejected(DelayOrderingError("delayMin must be less than delayMax"))

    if config.max_delay is not None:
        if config.delay is not None and config.delay >= config.max_delay:
            raise _rejected(DelayOrderingError("Delay must be less than the max delay"))
        if not config.delay_factor > 1.0:
            raise _rejected(BackoffFactorError("Delay factor must be greater than 1"))

    if config.max_duration is not None:
        if config.delay is not None and config.delay >= config.max_duration:
            raise _rejected(DelayOrderingError("Delay must be less than the max duration"))
        if config.max_delay is not None and config.max_delay >= config.max_duration:
            raise _rejected(DelayOrderingError("maxDelay must be less than the max duration"))
        if config.delay_min is not None and config.delay_min >= config.max_duration:
            raise _rejected(DelayOrderingError("maxDuration must be greater than the delay"))
        if config.delay_max is not None and config.delay_max >= config.max_duration:
            raise _rejected(DelayOrderingError("delayMax must be less than the max duration"))

    if config.jitter is not None:
        if config.delay is not None and config.delay < config.jitter:
            raise _rejected(
                DelayOrderingError("Delay must be greater than or equal to the jitter duration")
            )
        if config.delay_min is not None and config.delay_min < config.jitter:
            raise _rejected(
                DelayOrderingError("delayMin must be greater than or equal to the jitter duration")
            )


class RetryPolicyBuilder:
    """Builds a RetryPolicy one validated setting at a time.

    Every setter returns the builder so calls can be chained. A rejected
    setting raises a RetryPolicyError and leaves the config unchanged.
    Once build() has run, the builder cannot be used again.

    Example:
        policy = (
            RetryPolicy.builder()
            .with_simple_backoff(timedelta(seconds=1), timedelta(seconds=10))
            .with_jitter(0.5)
            .with_max_attempts(5)
            .build()
        )
    """

    def __init__(self) -> None:
        self._config: Optional[RetryConfig] = RetryConfig()

    @property
    def config(self) -> RetryConfig:
        """Config under construction."""
        if self._config is None:
            raise BuilderConsumedError()
        return self._config

    def _check_delay(self, delay: timedelta) -> None:
        """Checks shared by the fixed and backoff delay setters."""
        config = self.config
        if config.max_duration is not None and delay >= config.max_duration:
            raise _rejected(DelayOrderingError("Delay must be less than the max duration"))
        if config.jitter is not None and delay < config.jitter:
            raise _rejected(
                DelayOrderingError("Delay must be greater than or equal to the jitter duration")
            )

    def with_simple_backoff(self, delay: timedelta, max_delay: timedelta) -> RetryPolicyBuilder:
        """Exponential backoff doubling from delay up to max_delay."""
        return self.with_backoff(delay, max_delay, SIMPLE_BACKOFF_FACTOR)

    def with_backoff(
        self, delay: timedelta, max_delay: timedelta, delay_factor: float
    ) -> RetryPolicyBuilder:
        """Backoff growing from delay by delay_factor, capped at max_delay.

        Args:
            delay: Initial delay
            max_delay: Backoff cap
            delay_factor: Growth rate, must be greater than 1

        Returns:
            This builder

        Raises:
            RetryPolicyError: If any check fails
        """
        delay = _require_duration(delay, "The delay must be greater than zero")
        self._check_delay(delay)
        max_delay = _require_duration(max_delay, "The max delay must be greater than zero")
        if delay >= max_delay:
            raise _rejected(DelayOrderingError("Delay must be less than the max delay"))
        delay_factor = _require_number(delay_factor, "Delay factor")
        # NaN fails this comparison too
        if not delay_factor > 1.0:
            raise _rejected(BackoffFactorError("Delay factor must be greater than 1"))

        self.config.with_delay(delay).with_max_delay(max_delay).with_delay_factor(
            delay_factor
        ).with_delay_min(None).with_delay_max(None)
        logger.debug(f"Backoff set: delay={delay}, max_delay={max_delay}, factor={delay_factor}")
        return self

    def with_delay(self, delay: timedelta) -> RetryPolicyBuilder:
        """Fixed delay between attempts; clears backoff and random delays."""
        delay = _require_duration(delay, "Delay must be greater than zero")
        self._check_delay(delay)

        self.config.with_delay(delay).with_max_delay(None).with_delay_min(None).with_delay_max(None)
        logger.debug(f"Fixed delay set: {delay}")
        return self

    def with_delay_min_max(self, delay_min: timedelta, delay_max: timedelta) -> RetryPolicyBuilder:
        """Random delay between delay_min and delay_max; clears other delays.

        Raises:
            RetryPolicyError: If either bound is not positive, the bounds are
                not ordered, or they conflict with max_duration or jitter
        """
        config = self.config
        delay_min = _require_duration(delay_min, "delayMin must be greater than 0")
        delay_max = _require_duration(delay_max, "delayMax must be greater than 0")
        if delay_min >= delay_max:
            raise _rejected(DelayOrderingError("delayMin must be less than delayMax"))
        if config.max_duration is not None and delay_max >= config.max_duration:
            raise _rejected(DelayOrderingError("delayMax must be less than the max duration"))
        if config.jitter is not None and delay_min < config.jitter:
            raise _rejected(
                DelayOrderingError("delayMin must be greater than or equal to the jitter duration")
            )

        config.with_delay_min(delay_min).with_delay_max(delay_max).with_max_delay(None).with_delay(
            None
        )
        logger.debug(f"Random delay set: {delay_min} - {delay_max}")
        return self

    def with_jitter(self, jitter_factor: float) -> RetryPolicyBuilder:
        """Proportional jitter; replaces any fixed jitter duration."""
        jitter_factor = _require_number(jitter_factor, "jitterFactor")
        if not 0.0 <= jitter_factor <= 1.0:
            raise _rejected(OutOfRangeError("jitterFactor must be >= 0 and <= 1"))

        self.config.with_jitter_factor(jitter_factor).with_jitter(None)
        logger.debug(f"Jitter factor set: {jitter_factor}")
        return self

    def with_jitter_duration(self, jitter: timedelta) -> RetryPolicyBuilder:
        """Fixed jitter duration; replaces any jitter factor.

        The jitter may not exceed the delay (or delayMin) already set.
        """
        config = self.config
        jitter = _require_duration(jitter, "jitter must be greater than 0")
        if config.delay is not None and jitter > config.delay:
            raise _rejected(DelayOrderingError("jitter must be less than or equal to the delay"))
        if config.delay_min is not None and jitter > config.delay_min:
            raise _rejected(DelayOrderingError("jitter must be less than or equal to delayMin"))

        config.with_jitter(jitter).with_jitter_factor(0.0)
        logger.debug(f"Jitter duration set: {jitter}")
        return self

    def with_max_attempts(self, max_attempts: int) -> RetryPolicyBuilder:
        """Total attempts including the first one; -1 means unlimited."""
        max_attempts = _require_count(max_attempts, "maxAttempts")
        if max_attempts == 0:
            raise _rejected(OutOfRangeError("maxAttempts cannot be 0"))
        if max_attempts < -1:
            raise _rejected(OutOfRangeError("maxAttempts must be >= -1"))

        max_retries = -1 if max_attempts == -1 else max_attempts - 1
        self.config.with_max_retries(max_retries)
        logger.debug(f"Max attempts set: {max_attempts} (max_retries={max_retries})")
        return self

    def with_max_duration(self, max_duration: timedelta) -> RetryPolicyBuilder:
        """Wall-clock budget for the whole retry sequence.

        Must exceed the delayMin and delayMax already set. A fixed or
        backoff delay is only checked against it by build(strict=True).
        """
        config = self.config
        max_duration = _require_duration(max_duration, "maxDuration must be greater than zero")
        if config.delay_min is not None and max_duration <= config.delay_min:
            raise _rejected(DelayOrderingError("maxDuration must be greater than the delay"))
        if config.delay_max is not None and max_duration <= config.delay_max:
            raise _rejected(
                DelayOrderingError("maxDuration must be greater than the max random delay")
            )

        config.with_max_duration(max_duration)
        logger.debug(f"Max duration set: {max_duration}")
        return self

    def with_max_retries(self, max_retries: int) -> RetryPolicyBuilder:
        """Retries after the first attempt; -1 means unlimited."""
        max_retries = _require_count(max_retries, "maxRetries")
        if max_retries < -1:
            raise _rejected(OutOfRangeError("maxRetries must be >= -1"))

        self.config.with_max_retries(max_retries)
        logger.debug(f"Max retries set: {max_retries}")
        return self

    def build(self, strict: bool = False) -> RetryPolicy:
        """Hand the config off to a RetryPolicy.

        Args:
            strict: Re-check every cross-field invariant before handing off

        Returns:
            RetryPolicy holding the config

        Raises:
            RetryPolicyError: If strict and the config is inconsistent, or if
                the builder was already built
        """
        config = self.config
        if strict:
            check_consistency(config)
        self._config = None
        return RetryPolicy(config)
