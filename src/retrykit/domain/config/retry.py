"""Retry configuration record."""

from datetime import timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RetryConfig(BaseModel):
    """Retry parameters read by a retry executor.

    Plain data holder: setters assign without checking anything. Use
    RetryPolicyBuilder to get a validated instance.

    Attributes:
        delay: Fixed delay, or initial delay when backing off
        delay_min: Lower bound of a random per-attempt delay
        delay_max: Upper bound of a random per-attempt delay
        delay_factor: Backoff growth rate (1.0 = no growth)
        max_delay: Backoff cap
        jitter: Fixed jitter duration
        jitter_factor: Proportional jitter (0.0-1.0)
        max_duration: Wall-clock ceiling for the whole retry sequence
        max_retries: Retries after the first attempt (-1 = unlimited)
    """

    delay: Optional[timedelta] = None
    delay_min: Optional[timedelta] = None
    delay_max: Optional[timedelta] = None
    delay_factor: float = 1.0
    max_delay: Optional[timedelta] = None
    jitter: Optional[timedelta] = None
    jitter_factor: float = 0.0
    max_duration: Optional[timedelta] = None
    max_retries: int = 0

    model_config = ConfigDict(extra="forbid")

    def with_delay(self, delay: Optional[timedelta]) -> "RetryConfig":
        self.delay = delay
        return self

    def with_delay_min(self, delay: Optional[timedelta]) -> "RetryConfig":
        self.delay_min = delay
        return self

    def with_delay_max(self, delay: Optional[timedelta]) -> "RetryConfig":
        self.delay_max = delay
        return self

    def with_delay_factor(self, factor: float) -> "RetryConfig":
        self.delay_factor = factor
        return self

    def with_max_delay(self, delay: Optional[timedelta]) -> "RetryConfig":
        self.max_delay = delay
        return self

    def with_jitter(self, jitter: Optional[timedelta]) -> "RetryConfig":
        self.jitter = jitter
        return self

    def with_jitter_factor(self, factor: float) -> "RetryConfig":
        self.jitter_factor = factor
        return self

    def with_max_duration(self, duration: Optional[timedelta]) -> "RetryConfig":
        self.max_duration = duration
        return self

    def with_max_retries(self, retries: int) -> "RetryConfig":
        self.max_retries = retries
        return self
