"""Retry policy validation errors."""


class RetryPolicyError(ValueError):
    """Base class for rejected retry policy settings."""

    pass


class InvalidDurationError(RetryPolicyError):
    """A duration is zero, negative or not a timedelta."""

    pass


class DelayOrderingError(RetryPolicyError):
    """Two durations are in the wrong order (e.g. delay >= max_delay)."""

    pass


class OutOfRangeError(RetryPolicyError):
    """A scalar setting (jitter factor, attempts, retries) is out of range."""

    pass


class BackoffFactorError(RetryPolicyError):
    """Backoff factor does not exceed 1.0."""

    pass


class BuilderConsumedError(RetryPolicyError):
    """The builder was used after build() handed off its config."""

    def __init__(self) -> None:
        super().__init__("Builder has already been built")
