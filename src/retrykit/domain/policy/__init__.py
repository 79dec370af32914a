"""Retry policy construction and validation."""

from retrykit.domain.policy.builder import RetryPolicyBuilder, check_consistency
from retrykit.domain.policy.errors import (
    BackoffFactorError,
    BuilderConsumedError,
    DelayOrderingError,
    InvalidDurationError,
    OutOfRangeError,
    RetryPolicyError,
)
from retrykit.domain.policy.policy import RetryPolicy

__all__ = [
    "RetryPolicy",
    "RetryPolicyBuilder",
    "check_consistency",
    "RetryPolicyError",
    "InvalidDurationError",
    "DelayOrderingError",
    "OutOfRangeError",
    "BackoffFactorError",
    "BuilderConsumedError",
]
