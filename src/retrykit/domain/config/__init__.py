"""Configuration models."""

from retrykit.domain.config.retry import RetryConfig
from retrykit.domain.config.settings import BackoffSettings, PolicySettings, RetrykitConfig

__all__ = [
    "RetryConfig",
    "BackoffSettings",
    "PolicySettings",
    "RetrykitConfig",
]
