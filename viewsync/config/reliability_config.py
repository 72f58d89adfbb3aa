# =============================================================================
# File: viewsync/config/reliability_config.py
# Description: Retry presets for document store transactions, blob storage
#              and push notifications
# =============================================================================

from functools import lru_cache
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import SettingsConfigDict

from viewsync.common.base.base_config import BaseConfig, BASE_CONFIG_DICT


class RetryConfig(BaseModel):
    """Retry configuration."""
    max_attempts: int = 3
    initial_delay_ms: int = 100
    max_delay_ms: int = 10000
    backoff_factor: float = 2.0
    jitter: bool = True
    jitter_type: str = "full"
    retry_condition: Optional[Callable[[Exception], bool]] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


class ReliabilitySettings(BaseConfig):
    """Global reliability settings loaded from environment."""

    model_config = SettingsConfigDict(
        **BASE_CONFIG_DICT,
        env_prefix='RELIABILITY_',
    )

    transaction_max_attempts: int = Field(default=5, description="Attempts per optimistic transaction")
    transaction_initial_delay_ms: int = Field(default=20)
    transaction_max_delay_ms: int = Field(default=1000)
    storage_max_attempts: int = Field(default=3)
    notification_max_attempts: int = Field(default=1, description="1 = fire once, no retry")


@lru_cache(maxsize=1)
def get_reliability_settings() -> ReliabilitySettings:
    """Get global reliability settings (cached)."""
    return ReliabilitySettings()


def reset_reliability_settings() -> None:
    """Reset settings singleton (for testing)."""
    get_reliability_settings.cache_clear()


class ReliabilityConfigs:
    """Pre-configured reliability settings for different services"""

    # =========================================================================
    # Document store
    # =========================================================================
    @staticmethod
    def transaction_retry() -> RetryConfig:
        """Optimistic transaction retry: short, jittered backoff between attempts"""
        settings = get_reliability_settings()
        return RetryConfig(
            max_attempts=settings.transaction_max_attempts,
            initial_delay_ms=settings.transaction_initial_delay_ms,
            max_delay_ms=settings.transaction_max_delay_ms,
            backoff_factor=2.0,
            jitter=True,
            jitter_type="full",
        )

    @staticmethod
    def pool_retry() -> RetryConfig:
        return RetryConfig(
            max_attempts=3,
            initial_delay_ms=200,
            max_delay_ms=5000,
            backoff_factor=2.0,
            jitter=True,
        )

    # =========================================================================
    # Blob storage
    # =========================================================================
    @staticmethod
    def storage_retry() -> RetryConfig:
        return RetryConfig(
            max_attempts=get_reliability_settings().storage_max_attempts,
            initial_delay_ms=100,
            max_delay_ms=2000,
            backoff_factor=2.0,
            jitter=True,
        )

    # =========================================================================
    # Push notifications
    # =========================================================================
    @staticmethod
    def notification_retry() -> RetryConfig:
        return RetryConfig(
            max_attempts=get_reliability_settings().notification_max_attempts,
            initial_delay_ms=100,
            max_delay_ms=1000,
            jitter=False,
        )
