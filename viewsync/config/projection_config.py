# =============================================================================
# File: viewsync/config/projection_config.py
# Description: Tuning for view projections and cascade deletion
# =============================================================================

from functools import lru_cache

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from viewsync.common.base.base_config import BaseConfig, BASE_CONFIG_DICT


class ProjectionConfig(BaseConfig):
    """Projection and cascade settings."""

    model_config = SettingsConfigDict(
        **BASE_CONFIG_DICT,
        env_prefix='VIEWSYNC_',
    )

    cascade_batch_size: int = Field(default=100, ge=1, le=500, description="Documents per delete batch")
    profile_propagation_page_size: int = Field(default=100, ge=1, description="Chat summaries per page")
    offline_status: str = Field(default="offline", description="Presence value that stamps last_seen_at")


@lru_cache(maxsize=1)
def get_projection_config() -> ProjectionConfig:
    """Get projection configuration singleton (cached)."""
    return ProjectionConfig()


def reset_projection_config() -> None:
    """Reset config singleton (for testing)."""
    get_projection_config.cache_clear()
