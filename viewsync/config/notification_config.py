# =============================================================================
# File: viewsync/config/notification_config.py
# Description: Firebase Cloud Messaging (HTTP v1) configuration
# =============================================================================

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict

from viewsync.common.base.base_config import BaseConfig, BASE_CONFIG_DICT


class NotificationConfig(BaseConfig):
    """
    Push notification configuration.

    access_token is an OAuth2 bearer token for the FCM HTTP v1 API; token
    refresh is handled by the deployment (e.g. a sidecar writing the env).
    """

    model_config = SettingsConfigDict(
        **BASE_CONFIG_DICT,
        env_prefix='FCM_',
    )

    enabled: bool = Field(default=True)
    project_id: str = Field(default="viewsync-dev")
    access_token: Optional[SecretStr] = Field(default=None)
    base_url: str = Field(default="https://fcm.googleapis.com")
    timeout_seconds: float = Field(default=5.0)
    android_priority: str = Field(default="high")

    @property
    def send_url(self) -> str:
        return f"{self.base_url}/v1/projects/{self.project_id}/messages:send"

    def get_access_token(self) -> Optional[str]:
        return self.access_token.get_secret_value() if self.access_token else None


@lru_cache(maxsize=1)
def get_notification_config() -> NotificationConfig:
    """Get notification configuration singleton (cached)."""
    return NotificationConfig()


def reset_notification_config() -> None:
    """Reset config singleton (for testing)."""
    get_notification_config.cache_clear()
