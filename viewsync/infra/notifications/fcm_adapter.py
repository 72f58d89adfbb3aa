# =============================================================================
# File: viewsync/infra/notifications/fcm_adapter.py
# Description: FCM HTTP v1 adapter
# =============================================================================

import logging
from typing import Dict, Optional

import httpx

from viewsync.common.exceptions.exceptions import NotificationError
from viewsync.config.notification_config import NotificationConfig, get_notification_config
from viewsync.config.reliability_config import ReliabilityConfigs
from viewsync.infra.reliability.retry import retry_async
from viewsync.ports.notification_port import SendResult

log = logging.getLogger("viewsync.infra.fcm")


class FcmNotificationAdapter:
    """NotificationPort on the Firebase Cloud Messaging HTTP v1 API"""

    def __init__(self, config: Optional[NotificationConfig] = None):
        self._config = config or get_notification_config()
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout_seconds,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self):
        """Close HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    def build_message(self, device_token: str, data: Dict[str, str]) -> Dict:
        """Data-only message body; no `notification` block."""
        return {
            "message": {
                "token": device_token,
                "data": data,
                "android": {"priority": self._config.android_priority},
                "apns": {
                    "headers": {"apns-priority": "5"},
                    "payload": {"aps": {"content-available": 1}},
                },
            }
        }

    async def send_to_device(self, device_token: str, data: Dict[str, str]) -> SendResult:
        if not self._config.enabled:
            log.debug("FCM disabled, dropping notification")
            return SendResult(success=False, error="disabled")

        access_token = self._config.get_access_token()
        if not access_token:
            raise NotificationError("FCM access token not configured")

        client = await self._get_client()
        body = self.build_message(device_token, data)

        async def post() -> httpx.Response:
            return await client.post(
                self._config.send_url,
                json=body,
                headers={"Authorization": f"Bearer {access_token}"},
            )

        try:
            response = await retry_async(
                post,
                retry_config=ReliabilityConfigs.notification_retry(),
                context="FCM send",
            )
        except httpx.HTTPError as e:
            raise NotificationError(f"FCM request failed: {e}") from e

        if response.status_code != 200:
            log.warning(f"FCM API error: {response.status_code} {response.text[:200]}")
            return SendResult(success=False, error=f"HTTP {response.status_code}")

        message_id = response.json().get("name")
        log.debug(f"FCM message sent: {message_id}")
        return SendResult(success=True, message_id=message_id)
