# =============================================================================
# File: viewsync/ports/notification_port.py
# Description: Port interface for push notifications
# Pattern: Hexagonal Architecture / Ports & Adapters
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Protocol, runtime_checkable


@dataclass
class SendResult:
    """Result of a push notification send."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@runtime_checkable
class NotificationPort(Protocol):
    """
    Port: Push Notifications

    Defined by: Chat Domain
    Implemented by: FcmNotificationAdapter (viewsync/infra/notifications/fcm_adapter.py)

    Best-effort, fire-and-forget. Payloads are data-only so the client app
    handles them in the background as well as in the foreground.
    """

    async def send_to_device(self, device_token: str, data: Dict[str, str]) -> SendResult:
        """
        Send a data message to one device.

        Args:
            device_token: Registration token of the receiving device
            data: Flat string-to-string payload

        Returns:
            SendResult; transport errors may also be raised
        """
        ...
