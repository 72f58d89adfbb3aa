# =============================================================================
# File: viewsync/chat/notifications.py
# Description: New-message push notifications (best-effort)
# =============================================================================

from __future__ import annotations

from typing import Dict, Optional

from viewsync.chat.read_models import ChatMessage
from viewsync.config.logging_config import get_logger
from viewsync.infra.metrics.projection_metrics import notifications_total
from viewsync.ports.notification_port import NotificationPort
from viewsync.user_account.read_models import UserProfile
from viewsync.utils.datetime_utils import to_epoch_seconds

log = get_logger("viewsync.chat.notifications")


def build_new_message_payload(message: ChatMessage, sender: UserProfile) -> Dict[str, str]:
    """Flat string payload; the client app renders it."""
    return {
        "sender_id": message.sender_id,
        "sender_name": sender.display_name,
        "sender_pic_url": sender.user_pic_url or "",
        "message_text": message.text,
        "message_timestamp": str(to_epoch_seconds(message.created_at)),
    }


class NotificationDispatcher:
    """
    Sends a push notification to the receiver of a new message.

    Never raises: a failed notification must not affect the view updates
    running next to it. Not deduplicated, so a redelivered message event
    may notify twice.
    """

    def __init__(self, port: NotificationPort):
        self.port = port

    async def notify_new_message(
            self,
            message: ChatMessage,
            sender: UserProfile,
            receiver: Optional[UserProfile],
    ) -> bool:
        if receiver is None or not receiver.fcm_token:
            log.debug(f"No device token for {message.receiver_id}, notification skipped")
            notifications_total.labels(outcome="skipped").inc()
            return False

        try:
            result = await self.port.send_to_device(
                receiver.fcm_token,
                build_new_message_payload(message, sender),
            )
        except Exception as e:
            log.error(f"Notification to {message.receiver_id} failed: {e}", exc_info=True)
            notifications_total.labels(outcome="failed").inc()
            return False

        if not result.success:
            log.warning(f"Notification to {message.receiver_id} not delivered: {result.error}")
            notifications_total.labels(outcome="failed").inc()
            return False

        notifications_total.labels(outcome="sent").inc()
        return True
