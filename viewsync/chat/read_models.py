# =============================================================================
# File: viewsync/chat/read_models.py
# Description: Chat domain read models
# =============================================================================

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from viewsync.chat.value_objects import relationship_key
from viewsync.utils.datetime_utils import UtcDatetime


class ChatMessage(BaseModel):
    """Message (chatrooms/{key}/messages/{message_id}). Ground truth; only is_read ever changes."""
    sender_id: str
    receiver_id: str
    text: str = ""
    created_at: UtcDatetime
    is_read: bool = False

    model_config = ConfigDict(extra="ignore")

    @property
    def relationship_key(self) -> str:
        return relationship_key(self.sender_id, self.receiver_id)


class ChatSummary(BaseModel):
    """
    Per-viewer copy of a conversation (user_chatrooms/{owner_id}/chatrooms/{key}).

    Each party owns one copy. unread_count counts messages addressed to
    owner_id and is only ever recomputed from the messages collection.
    """
    owner_id: str
    counterpart_id: str
    counterpart_name: str = ""
    counterpart_pic_url: Optional[str] = None
    last_message_text: Optional[str] = None
    last_message_sender_id: Optional[str] = None
    last_message_at: Optional[UtcDatetime] = None
    unread_count: int = 0

    model_config = ConfigDict(extra="ignore")

    def is_older_than(self, message: ChatMessage) -> bool:
        """True when `message` should replace the stored last message."""
        return self.last_message_at is None or message.created_at > self.last_message_at

    def with_last_message(self, message: ChatMessage) -> ChatSummary:
        return self.model_copy(update={
            "last_message_text": message.text,
            "last_message_sender_id": message.sender_id,
            "last_message_at": message.created_at,
        })
