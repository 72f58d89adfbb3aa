# =============================================================================
# File: tests/factories.py
# Description: Builders for ground-truth documents used across tests
# =============================================================================

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from viewsync.chat.read_models import ChatMessage
from viewsync.common.collections import chat_summary_path, messages_collection, offer_reviews_collection, user_path
from viewsync.utils.datetime_utils import to_storage_string
from viewsync.utils.document_paths import document_path

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    """T0 + seconds"""
    return T0 + timedelta(seconds=seconds)


def make_message(sender: str, receiver: str, text: str, seconds: float, is_read: bool = False) -> ChatMessage:
    return ChatMessage(sender_id=sender, receiver_id=receiver, text=text, created_at=at(seconds), is_read=is_read)


def seed_message(store, message_id: str, message: ChatMessage) -> str:
    """Store the message as ground truth; returns its path."""
    path = document_path(messages_collection(message.relationship_key), message_id)
    store.seed(path, message.model_dump(mode="json"))
    return path


def seed_user(store, user_id: str, **fields: Any) -> str:
    path = user_path(user_id)
    store.seed(path, dict(fields))
    return path


def review_document(
        author: str,
        provider: str,
        offer_id: str,
        rating: float,
        seconds: float,
        text: str = "",
) -> Dict[str, Any]:
    return {
        "author_id": author,
        "provider_user_id": provider,
        "offer_id": offer_id,
        "rating": rating,
        "text": text,
        "created_at": to_storage_string(at(seconds)),
    }


def seed_review(store, review_id: str, document: Dict[str, Any]) -> str:
    path = document_path(offer_reviews_collection(document["offer_id"]), review_id)
    store.seed(path, document)
    return path


def summary_of(store, owner: str, key: str) -> Optional[Dict[str, Any]]:
    return store.data(chat_summary_path(owner, key))
