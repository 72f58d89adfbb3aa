# =============================================================================
# File: viewsync/chat/projectors.py
# Description: Chat summary projections - per-viewer conversation copies
# =============================================================================
# Each relationship has two independent summary copies:
#
#   user_chatrooms/{sender}/chatrooms/{key}     sender's view
#   user_chatrooms/{receiver}/chatrooms/{key}   receiver's view (+ unread_count)
#
# Every copy is updated in its own optimistic transaction. Last-message
# fields only move forward in time; unread_count is recomputed from the
# messages collection on every run. Together these make duplicate and
# out-of-order deliveries converge to the same state.
# =============================================================================

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from viewsync.chat.notifications import NotificationDispatcher
from viewsync.chat.queries import count_unread_messages
from viewsync.chat.read_models import ChatMessage, ChatSummary
from viewsync.chat.value_objects import relationship_key, relationship_members
from viewsync.common.collections import MESSAGE_DOCUMENT, chat_summary_path, user_chatrooms_collection, user_path
from viewsync.config.logging_config import get_logger
from viewsync.config.projection_config import ProjectionConfig, get_projection_config
from viewsync.infra.event_processor.document_event import DocumentEvent, TriggerType
from viewsync.infra.event_processor.trigger_decorators import document_trigger
from viewsync.infra.metrics.projection_metrics import chat_summary_updates_total
from viewsync.ports.document_store_port import DocumentStorePort, TransactionPort
from viewsync.user_account.read_models import UserProfile
from viewsync.utils.datetime_utils import to_storage_string

log = get_logger("viewsync.chat.projectors")


class ViewUpdateOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


def counterpart_display_fields(profile: Optional[UserProfile]) -> Dict[str, Any]:
    """Fields of a summary copy that mirror the counterpart's profile."""
    profile = profile or UserProfile()
    return {
        "counterpart_name": profile.display_name,
        "counterpart_pic_url": profile.user_pic_url,
    }


def _last_message_fields(message: ChatMessage) -> Dict[str, Any]:
    return {
        "last_message_text": message.text,
        "last_message_sender_id": message.sender_id,
        "last_message_at": to_storage_string(message.created_at),
    }


class ChatProjector:
    """
    Maintains both summary copies of a conversation.

    Entry points:
        on_message_created  - new message: both copies + push notification
        on_message_updated  - message marked read: receiver's unread_count
        propagate_profile   - display name / picture change of one user

    Nothing here raises to the caller. Failed transactions are logged and
    reported as ViewUpdateOutcome.FAILED; the next event for the same
    relationship repairs the copy.
    """

    def __init__(
            self,
            store: DocumentStorePort,
            notifications: Optional[NotificationDispatcher] = None,
            config: Optional[ProjectionConfig] = None,
    ):
        self.store = store
        self.notifications = notifications
        self.config = config or get_projection_config()
        log.info("ChatProjector initialized")

    # =========================================================================
    # Trigger handlers
    # =========================================================================

    @document_trigger(MESSAGE_DOCUMENT, TriggerType.CREATED, description="New chat message")
    async def on_message_document_created(self, event: DocumentEvent) -> None:
        await self.on_message_created(ChatMessage.model_validate(event.after))

    @document_trigger(MESSAGE_DOCUMENT, TriggerType.UPDATED, description="Chat message changed")
    async def on_message_document_updated(self, event: DocumentEvent) -> None:
        await self.on_message_updated(
            ChatMessage.model_validate(event.before),
            ChatMessage.model_validate(event.after),
        )

    # =========================================================================
    # Entry points
    # =========================================================================

    async def on_message_created(self, message: ChatMessage) -> Tuple[ViewUpdateOutcome, ViewUpdateOutcome]:
        """
        Update the sender's and the receiver's copy and notify the receiver.

        The three branches run concurrently; none of them can fail another.
        Returns (sender outcome, receiver outcome).
        """
        try:
            log.info(
                f"Projecting new message {message.sender_id} -> {message.receiver_id} "
                f"(relationship={message.relationship_key})"
            )
            sender, receiver = await asyncio.gather(
                self._load_profile(message.sender_id),
                self._load_profile(message.receiver_id),
            )
        except Exception as e:
            log.error(
                f"Failed to load chat participants {message.sender_id} -> {message.receiver_id}: {e}", exc_info=True
            )
            return ViewUpdateOutcome.FAILED, ViewUpdateOutcome.FAILED

        branches = [
            self.update_sender_summary(message, sender, receiver),
            self.update_receiver_summary(message, sender, receiver),
        ]
        if self.notifications is not None:
            branches.append(self.notifications.notify_new_message(message, sender or UserProfile(), receiver))

        results = await asyncio.gather(*branches)
        return results[0], results[1]

    async def on_message_updated(self, old: ChatMessage, new: ChatMessage) -> Optional[ViewUpdateOutcome]:
        """Only the unread -> read transition is actionable."""
        if old.is_read or not new.is_read:
            log.debug(f"Message update in {new.relationship_key} is not a read transition, ignored")
            return None
        return await self.refresh_unread_count(new.sender_id, new.receiver_id)

    # =========================================================================
    # View updates
    # =========================================================================

    async def update_sender_summary(
            self,
            message: ChatMessage,
            sender: Optional[UserProfile],
            receiver: Optional[UserProfile],
    ) -> ViewUpdateOutcome:
        """Sender's copy: counterpart is the receiver, no unread counter."""
        return await self._update_summary(
            side="sender",
            message=message,
            owner_id=message.sender_id,
            counterpart_id=message.receiver_id,
            counterpart=receiver,
            recount_unread=False,
        )

    async def update_receiver_summary(
            self,
            message: ChatMessage,
            sender: Optional[UserProfile],
            receiver: Optional[UserProfile],
    ) -> ViewUpdateOutcome:
        """Receiver's copy: counterpart is the sender, unread_count recomputed."""
        return await self._update_summary(
            side="receiver",
            message=message,
            owner_id=message.receiver_id,
            counterpart_id=message.sender_id,
            counterpart=sender,
            recount_unread=True,
        )

    async def _update_summary(
            self,
            side: str,
            message: ChatMessage,
            owner_id: str,
            counterpart_id: str,
            counterpart: Optional[UserProfile],
            recount_unread: bool,
    ) -> ViewUpdateOutcome:
        key = message.relationship_key
        try:
            path = chat_summary_path(owner_id, key)
        except ValueError as e:
            return self._invalid_path(side, e)
        display = counterpart_display_fields(counterpart)

        async def body(tx: TransactionPort) -> ViewUpdateOutcome:
            snapshot = await tx.get(path)
            unread = await count_unread_messages(tx, key, owner_id) if recount_unread else None

            if not snapshot.exists:
                summary = ChatSummary(
                    owner_id=owner_id,
                    counterpart_id=counterpart_id,
                    unread_count=unread or 0,
                    **display,
                ).with_last_message(message)
                tx.create(path, summary.model_dump(mode="json"))
                return ViewUpdateOutcome.CREATED

            current = ChatSummary.model_validate(
                {"owner_id": owner_id, "counterpart_id": counterpart_id, **snapshot.data}
            )
            changes: Dict[str, Any] = {}
            if current.is_older_than(message):
                changes.update(_last_message_fields(message))
            if unread is not None and unread != current.unread_count:
                changes["unread_count"] = unread

            if not changes:
                return ViewUpdateOutcome.SKIPPED

            changes.update(display)
            tx.update(path, changes)
            return ViewUpdateOutcome.UPDATED

        return await self._run_view_transaction(side, path, body)

    async def refresh_unread_count(self, sender_id: str, receiver_id: str) -> ViewUpdateOutcome:
        """
        Recompute unread_count of the receiver's copy.

        A missing copy is left alone: the create path for the message that
        produced it recomputes the counter anyway.
        """
        summary_key = relationship_key(sender_id, receiver_id)
        try:
            path = chat_summary_path(receiver_id, summary_key)
        except ValueError as e:
            return self._invalid_path("unread", e)

        async def body(tx: TransactionPort) -> ViewUpdateOutcome:
            snapshot = await tx.get(path)
            if not snapshot.exists:
                log.debug(f"No summary at {path} yet, unread refresh skipped")
                return ViewUpdateOutcome.SKIPPED

            unread = await count_unread_messages(tx, summary_key, receiver_id)
            if snapshot.data.get("unread_count", 0) == unread:
                return ViewUpdateOutcome.SKIPPED

            tx.update(path, {"unread_count": unread})
            return ViewUpdateOutcome.UPDATED

        return await self._run_view_transaction("unread", path, body)

    async def propagate_profile(self, user_id: str, profile: UserProfile) -> int:
        """
        Copy new display fields of `user_id` into every counterpart's copy.

        Walks user_chatrooms/{user_id}/chatrooms page by page; the copies of
        one page are refreshed concurrently, each in its own transaction.
        Returns the number of copies changed.
        """
        display = counterpart_display_fields(profile)
        page_size = self.config.profile_propagation_page_size
        collection = user_chatrooms_collection(user_id)

        updated = 0
        start_after: Optional[str] = None
        while True:
            page = await self.store.query(collection, limit=page_size, start_after=start_after)
            if not page:
                break

            outcomes: List[ViewUpdateOutcome] = await asyncio.gather(*(
                self._refresh_counterpart_copy(user_id, snapshot.id, display) for snapshot in page
            ))
            updated += sum(1 for outcome in outcomes if outcome is ViewUpdateOutcome.UPDATED)

            if len(page) < page_size:
                break
            start_after = page[-1].id

        log.info(f"Profile of {user_id} propagated to {updated} chat summaries")
        return updated

    async def _refresh_counterpart_copy(self, user_id: str, key: str, display: Dict[str, Any]) -> ViewUpdateOutcome:
        try:
            first, second = relationship_members(key)
        except ValueError:
            log.warning(f"Chat summary {key} of {user_id} has a malformed key, skipped")
            return ViewUpdateOutcome.SKIPPED
        counterpart_id = second if first == user_id else first
        try:
            path = chat_summary_path(counterpart_id, key)
        except ValueError as e:
            return self._invalid_path("profile", e)

        async def body(tx: TransactionPort) -> ViewUpdateOutcome:
            snapshot = await tx.get(path)
            if not snapshot.exists:
                return ViewUpdateOutcome.SKIPPED
            if all(snapshot.data.get(field) == value for field, value in display.items()):
                return ViewUpdateOutcome.SKIPPED
            tx.update(path, display)
            return ViewUpdateOutcome.UPDATED

        return await self._run_view_transaction("profile", path, body)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _run_view_transaction(self, side: str, path: str, body) -> ViewUpdateOutcome:
        try:
            outcome = await self.store.run_transaction(body, context=f"chat summary {path}")
        except Exception as e:
            log.error(f"Chat summary update failed ({side}) at {path}: {e}", exc_info=True)
            outcome = ViewUpdateOutcome.FAILED

        chat_summary_updates_total.labels(side=side, outcome=outcome.value).inc()
        log.debug(f"Chat summary {path} ({side}): {outcome.value}")
        return outcome

    def _invalid_path(self, side: str, error: ValueError) -> ViewUpdateOutcome:
        log.error(f"Chat summary update ({side}) has no valid document path: {error}")
        chat_summary_updates_total.labels(side=side, outcome=ViewUpdateOutcome.FAILED.value).inc()
        return ViewUpdateOutcome.FAILED

    async def _load_profile(self, user_id: str) -> Optional[UserProfile]:
        snapshot = await self.store.get(user_path(user_id))
        if not snapshot.exists:
            log.warning(f"User {user_id} not found, using empty display fields")
            return None
        return UserProfile.model_validate(snapshot.data)
