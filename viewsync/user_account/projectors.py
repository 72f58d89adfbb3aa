# =============================================================================
# File: viewsync/user_account/projectors.py
# Description: User account projections - profile, presence, deletion
# =============================================================================

from __future__ import annotations

from typing import Any, Dict, Optional

from viewsync.chat.projectors import ChatProjector
from viewsync.common.collections import PRESENCE_DOCUMENT, USER_DOCUMENT, user_path
from viewsync.common.exceptions.exceptions import DocumentNotFoundError
from viewsync.config.logging_config import get_logger
from viewsync.config.projection_config import ProjectionConfig, get_projection_config
from viewsync.infra.event_processor.document_event import DocumentEvent, TriggerType
from viewsync.infra.event_processor.trigger_decorators import document_trigger
from viewsync.ports.document_store_port import DocumentStorePort
from viewsync.user_account.cascade import CascadeDeleter, CascadeReport
from viewsync.user_account.read_models import UserProfile, display_fields_changed
from viewsync.utils.datetime_utils import to_storage_string, utc_now

log = get_logger("viewsync.user_account.projectors")


def presence_status(data: Optional[Dict[str, Any]]) -> Optional[str]:
    return data.get("status") if data else None


class UserAccountProjector:
    """
    Reacts to changes of users/{user_id} and presence/{user_id}.

    Profile display changes are fanned out to chat summaries through the
    ChatProjector; deletion of the user document drives the cascade.
    """

    def __init__(
            self,
            store: DocumentStorePort,
            chat_projector: ChatProjector,
            cascade: CascadeDeleter,
            config: Optional[ProjectionConfig] = None,
    ):
        self.store = store
        self.chat_projector = chat_projector
        self.cascade = cascade
        self.config = config or get_projection_config()
        log.info("UserAccountProjector initialized")

    # =========================================================================
    # Trigger handlers
    # =========================================================================

    @document_trigger(USER_DOCUMENT, TriggerType.UPDATED, description="User profile changed")
    async def on_user_document_updated(self, event: DocumentEvent) -> None:
        await self.on_owner_profile_updated(
            event.params["user_id"],
            UserProfile.model_validate(event.before or {}),
            UserProfile.model_validate(event.after or {}),
        )

    @document_trigger(USER_DOCUMENT, TriggerType.DELETED, description="User deleted")
    async def on_user_document_deleted(self, event: DocumentEvent) -> None:
        profile = UserProfile.model_validate(event.before) if event.before else None
        await self.on_root_entity_deleted(event.params["user_id"], profile)

    @document_trigger(PRESENCE_DOCUMENT, TriggerType.CREATED, TriggerType.UPDATED, description="Presence changed")
    async def on_presence_document_written(self, event: DocumentEvent) -> None:
        await self.on_presence_changed(event.params["user_id"], event.before, event.after)

    # =========================================================================
    # Entry points
    # =========================================================================

    async def on_owner_profile_updated(self, user_id: str, old: UserProfile, new: UserProfile) -> Optional[int]:
        """Propagate display name / picture changes; other edits are ignored."""
        if not display_fields_changed(old, new):
            log.debug(f"Profile update of {user_id} has no display changes, ignored")
            return None

        log.info(f"Display fields of {user_id} changed, updating chat summaries")
        try:
            return await self.chat_projector.propagate_profile(user_id, new)
        except Exception as e:
            log.error(f"Profile propagation failed for {user_id}: {e}", exc_info=True)
            return None

    async def on_root_entity_deleted(self, user_id: str, profile: Optional[UserProfile]) -> CascadeReport:
        report = await self.cascade.delete_user_data(user_id, profile)
        if not report.complete:
            log.warning(
                f"Cascade for user {user_id} left partial state "
                f"(failed branches: {list(report.failed_branches)}, failed blobs: {len(report.blobs_failed)})"
            )
        return report

    async def on_presence_changed(
            self,
            user_id: str,
            old: Optional[Dict[str, Any]],
            new: Optional[Dict[str, Any]],
    ) -> bool:
        """Stamp users/{user_id}.last_seen_at when the user goes offline."""
        offline = self.config.offline_status
        if presence_status(new) != offline or presence_status(old) == offline:
            return False

        try:
            await self.store.update(user_path(user_id), {"last_seen_at": to_storage_string(utc_now())})
        except DocumentNotFoundError:
            log.warning(f"User {user_id} went offline but has no user document, last_seen_at not written")
            return False
        except Exception as e:
            log.error(f"Failed to write last_seen_at for {user_id}: {e}", exc_info=True)
            return False

        log.debug(f"User {user_id} went offline, last_seen_at updated")
        return True
