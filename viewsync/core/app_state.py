# viewsync/core/app_state.py
# =============================================================================
# File: viewsync/core/app_state.py
# Description: Process-lifetime collaborators of the view sync worker
# =============================================================================

from typing import Optional

from viewsync.chat.notifications import NotificationDispatcher
from viewsync.chat.projectors import ChatProjector
from viewsync.common.base.base_storage_provider import BaseStorageProvider
from viewsync.infra.event_processor.event_processor import EventProcessor
from viewsync.ports.document_store_port import DocumentStorePort
from viewsync.ports.notification_port import NotificationPort
from viewsync.rating.projectors import OfferRatingProjector
from viewsync.user_account.cascade import CascadeDeleter
from viewsync.user_account.projectors import UserAccountProjector


class AppState:
    """Everything built at startup; handlers receive these by injection."""

    def __init__(self):
        # Infrastructure
        self.store: Optional[DocumentStorePort] = None
        self.notification_port: Optional[NotificationPort] = None
        self.storage: Optional[BaseStorageProvider] = None

        # Domain services
        self.notifications: Optional[NotificationDispatcher] = None
        self.cascade: Optional[CascadeDeleter] = None

        # Projectors
        self.chat_projector: Optional[ChatProjector] = None
        self.rating_projector: Optional[OfferRatingProjector] = None
        self.user_projector: Optional[UserAccountProjector] = None

        # Dispatch
        self.event_processor: Optional[EventProcessor] = None

