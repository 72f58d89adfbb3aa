# viewsync/core/startup.py
# =============================================================================
# File: viewsync/core/startup.py
# Description: Composition root - builds and tears down the AppState
# =============================================================================

import asyncio
import logging
from typing import Any, Optional

from dotenv import load_dotenv

from viewsync.chat.notifications import NotificationDispatcher
from viewsync.chat.projectors import ChatProjector
from viewsync.common.base.base_storage_provider import BaseStorageProvider
from viewsync.config.document_store_config import get_document_store_config
from viewsync.config.logging_config import setup_logging
from viewsync.config.projection_config import ProjectionConfig, get_projection_config
from viewsync.core.app_state import AppState
from viewsync.infra.event_processor.event_processor import EventProcessor
from viewsync.infra.notifications.fcm_adapter import FcmNotificationAdapter
from viewsync.infra.persistence.pg_client import close_db_pool, init_db_pool
from viewsync.infra.persistence.pg_document_store import PostgresDocumentStore
from viewsync.infra.storage.minio_provider import MinIOStorageProvider
from viewsync.ports.document_store_port import DocumentStorePort
from viewsync.ports.notification_port import NotificationPort
from viewsync.rating.projectors import OfferRatingProjector
from viewsync.user_account.cascade import CascadeDeleter
from viewsync.user_account.projectors import UserAccountProjector

logger = logging.getLogger("viewsync.startup")


def build_app_state(
        store: DocumentStorePort,
        notification_port: Optional[NotificationPort] = None,
        storage: Optional[BaseStorageProvider] = None,
        config: Optional[ProjectionConfig] = None,
) -> AppState:
    """Wire projectors and the event processor around the given adapters."""
    config = config or get_projection_config()
    state = AppState()

    state.store = store
    state.notification_port = notification_port
    state.storage = storage

    if notification_port is not None:
        state.notifications = NotificationDispatcher(notification_port)
    state.cascade = CascadeDeleter(store, storage, config)

    state.chat_projector = ChatProjector(store, state.notifications, config)
    state.rating_projector = OfferRatingProjector(store)
    state.user_projector = UserAccountProjector(store, state.chat_projector, state.cascade, config)

    state.event_processor = EventProcessor([
        state.chat_projector,
        state.rating_projector,
        state.user_projector,
    ])
    return state


async def startup(service_name: str = "viewsync") -> AppState:
    """
    Production startup: logging, PostgreSQL pool and schema, FCM and MinIO
    adapters, then the projector graph.
    """
    load_dotenv()
    setup_logging(service_name=service_name)

    await init_db_pool()
    logger.info("PostgreSQL pool initialized.")

    store = PostgresDocumentStore()
    if get_document_store_config().apply_schema_on_startup:
        await store.ensure_schema()

    state = build_app_state(
        store=store,
        notification_port=FcmNotificationAdapter(),
        storage=MinIOStorageProvider(),
    )
    logger.info(f"{service_name} started with {len(state.event_processor.routes)} trigger routes")
    return state


async def shutdown(state: AppState) -> None:
    """Close adapters, then the database pool."""

    async def close_service(service: Any, service_name: str, timeout: float = 10.0) -> None:
        if service and hasattr(service, 'close'):
            try:
                async with asyncio.timeout(timeout):
                    await service.close()
                logger.info(f"{service_name} closed")
            except TimeoutError:
                logger.error(f"{service_name} close timed out after {timeout}s, continuing...")
            except Exception as close_error:
                logger.error(f"Error closing {service_name}: {close_error}")

    await close_service(state.notification_port, "Notification adapter")
    await close_service(state.storage, "Storage provider")
    await close_db_pool()
    logger.info("Shutdown complete")
