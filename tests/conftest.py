# =============================================================================
# File: tests/conftest.py
# =============================================================================

import pytest

from viewsync.chat.notifications import NotificationDispatcher
from viewsync.chat.projectors import ChatProjector
from viewsync.config.projection_config import ProjectionConfig
from viewsync.rating.projectors import OfferRatingProjector
from viewsync.user_account.cascade import CascadeDeleter
from viewsync.user_account.projectors import UserAccountProjector

from tests.fakes.fake_document_store import FakeDocumentStore
from tests.fakes.fake_notification_adapter import FakeNotificationAdapter
from tests.fakes.fake_storage_provider import FakeStorageProvider

@pytest.fixture
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def notification_adapter() -> FakeNotificationAdapter:
    return FakeNotificationAdapter()


@pytest.fixture
def storage() -> FakeStorageProvider:
    return FakeStorageProvider()


@pytest.fixture
def projection_config() -> ProjectionConfig:
    return ProjectionConfig(cascade_batch_size=2, profile_propagation_page_size=2)


@pytest.fixture
def chat_projector(store, notification_adapter, projection_config) -> ChatProjector:
    return ChatProjector(store, NotificationDispatcher(notification_adapter), projection_config)


@pytest.fixture
def rating_projector(store) -> OfferRatingProjector:
    return OfferRatingProjector(store)


@pytest.fixture
def cascade(store, storage, projection_config) -> CascadeDeleter:
    return CascadeDeleter(store, storage, projection_config)


@pytest.fixture
def user_projector(store, chat_projector, cascade, projection_config) -> UserAccountProjector:
    return UserAccountProjector(store, chat_projector, cascade, projection_config)
