# =============================================================================
# File: tests/test_event_processor.py
# =============================================================================

import pytest

from viewsync.common.collections import MESSAGE_DOCUMENT, REVIEW_DOCUMENT
from viewsync.core.startup import build_app_state
from viewsync.infra.event_processor.document_event import DocumentEvent, TriggerType
from viewsync.infra.event_processor.event_processor import EventProcessor
from viewsync.infra.event_processor.trigger_decorators import compile_path_template, document_trigger

from tests.factories import make_message, review_document, seed_message, seed_review, seed_user, summary_of


@pytest.fixture
def processor(store, notification_adapter, storage, projection_config) -> EventProcessor:
    state = build_app_state(store, notification_adapter, storage, projection_config)
    return state.event_processor


def test_path_template_extracts_params():
    pattern = compile_path_template(MESSAGE_DOCUMENT)

    match = pattern.match("chatrooms/alice_bob/messages/m1")

    assert match.groupdict() == {"relationship_key": "alice_bob", "message_id": "m1"}
    assert pattern.match("chatrooms/alice_bob/messages") is None
    assert pattern.match("chatrooms/alice_bob/messages/m1/extra") is None


def test_all_entry_points_are_routed(processor):
    routed = {(route.spec.path_template, trigger) for route in processor.routes for trigger in route.spec.trigger_types}

    assert (MESSAGE_DOCUMENT, TriggerType.CREATED) in routed
    assert (MESSAGE_DOCUMENT, TriggerType.UPDATED) in routed
    assert ("users/{user_id}", TriggerType.UPDATED) in routed
    assert ("users/{user_id}", TriggerType.DELETED) in routed
    assert ("presence/{user_id}", TriggerType.UPDATED) in routed
    for trigger in TriggerType:
        assert (REVIEW_DOCUMENT, trigger) in routed


async def test_message_created_event_updates_views(store, processor, notification_adapter):
    seed_user(store, "alice", username="alice")
    seed_user(store, "bob", fcm_token="token-bob")
    message = make_message("alice", "bob", "hi", 10)
    path = seed_message(store, "m1", message)

    handled = await processor.process(DocumentEvent.created(path, message.model_dump(mode="json")))

    assert handled
    assert summary_of(store, "bob", "alice_bob")["unread_count"] == 1
    assert summary_of(store, "alice", "alice_bob")["last_message_text"] == "hi"
    assert notification_adapter.get_call_count("send_to_device") == 1


async def test_review_event_passes_offer_id_param(store, processor):
    seed_user(store, "pat")
    review = review_document("alice", "pat", "o7", 3.0, 10)
    path = seed_review(store, "r1", review)

    assert await processor.process(DocumentEvent.created(path, review))

    assert store.data("users/pat")["offer_rating_list"][0]["offer_id"] == "o7"


async def test_presence_event_routes_user_id(store, processor):
    seed_user(store, "alice")

    await processor.process(DocumentEvent.updated("presence/alice", {"status": "online"}, {"status": "offline"}))

    assert "last_seen_at" in store.data("users/alice")


async def test_user_deleted_event_runs_cascade(store, processor):
    store.seed("user_favorites/alice/favorites/f1", {})

    await processor.process(DocumentEvent.deleted("users/alice", {"name": "Alice"}))

    assert not store.exists("user_favorites/alice/favorites/f1")


async def test_unmatched_event_returns_false(processor):
    assert not await processor.process(DocumentEvent.created("offers/o1", {"title": "x"}))
    assert not await processor.process(DocumentEvent.deleted("chatrooms/alice_bob/messages/m1", {}))


async def test_handler_errors_are_swallowed():
    class Exploding:
        def __init__(self):
            self.calls = 0

        @document_trigger("things/{thing_id}", TriggerType.CREATED)
        async def on_thing(self, event):
            self.calls += 1
            raise RuntimeError("boom")

        @document_trigger("things/{thing_id}")
        async def on_any_thing(self, event):
            self.calls += 1

    projector = Exploding()
    processor = EventProcessor([projector])

    handled = await processor.process(DocumentEvent.created("things/t1", {}))

    assert handled
    assert projector.calls == 2


async def test_malformed_payload_does_not_raise(processor):
    event = DocumentEvent.created("chatrooms/alice_bob/messages/m1", {"text": "no sender"})
    assert await processor.process(event)
