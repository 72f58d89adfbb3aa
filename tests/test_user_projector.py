# =============================================================================
# File: tests/test_user_projector.py
# =============================================================================

from viewsync.user_account.read_models import UserProfile
from viewsync.utils.datetime_utils import utc_now

from tests.factories import make_message, seed_message, seed_user, summary_of


async def test_going_offline_stamps_last_seen(store, user_projector):
    seed_user(store, "alice", name="Alice")
    before = utc_now()

    changed = await user_projector.on_presence_changed("alice", {"status": "online"}, {"status": "offline"})

    assert changed
    stamped = UserProfile.model_validate(store.data("users/alice")).last_seen_at
    assert stamped >= before.replace(microsecond=0)
    assert store.data("users/alice")["name"] == "Alice"


async def test_other_presence_transitions_are_ignored(store, user_projector):
    seed_user(store, "alice")

    assert not await user_projector.on_presence_changed("alice", {"status": "offline"}, {"status": "online"})
    assert not await user_projector.on_presence_changed("alice", {"status": "offline"}, {"status": "offline"})
    assert not await user_projector.on_presence_changed("alice", {"status": "online"}, None)
    assert "last_seen_at" not in store.data("users/alice")


async def test_first_presence_write_as_offline_counts(store, user_projector):
    seed_user(store, "alice")

    assert await user_projector.on_presence_changed("alice", None, {"status": "offline"})


async def test_offline_without_user_document_is_skipped(store, user_projector):
    assert not await user_projector.on_presence_changed("ghost", {"status": "online"}, {"status": "offline"})
    assert not store.exists("users/ghost")


async def test_profile_update_without_display_change_is_ignored(store, user_projector):
    old = UserProfile(name="Alice", fcm_token="t1")
    new = UserProfile(name="Alice", fcm_token="t2")

    assert await user_projector.on_owner_profile_updated("alice", old, new) is None
    assert not store.was_called("query")


async def test_username_change_reaches_counterpart_copies(store, user_projector, chat_projector):
    seed_user(store, "alice", name="Alice")
    seed_user(store, "bob", name="Bob")
    message = make_message("alice", "bob", "hi", 10)
    seed_message(store, "m1", message)
    await chat_projector.on_message_created(message)
    assert summary_of(store, "bob", "alice_bob")["counterpart_name"] == "Alice"

    updated = await user_projector.on_owner_profile_updated(
        "alice", UserProfile(name="Alice"), UserProfile(name="Alice", username="ali"),
    )

    assert updated == 1
    assert summary_of(store, "bob", "alice_bob")["counterpart_name"] == "ali"
    assert summary_of(store, "alice", "alice_bob")["counterpart_name"] == "Bob"


async def test_profile_propagation_failure_is_swallowed(store, user_projector):
    store.configure_failure("query", "store down")

    result = await user_projector.on_owner_profile_updated(
        "alice", UserProfile(name="Alice"), UserProfile(name="Alicia"),
    )

    assert result is None


async def test_user_deletion_runs_cascade(store, user_projector, storage):
    seed_user(store, "bob")
    store.seed("user_favorites/alice/favorites/f1", {"offer_id": "o9"})
    storage.blobs.add("pics/alice.jpg")

    report = await user_projector.on_root_entity_deleted("alice", UserProfile(user_pic_path="pics/alice.jpg"))

    assert report.complete
    assert not store.exists("user_favorites/alice/favorites/f1")
    assert "pics/alice.jpg" not in storage.blobs
