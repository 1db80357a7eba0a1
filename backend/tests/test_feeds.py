# tests/test_feeds.py
"""
Tests for the push feeds.

Tests cover:
- merge / merge_records reconciliation
- subscribe_registrations / subscribe_events delivery and unsubscribe
- WebSocket consumers for the event list and per-event registrations
"""

import asyncio
from uuid import uuid4

import pytest
from channels.db import database_sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser

from accounts.authz import ActorContext
from events import ledger
from mirror import feeds
from mirror.reconcile import merge, merge_records
from mirror.routing import websocket_urlpatterns


BOTH_DATABASES = ["default", "mirror"]


async def _next_value(queue: asyncio.Queue, timeout: float = 2.0):
    return await asyncio.wait_for(queue.get(), timeout=timeout)


@pytest.fixture
def private_event(make_event):
    """A private event organized by the `organizer` fixture user."""
    return make_event(title="Board Retreat", is_public=False)


# =============================================================================
# Reconciliation
# =============================================================================

class TestMerge:
    def test_remote_wins_on_shared_fields(self):
        local = {"id": "e1", "title": "Old", "registration_count": 1}
        remote = {"id": "e1", "title": "New", "registration_count": 2}

        assert merge(local, remote) == remote

    def test_local_only_fields_survive(self):
        local = {"id": "e1", "title": "Old", "pending": True}
        remote = {"id": "e1", "title": "New"}

        assert merge(local, remote) == {"id": "e1", "title": "New", "pending": True}

    def test_local_state_of_another_record_is_discarded(self):
        merged = merge({"user_id": "stale", "note": "x"}, {"user_id": "u1"})
        assert merged == {"user_id": "u1"}

    def test_any_identity_mismatch_discards_local_state(self):
        local = {"event_id": "e1", "user_id": "u1", "highlight": True}
        remote = {"event_id": "e2", "user_id": "u1", "display_name": "Uno"}

        assert merge(local, remote) == remote

    def test_identity_compares_by_value(self):
        user_id = uuid4()
        merged = merge({"user_id": user_id, "highlight": True}, {"user_id": str(user_id)})

        assert merged == {"user_id": str(user_id), "highlight": True}

    def test_merge_with_no_local_state(self):
        assert merge(None, {"id": "e1"}) == {"id": "e1"}

    def test_merge_records_drops_records_missing_remotely(self):
        local = [
            {"user_id": "u1", "display_name": "One", "highlight": True},
            {"user_id": "u2", "display_name": "Two"},
        ]
        remote = [{"user_id": "u1", "display_name": "Uno"}]

        merged = merge_records(local, remote, "user_id")

        assert merged == [{"user_id": "u1", "display_name": "Uno", "highlight": True}]

    def test_merge_records_follows_remote_order(self):
        local = [{"id": "a"}, {"id": "b"}]
        remote = [{"id": "b"}, {"id": "c"}, {"id": "a"}]

        assert [r["id"] for r in merge_records(local, remote, "id")] == ["b", "c", "a"]


# =============================================================================
# Subscriptions
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True, databases=BOTH_DATABASES)
class TestSubscriptions:
    async def test_registration_subscription_delivers_changes(
        self, event, make_user, flush_channel_layer
    ):
        user = await database_sync_to_async(make_user)()
        received = asyncio.Queue()

        unsubscribe = await ledger.subscribe_registrations(event.public_id, received.put_nowait)
        try:
            assert await _next_value(received) == []

            await database_sync_to_async(ledger.register)(event.public_id, user.public_id)
            value = await _next_value(received)
            assert [r["user_id"] for r in value] == [str(user.public_id)]

            await database_sync_to_async(ledger.cancel)(event.public_id, user.public_id)
            assert await _next_value(received) == []
        finally:
            await unsubscribe()

    async def test_unsubscribe_stops_delivery(self, event, make_user, flush_channel_layer):
        user = await database_sync_to_async(make_user)()
        received = asyncio.Queue()

        unsubscribe = await feeds.subscribe_registrations(event.public_id, received.put_nowait)
        await _next_value(received)
        await unsubscribe()

        await database_sync_to_async(ledger.register)(event.public_id, user.public_id)

        with pytest.raises(asyncio.TimeoutError):
            await _next_value(received, timeout=0.3)

    async def test_async_callbacks_are_awaited(self, event, make_user, flush_channel_layer):
        user = await database_sync_to_async(make_user)()
        received = asyncio.Queue()

        async def on_change(value):
            await received.put(value)

        unsubscribe = await feeds.subscribe_registrations(event.public_id, on_change)
        try:
            await _next_value(received)
            await database_sync_to_async(ledger.register)(event.public_id, user.public_id)
            value = await _next_value(received)
            assert value[0]["email"] == user.email
        finally:
            await unsubscribe()

    async def test_events_subscription_sees_count_changes(
        self, event, make_user, flush_channel_layer
    ):
        user = await database_sync_to_async(make_user)()
        received = asyncio.Queue()

        unsubscribe = await feeds.subscribe_events(received.put_nowait)
        try:
            initial = await _next_value(received)
            assert [e["id"] for e in initial] == [str(event.public_id)]

            await database_sync_to_async(ledger.register)(event.public_id, user.public_id)

            value = await _next_value(received)
            while value[0]["registration_count"] != 1:
                value = await _next_value(received)
            assert value[0]["title"] == event.title
        finally:
            await unsubscribe()


    async def test_events_subscription_hides_private_events(
        self, event, private_event, organizer, flush_channel_layer
    ):
        anonymous = asyncio.Queue()
        owner = asyncio.Queue()

        unsubscribe_anonymous = await feeds.subscribe_events(anonymous.put_nowait)
        unsubscribe_owner = await feeds.subscribe_events(
            owner.put_nowait, actor=ActorContext(user=organizer),
        )
        try:
            assert [e["id"] for e in await _next_value(anonymous)] == [str(event.public_id)]
            assert {e["id"] for e in await _next_value(owner)} == {
                str(event.public_id), str(private_event.public_id),
            }
        finally:
            await unsubscribe_anonymous()
            await unsubscribe_owner()


# =============================================================================
# WebSocket consumers
# =============================================================================

def _communicator(path: str, user=None) -> WebsocketCommunicator:
    communicator = WebsocketCommunicator(URLRouter(websocket_urlpatterns), path)
    if user is not None:
        communicator.scope["user"] = user
    return communicator


def _registrations_path(event_id) -> str:
    return f"/ws/events/{event_id}/registrations/"


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True, databases=BOTH_DATABASES)
class TestEventFeedConsumer:
    async def test_sends_current_value(self, event, flush_channel_layer):
        communicator = _communicator("/ws/events/")
        connected, _ = await communicator.connect()
        assert connected

        message = await communicator.receive_json_from()
        assert message["feed"] == "events"
        assert [e["id"] for e in message["value"]] == [str(event.public_id)]

        await communicator.disconnect()

    async def test_anonymous_viewer_never_sees_private_events(
        self, event, private_event, flush_channel_layer
    ):
        communicator = _communicator("/ws/events/", AnonymousUser())
        await communicator.connect()

        message = await communicator.receive_json_from()

        assert [e["id"] for e in message["value"]] == [str(event.public_id)]
        await communicator.disconnect()

    async def test_organizer_sees_own_private_events(
        self, event, private_event, organizer, flush_channel_layer
    ):
        communicator = _communicator("/ws/events/", organizer)
        await communicator.connect()

        message = await communicator.receive_json_from()

        assert {e["id"] for e in message["value"]} == {
            str(event.public_id), str(private_event.public_id),
        }
        await communicator.disconnect()

    async def test_admin_sees_every_event(
        self, event, private_event, admin_user, flush_channel_layer
    ):
        communicator = _communicator("/ws/events/", admin_user)
        await communicator.connect()

        message = await communicator.receive_json_from()

        assert len(message["value"]) == 2
        await communicator.disconnect()

    async def test_published_updates_are_filtered_per_viewer(
        self, event, private_event, attendee, flush_channel_layer
    ):
        communicator = _communicator("/ws/events/", attendee)
        await communicator.connect()
        await communicator.receive_json_from()

        await database_sync_to_async(ledger.register)(private_event.public_id, attendee.public_id)
        await database_sync_to_async(ledger.register)(event.public_id, attendee.public_id)

        update = await communicator.receive_json_from(timeout=2)
        while update["value"][0]["registration_count"] != 1:
            update = await communicator.receive_json_from(timeout=2)
        assert [e["id"] for e in update["value"]] == [str(event.public_id)]

        await communicator.disconnect()


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True, databases=BOTH_DATABASES)
class TestRegistrationFeedConsumer:
    async def test_requires_authentication(self, event, flush_channel_layer):
        communicator = _communicator(_registrations_path(event.public_id), AnonymousUser())

        connected, code = await communicator.connect()

        assert not connected
        assert code == 4401

    async def test_refuses_users_who_do_not_organize_the_event(
        self, event, attendee, flush_channel_layer
    ):
        communicator = _communicator(_registrations_path(event.public_id), attendee)

        connected, code = await communicator.connect()

        assert not connected
        assert code == 4403

    async def test_unknown_event(self, organizer, flush_channel_layer):
        communicator = _communicator(_registrations_path(uuid4()), organizer)

        connected, code = await communicator.connect()

        assert not connected
        assert code == 4404

    async def test_admin_may_watch_any_event(self, event, admin_user, flush_channel_layer):
        communicator = _communicator(_registrations_path(event.public_id), admin_user)

        connected, _ = await communicator.connect()

        assert connected
        assert (await communicator.receive_json_from())["value"] == []
        await communicator.disconnect()

    async def test_pushes_updates_to_the_organizer(
        self, event, organizer, attendee, flush_channel_layer
    ):
        communicator = _communicator(_registrations_path(event.public_id), organizer)

        connected, _ = await communicator.connect()
        assert connected
        initial = await communicator.receive_json_from()
        assert initial == {"feed": "registrations", "event_id": str(event.public_id), "value": []}

        await database_sync_to_async(ledger.register)(event.public_id, attendee.public_id)

        update = await communicator.receive_json_from(timeout=2)
        assert update["feed"] == "registrations"
        assert [r["user_id"] for r in update["value"]] == [str(attendee.public_id)]

        await communicator.disconnect()
