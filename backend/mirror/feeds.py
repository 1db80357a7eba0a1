# mirror/feeds.py
"""
Push feeds over the Channels layer.

Groups:
- registrations.<event_id>: the full registration list of one event
- events.feed: the full list of mirrored events

Publishers read the current value from the mirror and send it whole.
Subscribers join a group on a fresh channel, receive the current value
immediately and then every published value, each reconciled into their
local state with merge_records before their callback runs.
"""

import asyncio
import inspect
import logging

from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from django.conf import settings

from mirror.models import EventMirror, RegistrationMirror
from mirror.reconcile import merge_records

logger = logging.getLogger(__name__)

EVENTS_GROUP = "events.feed"
MESSAGE_TYPE = "feed.update"


def registrations_group(event_id) -> str:
    return f"registrations.{event_id}"


def _mirror_db() -> str:
    return getattr(settings, "MIRROR_DATABASE_ALIAS", "mirror")


def registrations_value(event_id) -> list[dict]:
    rows = RegistrationMirror.objects.using(_mirror_db()).filter(event_id=str(event_id))
    return [row.as_value() for row in rows.order_by("registered_at", "id")]


def events_value() -> list[dict]:
    rows = EventMirror.objects.using(_mirror_db()).order_by("date", "id")
    return [row.as_value() for row in rows]


def visible_events(value: list[dict], actor=None) -> list[dict]:
    """
    Restrict an events value to what `actor` may see.

    Anonymous viewers (actor None) see public events. Signed-in users also
    see the private events they organize; administrators see all of them.
    """
    if actor is not None and actor.is_admin:
        return list(value)
    viewer_id = str(actor.user_id) if actor is not None else None
    return [
        item for item in value
        if item.get("is_public") or (viewer_id and item.get("created_by") == viewer_id)
    ]


def _group_send(group: str, message: dict) -> None:
    layer = get_channel_layer()
    if layer is None:
        return
    async_to_sync(layer.group_send)(group, message)


def publish_registrations(event_id) -> None:
    event_id = str(event_id)
    try:
        _group_send(
            registrations_group(event_id),
            {
                "type": MESSAGE_TYPE,
                "feed": "registrations",
                "event_id": event_id,
                "value": registrations_value(event_id),
            },
        )
    except Exception as exc:
        logger.error(
            "Failed to publish registrations for event %s: %s",
            event_id, exc,
            extra={"event_id": event_id},
        )


def publish_events() -> None:
    try:
        _group_send(
            EVENTS_GROUP,
            {"type": MESSAGE_TYPE, "feed": "events", "value": events_value()},
        )
    except Exception as exc:
        logger.error("Failed to publish events feed: %s", exc)


async def _subscribe(group: str, load_value, key: str, on_change, view=None):
    layer = get_channel_layer()
    channel = await layer.new_channel()
    await layer.group_add(group, channel)

    local: list[dict] = []

    async def deliver(remote: list[dict]) -> None:
        nonlocal local
        if view is not None:
            remote = view(remote)
        local = merge_records(local, remote, key)
        result = on_change(local)
        if inspect.isawaitable(result):
            await result

    try:
        await deliver(await database_sync_to_async(load_value)())
    except BaseException:
        await layer.group_discard(group, channel)
        raise

    async def pump() -> None:
        while True:
            message = await layer.receive(channel)
            try:
                await deliver(message["value"])
            except Exception:
                logger.exception("Feed subscriber for %s failed", group)

    task = asyncio.ensure_future(pump())

    async def unsubscribe() -> None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        await layer.group_discard(group, channel)

    return unsubscribe


async def subscribe_registrations(event_id, on_change):
    """
    Observe an event's registrations.

    `on_change` (sync or async) receives the reconciled list on subscribe
    and after every change. Returns an async unsubscribe callable.
    """
    event_id = str(event_id)
    return await _subscribe(
        registrations_group(event_id),
        lambda: registrations_value(event_id),
        "user_id",
        on_change,
    )


async def subscribe_events(on_change, actor=None):
    """
    Observe the mirrored event list as `actor` may see it (see visible_events).

    Returns an async unsubscribe callable.
    """
    return await _subscribe(
        EVENTS_GROUP,
        events_value,
        "id",
        on_change,
        view=lambda value: visible_events(value, actor),
    )
