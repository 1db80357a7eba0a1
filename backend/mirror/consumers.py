# mirror/consumers.py
"""
WebSocket consumers for the push feeds.

Both consumers join the feed's group, send the current value on connect
and forward every published value. Messages have the shape
{"feed": "events" | "registrations", "value": [...]}.

The events feed is filtered per connection with feeds.visible_events.
The registrations feed is only open to the event's organizer and
administrators (close codes 4401 unauthenticated, 4403 forbidden,
4404 unknown event).
"""

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from accounts.authz import ActorContext
from events.policies import can_view_registrations
from mirror import feeds


def _actor_for(user):
    if user is None or not user.is_authenticated or not user.is_active:
        return None
    return ActorContext(user=user)


def _event_for(event_id):
    from events.models import Event

    return Event.objects.filter(public_id=event_id).first()


class EventFeedConsumer(AsyncJsonWebsocketConsumer):
    group_name = feeds.EVENTS_GROUP

    async def connect(self):
        self.actor = _actor_for(self.scope.get("user"))
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        value = await database_sync_to_async(feeds.events_value)()
        await self.send_json({"feed": "events", "value": feeds.visible_events(value, self.actor)})

    async def disconnect(self, code):
        await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def feed_update(self, message):
        await self.send_json({
            "feed": message["feed"],
            "value": feeds.visible_events(message["value"], self.actor),
        })


class RegistrationFeedConsumer(AsyncJsonWebsocketConsumer):
    """Registrations of one event; organizer and administrators only."""

    group_name = None

    async def connect(self):
        actor = _actor_for(self.scope.get("user"))
        if actor is None:
            await self.close(code=4401)
            return

        self.event_id = str(self.scope["url_route"]["kwargs"]["event_id"])
        event = await database_sync_to_async(_event_for)(self.event_id)
        if event is None:
            await self.close(code=4404)
            return

        allowed, _ = can_view_registrations(actor, event)
        if not allowed:
            await self.close(code=4403)
            return

        self.group_name = feeds.registrations_group(self.event_id)

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        value = await database_sync_to_async(feeds.registrations_value)(self.event_id)
        await self.send_json({"feed": "registrations", "event_id": self.event_id, "value": value})

    async def disconnect(self, code):
        if self.group_name:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def feed_update(self, message):
        await self.send_json({
            "feed": message["feed"],
            "event_id": message.get("event_id"),
            "value": message["value"],
        })
