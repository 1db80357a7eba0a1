# events/commands.py
"""
Command layer for events.

ALL mutations of events and registrations go through these commands:
- Event creation, edits and deletion
- Registration and cancellation (delegated to events.ledger)

Commands check ownership policies, run the write inside the right write
context and schedule mirroring after commit. Ledger errors come back as
CommandResult.fail(..., code=<error code>) so views can map them to HTTP
statuses without catching exceptions.
"""

import logging

from django.core.exceptions import PermissionDenied
from django.db import transaction

from accounts.authz import ActorContext
from events import ledger
from events.errors import LedgerError
from events.models import Event
from events.policies import can_manage_event
from events.write_barrier import command_writes_allowed
from mirror import dispatch
from mirror.snapshots import event_snapshot

logger = logging.getLogger(__name__)


EDITABLE_FIELDS = {
    "title",
    "description",
    "date",
    "location",
    "category",
    "banner",
    "max_attendees",
    "is_public",
    "is_paid",
    "price",
    "tags",
}


class CommandResult:
    """
    Wrapper for command results with success/failure info.

    Usage:
        result = register_for_event(actor, event_id)
        if result.success:
            registration = result.data
        else:
            error_message, error_code = result.error, result.code
    """

    def __init__(self, success: bool, data=None, error: str = None, code: str = None):
        self.success = success
        self.data = data
        self.error = error
        self.code = code

    @classmethod
    def ok(cls, data=None):
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, code: str = "invalid"):
        return cls(success=False, error=error, code=code)


def _schedule_event_sync(event: Event) -> None:
    snapshot = event_snapshot(event)
    transaction.on_commit(lambda: dispatch.event_changed(snapshot))


def _require_manage(actor: ActorContext, event: Event) -> None:
    allowed, reason = can_manage_event(actor, event)
    if not allowed:
        raise PermissionDenied(reason)


# =============================================================================
# Event Commands
# =============================================================================

@transaction.atomic
def create_event(actor: ActorContext, **data) -> CommandResult:
    """
    Create an event organized by the actor.

    The registration count always starts at zero; capacity is optional.
    """
    unknown = set(data) - EDITABLE_FIELDS
    if unknown:
        return CommandResult.fail(f"Unknown fields: {', '.join(sorted(unknown))}")

    if not (data.get("title") or "").strip():
        return CommandResult.fail("Title is required.")
    if data.get("is_paid") and data.get("price") is None:
        return CommandResult.fail("Paid events need a price.")

    with command_writes_allowed():
        event = Event.objects.create(created_by=actor.user, **data)

    _schedule_event_sync(event)
    logger.info(
        "Event %s created by %s", event.public_id, actor.user_id,
        extra={"event_id": str(event.public_id), "user_id": str(actor.user_id)},
    )
    return CommandResult.ok(event)


@transaction.atomic
def update_event(actor: ActorContext, event_id, **changes) -> CommandResult:
    """
    Edit an event's attributes.

    Edits never touch registration_count. Capacity may not drop below
    the number of existing registrations.
    """
    if "registration_count" in changes:
        return CommandResult.fail("registration_count cannot be edited.")

    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        return CommandResult.fail(f"Unknown fields: {', '.join(sorted(unknown))}")

    event = Event.objects.select_for_update().filter(public_id=event_id).first()
    if event is None:
        return CommandResult.fail("Event not found.", code="not_found")

    _require_manage(actor, event)

    if "title" in changes and not (changes["title"] or "").strip():
        return CommandResult.fail("Title is required.")

    capacity = changes.get("max_attendees", event.max_attendees)
    if capacity is not None and capacity < event.registration_count:
        return CommandResult.fail(
            f"Capacity cannot be lower than the {event.registration_count} existing registrations."
        )

    is_paid = changes.get("is_paid", event.is_paid)
    price = changes.get("price", event.price)
    if is_paid and price is None:
        return CommandResult.fail("Paid events need a price.")

    if not changes:
        return CommandResult.ok(event)

    for field, value in changes.items():
        setattr(event, field, value)

    with command_writes_allowed():
        event.save(update_fields=[*changes.keys(), "updated_at"])

    _schedule_event_sync(event)
    logger.info(
        "Event %s updated by %s", event.public_id, actor.user_id,
        extra={"event_id": str(event.public_id), "fields": sorted(changes)},
    )
    return CommandResult.ok(event)


def delete_event(actor: ActorContext, event_id) -> CommandResult:
    """Delete an event and all its registrations. Banner removal is best-effort."""
    event = Event.objects.filter(public_id=event_id).first()
    if event is None:
        return CommandResult.fail("Event not found.", code="not_found")

    _require_manage(actor, event)
    banner = event.banner.name if event.banner else ""
    storage = event.banner.storage

    try:
        ledger.delete_event(event.public_id)
    except LedgerError as exc:
        return CommandResult.fail(exc.message, code=exc.code)

    if banner:
        try:
            storage.delete(banner)
        except OSError as exc:
            logger.warning("Could not remove banner %s: %s", banner, exc)

    return CommandResult.ok()


# =============================================================================
# Registration Commands
# =============================================================================

def register_for_event(actor: ActorContext, event_id, registrant: dict | None = None) -> CommandResult:
    try:
        registration = ledger.register(event_id, actor.user_id, registrant)
    except LedgerError as exc:
        return CommandResult.fail(exc.message, code=exc.code)
    return CommandResult.ok(registration)


def cancel_registration(actor: ActorContext, event_id) -> CommandResult:
    try:
        ledger.cancel(event_id, actor.user_id)
    except LedgerError as exc:
        return CommandResult.fail(exc.message, code=exc.code)
    return CommandResult.ok()
