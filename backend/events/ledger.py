# events/ledger.py
"""
Registration ledger.

The single authority for admitting and removing registrations and for
keeping Event.registration_count correct.

Every mutation runs as one transaction on the primary database and locks
the event row with SELECT ... FOR UPDATE, so register/cancel/delete calls
for the same event are serialized while different events never contend.
Inside the transaction the count is recomputed from the Registration rows
and corrected if it drifted, then the capacity gate is evaluated on it.

After commit the mirror is scheduled through mirror.dispatch. Mirror
failures never reach the caller.

Usage:
    from events import ledger

    registration = ledger.register(event_id, user_id)
    ledger.cancel(event_id, user_id)
    ledger.delete_event(event_id)
"""

import logging
import time
import uuid

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, OperationalError, transaction
from django.utils import timezone

from events.errors import (
    AlreadyRegistered,
    CapacityExceeded,
    Conflict,
    LedgerError,
    NotFound,
    NotRegistered,
)
from events.models import Event, Registration
from events.policies import can_admit
from events.write_barrier import ledger_writes_allowed
from mirror import dispatch
from mirror.snapshots import event_snapshot, registration_snapshot
from ops.metrics import record_ledger_outcome, record_ledger_retry

logger = logging.getLogger(__name__)

User = get_user_model()


def _coerce_uuid(value) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def _run(operation: str, fn):
    """
    Run one ledger transaction, retrying when the database aborts it.

    OperationalError covers deadlocks, serialization failures, lock
    timeouts and SQLite's "database is locked". Anything else propagates.
    """
    max_attempts = max(1, getattr(settings, "LEDGER_MAX_ATTEMPTS", 5))
    backoff = getattr(settings, "LEDGER_RETRY_BACKOFF", 0.05)

    attempt = 0
    while True:
        attempt += 1
        try:
            result = fn()
        except OperationalError as exc:
            if attempt >= max_attempts:
                logger.error(
                    "Ledger %s gave up after %s attempts: %s",
                    operation, attempt, exc,
                    extra={"operation": operation, "attempts": attempt},
                )
                record_ledger_outcome(operation, Conflict.code)
                raise Conflict() from exc
            record_ledger_retry(operation)
            logger.warning(
                "Ledger %s aborted by the database (attempt %s/%s), retrying",
                operation, attempt, max_attempts,
                extra={"operation": operation, "attempt": attempt},
            )
            time.sleep(backoff * attempt)
            continue
        except LedgerError as exc:
            record_ledger_outcome(operation, exc.code)
            raise

        record_ledger_outcome(operation, "ok")
        return result


def _lock_event(event_id) -> Event:
    event_uuid = _coerce_uuid(event_id)
    if event_uuid is None:
        raise NotFound()
    try:
        return Event.objects.select_for_update().get(public_id=event_uuid)
    except Event.DoesNotExist:
        raise NotFound()


def _resolve_user(user_id):
    if user_id is None or str(user_id).strip() == "":
        raise ValueError("user_id is required")
    user_uuid = _coerce_uuid(user_id)
    if user_uuid is None:
        raise NotFound("User not found.")
    try:
        return User.objects.get(public_id=user_uuid)
    except User.DoesNotExist:
        raise NotFound("User not found.")


def _reconciled_count(event: Event) -> int:
    """
    Count the event's registrations and report drift against the cache.

    Must be called with the event row locked.
    """
    actual = Registration.objects.filter(event=event).count()
    if actual != event.registration_count:
        logger.warning(
            "Registration count drift on event %s: cached=%s actual=%s",
            event.public_id, event.registration_count, actual,
            extra={
                "event_id": str(event.public_id),
                "cached_count": event.registration_count,
                "actual_count": actual,
            },
        )
    return actual


def get_event(event_id) -> Event:
    """Read an event from the primary store. Raises NotFound if absent."""
    event_uuid = _coerce_uuid(event_id)
    if event_uuid is None:
        raise NotFound()
    try:
        return Event.objects.get(public_id=event_uuid)
    except Event.DoesNotExist:
        raise NotFound()


def register(event_id, user_id, registrant: dict | None = None) -> Registration:
    """
    Register a user for an event.

    Args:
        event_id: Event public id
        user_id: User public id
        registrant: Optional {"display_name", "email"}; defaults to the user's own

    Raises:
        NotFound: Event (or user) absent
        AlreadyRegistered: The (event, user) registration exists
        CapacityExceeded: The event is full
        Conflict: Retries exhausted
    """
    registrant = registrant or {}

    def attempt():
        with transaction.atomic(), ledger_writes_allowed():
            event = _lock_event(event_id)
            user = _resolve_user(user_id)

            if Registration.objects.filter(event=event, user=user).exists():
                raise AlreadyRegistered()

            current = _reconciled_count(event)
            admitted, reason = can_admit(current, event.max_attendees)
            if not admitted:
                raise CapacityExceeded(reason)

            try:
                with transaction.atomic():
                    registration = Registration.objects.create(
                        event=event,
                        user=user,
                        display_name=registrant.get("display_name") or user.display_name,
                        email=registrant.get("email") or user.email,
                        registered_at=timezone.now(),
                    )
            except IntegrityError:
                raise AlreadyRegistered()

            event.registration_count = current + 1
            event.save(update_fields=["registration_count"])

            event_snap = event_snapshot(event)
            registration_snap = registration_snapshot(registration)
            transaction.on_commit(
                lambda: dispatch.registration_added(event_snap, registration_snap)
            )

        logger.info(
            "Registered user %s for event %s",
            user.public_id, event.public_id,
            extra={
                "event_id": str(event.public_id),
                "user_id": str(user.public_id),
                "registration_count": event.registration_count,
            },
        )
        return registration

    return _run("register", attempt)


def cancel(event_id, user_id) -> None:
    """
    Cancel a user's registration.

    The count is set from the recomputed number of remaining registrations
    and never goes below zero.

    Raises:
        NotFound: Event absent
        NotRegistered: No registration for (event, user)
        Conflict: Retries exhausted
    """

    def attempt():
        with transaction.atomic(), ledger_writes_allowed():
            event = _lock_event(event_id)
            user_uuid = _coerce_uuid(user_id)
            if user_uuid is None:
                raise NotRegistered()

            registration = (
                Registration.objects
                .filter(event=event, user__public_id=user_uuid)
                .first()
            )
            if registration is None:
                raise NotRegistered()

            current = _reconciled_count(event)
            registration.delete()

            event.registration_count = max(current - 1, 0)
            event.save(update_fields=["registration_count"])

            event_snap = event_snapshot(event)
            removed_user = str(user_uuid)
            transaction.on_commit(
                lambda: dispatch.registration_removed(event_snap, removed_user)
            )

        logger.info(
            "Cancelled registration of user %s for event %s",
            user_uuid, event.public_id,
            extra={
                "event_id": str(event.public_id),
                "user_id": str(user_uuid),
                "registration_count": event.registration_count,
            },
        )

    _run("cancel", attempt)


def delete_event(event_id) -> None:
    """
    Delete an event and every registration for it in one transaction.

    Raises:
        NotFound: Event absent
        Conflict: Retries exhausted
    """

    def attempt():
        with transaction.atomic(), ledger_writes_allowed():
            event = _lock_event(event_id)
            removed_id = str(event.public_id)

            deleted, _ = Registration.objects.filter(event=event).delete()
            event.delete()

            transaction.on_commit(lambda: dispatch.event_removed(removed_id))

        logger.info(
            "Deleted event %s with %s registrations",
            removed_id, deleted,
            extra={"event_id": removed_id, "registrations_deleted": deleted},
        )

    _run("delete_event", attempt)


def is_registered(event_id, user_id) -> bool:
    event_uuid = _coerce_uuid(event_id)
    user_uuid = _coerce_uuid(user_id)
    if event_uuid is None or user_uuid is None:
        return False
    return Registration.objects.filter(
        event__public_id=event_uuid,
        user__public_id=user_uuid,
    ).exists()


async def subscribe_registrations(event_id, on_change):
    """
    Observe an event's registrations through the mirror.

    Returns an async unsubscribe callable.
    """
    from mirror.feeds import subscribe_registrations as _subscribe

    return await _subscribe(event_id, on_change)
