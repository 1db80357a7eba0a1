# mirror/synchronizer.py
"""
Dual-store synchronizer.

Reproduces committed primary-store state into the mirror database:
- every write is an upsert keyed by record identity, so replaying a
  snapshot leaves the mirror unchanged
- the mirrored registration_count is recomputed by counting the mirror's
  own RegistrationMirror rows, never copied from a counter
- any database failure is raised as MirrorWriteFailed

Snapshots name what changed. The state written is re-read from the
primary store when the sync runs, so a queued task that arrives late or
is retried after a newer change cannot resurrect a cancelled
registration or roll an event back to an older version.

After each successful write the new full value is published to the
push feeds (mirror.feeds).

rebuild_event / rebuild_all rebuild the mirror from the primary store and
are what the periodic reconciliation job runs.
"""

import logging

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils.dateparse import parse_datetime

from events.write_barrier import mirror_writes_allowed
from mirror import feeds, snapshots
from mirror.errors import MirrorWriteFailed
from mirror.models import EventMirror, RegistrationMirror

logger = logging.getLogger(__name__)


def _mirror_db() -> str:
    return getattr(settings, "MIRROR_DATABASE_ALIAS", "mirror")


def _parse_dt(value):
    return parse_datetime(value) if value else None


def _mirror_count(event_id) -> int:
    return RegistrationMirror.objects.using(_mirror_db()).filter(event_id=event_id).count()


def _primary_event(event_id):
    from events.models import Event

    return Event.objects.filter(public_id=event_id).select_related("created_by").first()


def _primary_registration(event_id, user_id):
    from events.models import Registration

    return (
        Registration.objects
        .filter(event__public_id=event_id, user__public_id=user_id)
        .select_related("event", "user")
        .first()
    )

def _upsert_event(snapshot: dict) -> EventMirror:
    db = _mirror_db()
    count = _mirror_count(snapshot["id"])
    data = {k: v for k, v in snapshot.items() if k != "registration_count"}
    mirror, _ = EventMirror.objects.using(db).update_or_create(
        event_id=snapshot["id"],
        defaults={
            "title": snapshot.get("title", ""),
            "date": _parse_dt(snapshot.get("date")),
            "category": snapshot.get("category") or "",
            "location": snapshot.get("location") or "",
            "max_attendees": snapshot.get("max_attendees"),
            "registration_count": count,
            "data": data,
        },
    )
    if count != snapshot.get("registration_count"):
        logger.info(
            "Mirror count for event %s is %s, primary snapshot says %s",
            snapshot["id"], count, snapshot.get("registration_count"),
            extra={
                "event_id": snapshot["id"],
                "mirror_count": count,
                "primary_count": snapshot.get("registration_count"),
            },
        )
    return mirror


def _upsert_registration(snapshot: dict) -> RegistrationMirror:
    mirror, _ = RegistrationMirror.objects.using(_mirror_db()).update_or_create(
        event_id=snapshot["event_id"],
        user_id=snapshot["user_id"],
        defaults={
            "display_name": snapshot.get("display_name") or "",
            "email": snapshot.get("email") or "",
            "registered_at": _parse_dt(snapshot.get("registered_at")),
        },
    )
    return mirror


def _publish(event_id: str, registrations: bool = True) -> None:
    if registrations:
        feeds.publish_registrations(event_id)
    feeds.publish_events()


def _sync_pair(operation: str, event_id: str, user_id: str) -> EventMirror | None:
    """
    Bring one (event, user) registration and its event in line with the primary.

    Returns None when the event no longer exists in the primary; the
    mirrored event is removed in that case.
    """
    try:
        event = _primary_event(event_id)
        if event is None:
            sync_event_removed(event_id)
            return None

        registration = _primary_registration(event_id, user_id)
        with transaction.atomic(using=_mirror_db()), mirror_writes_allowed():
            if registration is not None:
                _upsert_registration(snapshots.registration_snapshot(registration))
            else:
                RegistrationMirror.objects.using(_mirror_db()).filter(
                    event_id=event_id, user_id=user_id,
                ).delete()
            mirror = _upsert_event(snapshots.event_snapshot(event))
    except DatabaseError as exc:
        raise MirrorWriteFailed(operation, event_id, exc) from exc

    _publish(event_id)
    return mirror


def sync_event(event_snapshot: dict) -> EventMirror | None:
    """Upsert an event (creation or edit) into the mirror."""
    event_id = event_snapshot["id"]
    try:
        event = _primary_event(event_id)
        if event is None:
            sync_event_removed(event_id)
            return None
        with transaction.atomic(using=_mirror_db()), mirror_writes_allowed():
            mirror = _upsert_event(snapshots.event_snapshot(event))
    except DatabaseError as exc:
        raise MirrorWriteFailed("sync_event", event_id, exc) from exc

    _publish(event_id, registrations=False)
    return mirror


def sync_registration(event_snapshot: dict, registration_snapshot: dict) -> EventMirror | None:
    """Mirror an added registration, then the event with the recomputed count."""
    return _sync_pair(
        "sync_registration", event_snapshot["id"], registration_snapshot["user_id"],
    )


def sync_registration_removed(event_snapshot: dict, user_id: str) -> EventMirror | None:
    """Mirror a cancelled registration (no-op if absent), then refresh the count."""
    return _sync_pair("sync_registration_removed", event_snapshot["id"], str(user_id))


def sync_event_removed(event_id: str) -> None:
    """Delete an event and all its registrations from the mirror."""
    event_id = str(event_id)
    try:
        with transaction.atomic(using=_mirror_db()), mirror_writes_allowed():
            RegistrationMirror.objects.using(_mirror_db()).filter(event_id=event_id).delete()
            EventMirror.objects.using(_mirror_db()).filter(event_id=event_id).delete()
    except DatabaseError as exc:
        raise MirrorWriteFailed("sync_event_removed", event_id, exc) from exc

    _publish(event_id)


# =============================================================================
# Reconciliation
# =============================================================================

def rebuild_event(event_id) -> dict:
    """
    Make the mirror match the primary store for one event.

    Registrations missing from the primary are removed from the mirror,
    the rest are upserted, then the event row is refreshed. An event that
    no longer exists in the primary is removed.
    """
    from events.models import Registration

    event_id = str(event_id)
    event = _primary_event(event_id)
    if event is None:
        sync_event_removed(event_id)
        return {"event_id": event_id, "removed": True}

    registrations = list(
        Registration.objects.filter(event=event).select_related("event", "user")
    )
    live_users = [str(r.user.public_id) for r in registrations]

    try:
        with transaction.atomic(using=_mirror_db()), mirror_writes_allowed():
            stale, _ = (
                RegistrationMirror.objects.using(_mirror_db())
                .filter(event_id=event_id)
                .exclude(user_id__in=live_users)
                .delete()
            )
            for registration in registrations:
                _upsert_registration(snapshots.registration_snapshot(registration))
            mirror = _upsert_event(snapshots.event_snapshot(event))
    except DatabaseError as exc:
        raise MirrorWriteFailed("rebuild_event", event_id, exc) from exc

    _publish(event_id)
    return {
        "event_id": event_id,
        "registrations": len(registrations),
        "stale_removed": stale,
        "registration_count": mirror.registration_count,
    }


def rebuild_all() -> dict:
    """Rebuild every event and drop mirrored events the primary no longer has."""
    from events.models import Event

    primary_ids = {str(pk) for pk in Event.objects.values_list("public_id", flat=True)}
    mirrored_ids = {
        str(pk) for pk in EventMirror.objects.using(_mirror_db()).values_list("event_id", flat=True)
    }

    rebuilt = 0
    failed = []
    for event_id in sorted(primary_ids):
        try:
            rebuild_event(event_id)
            rebuilt += 1
        except MirrorWriteFailed as exc:
            logger.error("Mirror rebuild failed for event %s: %s", event_id, exc)
            failed.append(event_id)

    orphans = mirrored_ids - primary_ids
    for event_id in sorted(orphans):
        try:
            sync_event_removed(event_id)
        except MirrorWriteFailed as exc:
            logger.error("Mirror cleanup failed for event %s: %s", event_id, exc)
            failed.append(event_id)

    logger.info(
        "Mirror rebuild complete: %s events rebuilt, %s orphans removed, %s failed",
        rebuilt, len(orphans), len(failed),
    )
    return {"rebuilt": rebuilt, "orphans_removed": len(orphans), "failed": failed}


def find_drifted_events() -> list[str]:
    """Public ids of events whose mirrored count differs from the primary (or are missing)."""
    from events.models import Event

    mirrored = dict(
        EventMirror.objects.using(_mirror_db()).values_list("event_id", "registration_count")
    )
    drifted = []
    for public_id, count in Event.objects.values_list("public_id", "registration_count"):
        if mirrored.get(public_id) != count:
            drifted.append(str(public_id))
    return drifted
