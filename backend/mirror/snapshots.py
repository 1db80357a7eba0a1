# mirror/snapshots.py
"""
Post-commit snapshots handed from the ledger to the synchronizer.

Snapshots are plain JSON-serializable dicts so they can travel through
Celery unchanged. They are built inside the ledger transaction and
describe the committed state, never a diff.
"""


def _iso(value):
    return value.isoformat() if value is not None else None


def event_snapshot(event) -> dict:
    return {
        "id": str(event.public_id),
        "title": event.title,
        "description": event.description,
        "date": _iso(event.date),
        "location": event.location,
        "category": event.category,
        "banner": event.banner.name if event.banner else "",
        "created_by": str(event.created_by.public_id) if event.created_by_id else None,
        "max_attendees": event.max_attendees,
        "registration_count": event.registration_count,
        "is_public": event.is_public,
        "is_paid": event.is_paid,
        "price": str(event.price) if event.price is not None else None,
        "tags": list(event.tags or []),
        "created_at": _iso(event.created_at),
        "updated_at": _iso(event.updated_at),
    }


def registration_snapshot(registration) -> dict:
    return {
        "event_id": str(registration.event.public_id),
        "user_id": str(registration.user.public_id),
        "display_name": registration.display_name,
        "email": registration.email,
        "registered_at": _iso(registration.registered_at),
    }
