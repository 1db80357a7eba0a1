# events/policies.py
"""
Pure policy functions for events.

Policies never touch the database. They return (allowed, reason) so
callers can surface the reason to the user.
"""


def can_admit(current_count: int, capacity: int | None) -> tuple[bool, str]:
    """
    Decide whether one more registrant fits.

    Only meaningful when evaluated on a count read under the event's row
    lock, inside the ledger transaction.

    Raises:
        ValueError: If either input is negative
    """
    if current_count < 0:
        raise ValueError("current_count must be non-negative")
    if capacity is not None and capacity < 0:
        raise ValueError("capacity must be non-negative")

    if capacity is None or current_count < capacity:
        return True, ""
    return False, "Event has reached maximum capacity."


def can_manage_event(actor, event) -> tuple[bool, str]:
    """Organizers and administrators may edit or delete an event."""
    if actor.is_admin:
        return True, ""
    if event.created_by_id is not None and event.created_by_id == actor.user.pk:
        return True, ""
    return False, "Only the organizer or an administrator can manage this event."


def can_view_registrations(actor, event) -> tuple[bool, str]:
    allowed, _ = can_manage_event(actor, event)
    if allowed:
        return True, ""
    return False, "Only the organizer or an administrator can view registrations."
