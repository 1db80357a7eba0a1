# tests/test_ledger.py
"""
Tests for the registration ledger.

Tests cover:
- Register / cancel / delete_event / is_registered semantics
- Count correctness and drift correction
- Capacity enforcement, sequential and from concurrent threads
- Bounded retry then Conflict
- The end-to-end scenarios for a capacity-2 event
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier
from uuid import uuid4

import pytest
from django.db import OperationalError, connection, connections

from events import ledger
from events.errors import (
    AlreadyRegistered,
    CapacityExceeded,
    Conflict,
    NotFound,
    NotRegistered,
)
from events.models import Event, Registration
from mirror.models import EventMirror, RegistrationMirror


BOTH_DATABASES = ["default", "mirror"]


def _count(event) -> int:
    return Event.objects.get(pk=event.pk).registration_count


def _rows(event) -> int:
    return Registration.objects.filter(event=event).count()


# =============================================================================
# Register
# =============================================================================

@pytest.mark.django_db(databases=BOTH_DATABASES)
class TestRegister:
    def test_register_creates_registration_and_increments_count(self, event, attendee):
        registration = ledger.register(event.public_id, attendee.public_id)

        assert registration.event_id == event.pk
        assert registration.user_id == attendee.pk
        assert registration.registered_at is not None
        assert _count(event) == 1
        assert _rows(event) == 1

    def test_registrant_defaults_to_user_profile(self, event, attendee):
        registration = ledger.register(event.public_id, attendee.public_id)

        assert registration.display_name == attendee.name
        assert registration.email == attendee.email

    def test_registrant_details_override_profile(self, event, attendee):
        registration = ledger.register(
            event.public_id,
            attendee.public_id,
            {"display_name": "A. Attendee", "email": "work@test.com"},
        )

        assert registration.display_name == "A. Attendee"
        assert registration.email == "work@test.com"

    def test_accepts_string_ids(self, event, attendee):
        ledger.register(str(event.public_id), str(attendee.public_id))
        assert ledger.is_registered(str(event.public_id), str(attendee.public_id))

    def test_unknown_event_raises_not_found(self, attendee):
        with pytest.raises(NotFound):
            ledger.register(uuid4(), attendee.public_id)

    def test_malformed_event_id_raises_not_found(self, attendee):
        with pytest.raises(NotFound):
            ledger.register("not-a-uuid", attendee.public_id)

    def test_unknown_user_raises_not_found(self, event):
        with pytest.raises(NotFound, match="User not found"):
            ledger.register(event.public_id, uuid4())
        assert _count(event) == 0

    def test_empty_user_id_is_rejected(self, event):
        with pytest.raises(ValueError):
            ledger.register(event.public_id, "")

    def test_duplicate_registration_raises(self, event, attendee):
        ledger.register(event.public_id, attendee.public_id)

        with pytest.raises(AlreadyRegistered) as exc_info:
            ledger.register(event.public_id, attendee.public_id)

        assert exc_info.value.code == "already_registered"
        assert _count(event) == 1
        assert _rows(event) == 1

    def test_full_event_raises_capacity_exceeded(self, small_event, make_user):
        for _ in range(2):
            ledger.register(small_event.public_id, make_user().public_id)

        with pytest.raises(CapacityExceeded) as exc_info:
            ledger.register(small_event.public_id, make_user().public_id)

        assert exc_info.value.code == "capacity_exceeded"
        assert _count(small_event) == 2

    def test_zero_capacity_admits_nobody(self, make_event, attendee):
        closed = make_event(max_attendees=0)

        with pytest.raises(CapacityExceeded):
            ledger.register(closed.public_id, attendee.public_id)

    def test_drifted_count_is_corrected(self, event, make_user):
        ledger.register(event.public_id, make_user().public_id)
        Event.objects.filter(pk=event.pk).update(registration_count=7)

        ledger.register(event.public_id, make_user().public_id)

        assert _count(event) == 2 == _rows(event)

    def test_capacity_gate_uses_actual_count(self, small_event, make_user):
        """A stale cached count must not let a third registrant in."""
        ledger.register(small_event.public_id, make_user().public_id)
        ledger.register(small_event.public_id, make_user().public_id)
        Event.objects.filter(pk=small_event.pk).update(registration_count=0)

        with pytest.raises(CapacityExceeded):
            ledger.register(small_event.public_id, make_user().public_id)
        assert _rows(small_event) == 2


# =============================================================================
# Cancel
# =============================================================================

@pytest.mark.django_db(databases=BOTH_DATABASES)
class TestCancel:
    def test_cancel_removes_registration_and_decrements(self, event, attendee):
        ledger.register(event.public_id, attendee.public_id)

        ledger.cancel(event.public_id, attendee.public_id)

        assert _count(event) == 0
        assert not ledger.is_registered(event.public_id, attendee.public_id)

    def test_cancel_without_registration_raises(self, event, attendee):
        with pytest.raises(NotRegistered) as exc_info:
            ledger.cancel(event.public_id, attendee.public_id)
        assert exc_info.value.code == "not_registered"

    def test_cancel_unknown_event_raises_not_found(self, attendee):
        with pytest.raises(NotFound):
            ledger.cancel(uuid4(), attendee.public_id)

    def test_count_never_goes_negative(self, event, attendee):
        ledger.register(event.public_id, attendee.public_id)
        Event.objects.filter(pk=event.pk).update(registration_count=0)

        ledger.cancel(event.public_id, attendee.public_id)

        assert _count(event) == 0

    def test_double_cancel_keeps_count_at_zero(self, event, attendee):
        ledger.register(event.public_id, attendee.public_id)
        ledger.cancel(event.public_id, attendee.public_id)

        with pytest.raises(NotRegistered):
            ledger.cancel(event.public_id, attendee.public_id)

        assert _count(event) == 0

    def test_cancel_only_affects_own_registration(self, event, attendee, make_user):
        other = make_user()
        ledger.register(event.public_id, attendee.public_id)
        ledger.register(event.public_id, other.public_id)

        ledger.cancel(event.public_id, attendee.public_id)

        assert _count(event) == 1
        assert ledger.is_registered(event.public_id, other.public_id)

    def test_reregister_after_cancel(self, event, attendee):
        ledger.register(event.public_id, attendee.public_id)
        ledger.cancel(event.public_id, attendee.public_id)

        ledger.register(event.public_id, attendee.public_id)

        assert _count(event) == 1


# =============================================================================
# Delete
# =============================================================================

@pytest.mark.django_db(databases=BOTH_DATABASES)
class TestDeleteEvent:
    def test_cascade_delete_removes_all_registrations(
        self, event, make_user, django_capture_on_commit_callbacks
    ):
        users = [make_user() for _ in range(5)]
        with django_capture_on_commit_callbacks(execute=True):
            for user in users:
                ledger.register(event.public_id, user.public_id)
        assert RegistrationMirror.objects.filter(event_id=event.public_id).count() == 5

        with django_capture_on_commit_callbacks(execute=True):
            ledger.delete_event(event.public_id)

        assert Registration.objects.filter(event_id=event.pk).count() == 0
        assert not Event.objects.filter(pk=event.pk).exists()
        assert not EventMirror.objects.filter(event_id=event.public_id).exists()
        assert RegistrationMirror.objects.filter(event_id=event.public_id).count() == 0

    def test_delete_unknown_event_raises(self):
        with pytest.raises(NotFound):
            ledger.delete_event(uuid4())

    def test_delete_leaves_other_events_alone(self, make_event, attendee):
        keep = make_event(title="Keep")
        drop = make_event(title="Drop")
        ledger.register(keep.public_id, attendee.public_id)
        ledger.register(drop.public_id, attendee.public_id)

        ledger.delete_event(drop.public_id)

        assert ledger.is_registered(keep.public_id, attendee.public_id)
        assert _count(keep) == 1


# =============================================================================
# Retry
# =============================================================================

@pytest.mark.django_db(databases=BOTH_DATABASES)
class TestConflictRetry:
    def test_retries_exhausted_raise_conflict(self, event, attendee, settings, monkeypatch):
        settings.LEDGER_MAX_ATTEMPTS = 3
        calls = []

        def always_locked(event_id):
            calls.append(event_id)
            raise OperationalError("database is locked")

        monkeypatch.setattr(ledger, "_lock_event", always_locked)

        with pytest.raises(Conflict) as exc_info:
            ledger.register(event.public_id, attendee.public_id)

        assert exc_info.value.code == "conflict"
        assert len(calls) == 3
        assert _rows(event) == 0

    def test_transient_failure_is_retried(self, event, attendee, settings, monkeypatch):
        settings.LEDGER_MAX_ATTEMPTS = 3
        original = ledger._lock_event
        calls = []

        def locked_once(event_id):
            calls.append(event_id)
            if len(calls) == 1:
                raise OperationalError("deadlock detected")
            return original(event_id)

        monkeypatch.setattr(ledger, "_lock_event", locked_once)

        ledger.register(event.public_id, attendee.public_id)

        assert len(calls) == 2
        assert _count(event) == 1

    def test_domain_errors_are_not_retried(self, event, attendee, monkeypatch):
        original = ledger._lock_event
        calls = []

        def counting(event_id):
            calls.append(event_id)
            return original(event_id)

        monkeypatch.setattr(ledger, "_lock_event", counting)

        with pytest.raises(NotRegistered):
            ledger.cancel(event.public_id, attendee.public_id)
        assert len(calls) == 1


# =============================================================================
# Capacity under load
# =============================================================================

@pytest.mark.django_db(databases=BOTH_DATABASES)
class TestCapacitySequential:
    def test_n_plus_one_registrants(self, make_event, make_user):
        capacity = 5
        capped = make_event(max_attendees=capacity)
        users = [make_user() for _ in range(capacity + 1)]

        outcomes = []
        for user in users:
            try:
                ledger.register(capped.public_id, user.public_id)
                outcomes.append("ok")
            except CapacityExceeded:
                outcomes.append("full")

        assert outcomes.count("ok") == capacity
        assert outcomes.count("full") == 1
        assert _count(capped) == capacity == _rows(capped)


def _threads_share_test_database() -> bool:
    """False for in-memory SQLite, where each thread would see its own empty database."""
    if connection.vendor != "sqlite":
        return True
    name = str(connection.settings_dict.get("TEST", {}).get("NAME") or "")
    return name not in ("", ":memory:") and "mode=memory" not in name


@pytest.mark.skipif(
    not _threads_share_test_database(),
    reason="Concurrent registrations need a file-backed or server test database",
)
@pytest.mark.django_db(transaction=True, databases=BOTH_DATABASES)
class TestCapacityConcurrent:
    """
    N+1 concurrent registrations against capacity N.

    Runs on PostgreSQL (row locks) and on file-backed SQLite, where the
    database lock aborts contending writers with "database is locked" and
    the ledger retries them.

    Note: This test requires transaction=True to test real concurrency.
    """

    def test_concurrent_registrations_respect_capacity(self, make_event, make_user, settings):
        settings.LEDGER_MAX_ATTEMPTS = 50
        settings.LEDGER_RETRY_BACKOFF = 0.01
        capacity = 4
        capped = make_event(max_attendees=capacity)
        user_ids = [make_user().public_id for _ in range(capacity + 1)]
        barrier = Barrier(len(user_ids))

        def attempt(user_id):
            barrier.wait()
            try:
                ledger.register(capped.public_id, user_id)
                return "ok"
            except CapacityExceeded:
                return "full"
            finally:
                connections.close_all()

        with ThreadPoolExecutor(max_workers=len(user_ids)) as pool:
            outcomes = list(pool.map(attempt, user_ids))

        assert outcomes.count("ok") == capacity
        assert outcomes.count("full") == 1
        assert _count(capped) == capacity == _rows(capped)


# =============================================================================
# End-to-end scenarios
# =============================================================================

@pytest.mark.django_db(databases=BOTH_DATABASES)
class TestScenarios:
    def test_third_registrant_rejected_at_capacity_two(self, small_event, make_user):
        u1, u2, u3 = make_user(), make_user(), make_user()

        ledger.register(small_event.public_id, u1.public_id)
        assert _count(small_event) == 1
        ledger.register(small_event.public_id, u2.public_id)
        assert _count(small_event) == 2

        with pytest.raises(CapacityExceeded):
            ledger.register(small_event.public_id, u3.public_id)
        assert _count(small_event) == 2

    def test_same_user_twice(self, small_event, attendee):
        ledger.register(small_event.public_id, attendee.public_id)

        with pytest.raises(AlreadyRegistered):
            ledger.register(small_event.public_id, attendee.public_id)
        assert _count(small_event) == 1

    def test_register_cancel_cancel(self, small_event, attendee):
        ledger.register(small_event.public_id, attendee.public_id)
        ledger.cancel(small_event.public_id, attendee.public_id)

        with pytest.raises(NotRegistered):
            ledger.cancel(small_event.public_id, attendee.public_id)
        assert _count(small_event) == 0

    def test_delete_after_three_registrations(self, make_event, make_user):
        target = make_event(max_attendees=10)
        users = [make_user() for _ in range(3)]
        for user in users:
            ledger.register(target.public_id, user.public_id)

        ledger.delete_event(target.public_id)

        for user in users:
            assert ledger.is_registered(target.public_id, user.public_id) is False
        with pytest.raises(NotFound):
            ledger.get_event(target.public_id)


@pytest.mark.django_db(databases=BOTH_DATABASES)
class TestIsRegistered:
    def test_false_for_malformed_ids(self):
        assert ledger.is_registered("nope", "nope") is False

    def test_false_before_and_true_after(self, event, attendee):
        assert ledger.is_registered(event.public_id, attendee.public_id) is False
        ledger.register(event.public_id, attendee.public_id)
        assert ledger.is_registered(event.public_id, attendee.public_id) is True
