# mirror/dispatch.py
"""
Post-commit dispatch of mirror work.

The ledger calls these from transaction.on_commit hooks. With
MIRROR_SYNC on (development, tests) the synchronizer runs inline;
otherwise the work is queued on Celery, which retries it.

Nothing here raises: the primary commit is already durable, so a mirror
failure is logged and counted and left for the task retries or the
periodic rebuild to heal.
"""

import logging

from django.conf import settings

from mirror import synchronizer
from mirror.errors import MirrorWriteFailed
from ops.metrics import record_mirror_failure

logger = logging.getLogger(__name__)


def _run_inline(operation: str, fn, *args) -> None:
    try:
        fn(*args)
    except MirrorWriteFailed as exc:
        logger.error(
            "Mirror write failed: %s",
            exc,
            extra={"operation": operation, "event_id": exc.event_id},
        )
        record_mirror_failure(operation)


def _enqueue(operation: str, task, *args) -> None:
    try:
        task.delay(*args)
    except Exception as exc:
        logger.error(
            "Could not enqueue mirror %s: %s",
            operation, exc,
            extra={"operation": operation},
        )
        record_mirror_failure(operation)


def event_changed(event_snapshot: dict) -> None:
    if settings.MIRROR_SYNC:
        _run_inline("sync_event", synchronizer.sync_event, event_snapshot)
    else:
        from mirror.tasks import sync_event_task
        _enqueue("sync_event", sync_event_task, event_snapshot)


def registration_added(event_snapshot: dict, registration_snapshot: dict) -> None:
    if settings.MIRROR_SYNC:
        _run_inline(
            "sync_registration",
            synchronizer.sync_registration,
            event_snapshot,
            registration_snapshot,
        )
    else:
        from mirror.tasks import sync_registration_task
        _enqueue("sync_registration", sync_registration_task, event_snapshot, registration_snapshot)


def registration_removed(event_snapshot: dict, user_id: str) -> None:
    if settings.MIRROR_SYNC:
        _run_inline(
            "sync_registration_removed",
            synchronizer.sync_registration_removed,
            event_snapshot,
            user_id,
        )
    else:
        from mirror.tasks import sync_registration_removed_task
        _enqueue("sync_registration_removed", sync_registration_removed_task, event_snapshot, user_id)


def event_removed(event_id: str) -> None:
    if settings.MIRROR_SYNC:
        _run_inline("sync_event_removed", synchronizer.sync_event_removed, event_id)
    else:
        from mirror.tasks import sync_event_removed_task
        _enqueue("sync_event_removed", sync_event_removed_task, event_id)
