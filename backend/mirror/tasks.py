"""
Celery tasks for mirror synchronization.

Each task wraps one synchronizer call. MirrorWriteFailed is retried with
exponential backoff; once retries are exhausted the failure is logged and
counted, and the periodic reconcile_mirror task heals the mirror.

Tasks:
- sync_event_task / sync_registration_task / sync_registration_removed_task /
  sync_event_removed_task: post-commit mirroring
- rebuild_event_task: rebuild one event from the primary store
- reconcile_mirror: rebuild every event (scheduled by Celery Beat)
"""
import logging

from celery import Task, shared_task

from mirror import synchronizer
from mirror.errors import MirrorWriteFailed
from ops.metrics import record_mirror_failure

logger = logging.getLogger(__name__)


class MirrorTask(Task):
    """Reports the final failure of a mirror task."""

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        operation = self.name.rsplit(".", 1)[-1]
        logger.error(
            f"Mirror task {self.name} failed permanently: {exc}",
            extra={"task_id": task_id, "operation": operation},
        )
        record_mirror_failure(operation)


_retry_options = dict(
    base=MirrorTask,
    bind=True,
    max_retries=5,
    autoretry_for=(MirrorWriteFailed,),
    retry_backoff=True,
    retry_backoff_max=300,
)


@shared_task(**_retry_options)
def sync_event_task(self, event_snapshot: dict) -> None:
    synchronizer.sync_event(event_snapshot)


@shared_task(**_retry_options)
def sync_registration_task(self, event_snapshot: dict, registration_snapshot: dict) -> None:
    synchronizer.sync_registration(event_snapshot, registration_snapshot)


@shared_task(**_retry_options)
def sync_registration_removed_task(self, event_snapshot: dict, user_id: str) -> None:
    synchronizer.sync_registration_removed(event_snapshot, user_id)


@shared_task(**_retry_options)
def sync_event_removed_task(self, event_id: str) -> None:
    synchronizer.sync_event_removed(event_id)


@shared_task(**_retry_options)
def rebuild_event_task(self, event_id: str) -> dict:
    return synchronizer.rebuild_event(event_id)


@shared_task(bind=True)
def reconcile_mirror(self) -> dict:
    """
    Rebuild the whole mirror from the primary store.

    Scheduled by CELERY_BEAT_SCHEDULE every MIRROR_RECONCILE_INTERVAL seconds.
    """
    drifted = synchronizer.find_drifted_events()
    if drifted:
        logger.warning(
            f"Mirror drift detected on {len(drifted)} events before reconciliation",
            extra={"drifted_events": len(drifted)},
        )
    result = synchronizer.rebuild_all()
    result["drifted_before"] = len(drifted)
    return result
