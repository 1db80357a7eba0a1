# mirror/management/commands/rebuild_mirror.py
"""
Management command to rebuild the mirror from the primary store.

The primary store is the source of truth; the mirror can always be
rebuilt from it. This is the manual counterpart of the periodic
reconcile_mirror Celery task.

Usage:
    # Rebuild one event
    python manage.py rebuild_mirror --event 3f6c...

    # Rebuild every event and drop mirrored events the primary no longer has
    python manage.py rebuild_mirror --all

    # Only report events whose mirrored count disagrees with the primary
    python manage.py rebuild_mirror --status
"""

import time

from django.core.management.base import BaseCommand, CommandError

from mirror import synchronizer
from mirror.errors import MirrorWriteFailed


class Command(BaseCommand):
    """Rebuild the mirror from the primary store."""

    help = "Rebuild the registration mirror from the primary store"

    def add_arguments(self, parser):
        parser.add_argument(
            "--event",
            type=str,
            help="Public id of the event to rebuild",
        )
        parser.add_argument(
            "--all",
            action="store_true",
            dest="all_events",
            help="Rebuild every event",
        )
        parser.add_argument(
            "--status",
            action="store_true",
            help="Show drifted events without changing anything",
        )

    def handle(self, *args, **options):
        if options["status"]:
            return self._show_status()

        has_event = options["event"] is not None
        if has_event == options["all_events"]:
            raise CommandError("Must specify exactly one of --event <id> or --all")

        start = time.time()
        if has_event:
            try:
                result = synchronizer.rebuild_event(options["event"])
            except MirrorWriteFailed as exc:
                raise CommandError(str(exc))
            if result.get("removed"):
                self.stdout.write(f"Event {result['event_id']} is gone from the primary; removed from the mirror.")
            else:
                self.stdout.write(
                    f"Event {result['event_id']}: {result['registrations']} registrations, "
                    f"{result['stale_removed']} stale rows removed"
                )
        else:
            result = synchronizer.rebuild_all()
            self.stdout.write(
                f"Rebuilt {result['rebuilt']} events, removed {result['orphans_removed']} orphans"
            )
            if result["failed"]:
                self.stdout.write(self.style.ERROR(f"Failed: {', '.join(result['failed'])}"))

        elapsed = time.time() - start
        self.stdout.write(self.style.SUCCESS(f"Done in {elapsed:.2f}s"))

    def _show_status(self):
        drifted = synchronizer.find_drifted_events()
        if not drifted:
            self.stdout.write(self.style.SUCCESS("Mirror is in sync with the primary store."))
            return
        self.stdout.write(self.style.WARNING(f"{len(drifted)} events drifted:"))
        for event_id in drifted:
            self.stdout.write(f"  {event_id}")
