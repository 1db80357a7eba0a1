# mirror/models.py
"""
Mirror READ MODELS.

IMPORTANT: These rows are a derived copy of the primary store, kept in the
"mirror" database and used for push feeds. They can always be rebuilt
from events.Event / events.Registration.

The only code allowed to write to these models is mirror/synchronizer.py,
inside mirror_writes_allowed(). Rows are keyed by the primary public ids
so every write is an idempotent upsert.
"""

from django.conf import settings
from django.db import models

from events.write_barrier import write_context_allowed


def _mirror_writes_allowed() -> bool:
    return write_context_allowed({"mirror"}) or getattr(settings, "TESTING", False)


class MirrorQuerySet(models.QuerySet):
    def delete(self):
        if not _mirror_writes_allowed():
            raise RuntimeError(
                f"{self.model.__name__} is a mirror read model. "
                "delete is only allowed from the synchronizer within mirror_writes_allowed()."
            )
        return super().delete()

    def update(self, **kwargs):
        if not _mirror_writes_allowed():
            raise RuntimeError(
                f"{self.model.__name__} is a mirror read model. "
                "update is only allowed from the synchronizer within mirror_writes_allowed()."
            )
        return super().update(**kwargs)


class MirrorOwnedModel(models.Model):
    objects = MirrorQuerySet.as_manager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not _mirror_writes_allowed():
            raise RuntimeError(
                f"{self.__class__.__name__} is a mirror read model. "
                "Direct saves are only allowed from the synchronizer within mirror_writes_allowed()."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if not _mirror_writes_allowed():
            raise RuntimeError(
                f"{self.__class__.__name__} is a mirror read model. "
                "Direct deletes are only allowed from the synchronizer within mirror_writes_allowed()."
            )
        return super().delete(*args, **kwargs)


class EventMirror(MirrorOwnedModel):
    """
    Mirrored event.

    `registration_count` is recomputed from this database's own
    RegistrationMirror rows on every registration-affecting write.
    `data` holds the full event snapshot as last synced.
    """

    event_id = models.UUIDField(unique=True)
    title = models.CharField(max_length=200)
    date = models.DateTimeField(null=True, blank=True, db_index=True)
    category = models.CharField(max_length=20, blank=True)
    location = models.CharField(max_length=255, blank=True)
    max_attendees = models.PositiveIntegerField(null=True, blank=True)
    registration_count = models.PositiveIntegerField(default=0)
    data = models.JSONField(default=dict)
    synced_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["date"]

    def __str__(self):
        return f"{self.title} [{self.registration_count}]"

    def as_value(self) -> dict:
        """The value pushed to subscribers."""
        return {
            **self.data,
            "id": str(self.event_id),
            "registration_count": self.registration_count,
        }


class RegistrationMirror(MirrorOwnedModel):
    event_id = models.UUIDField(db_index=True)
    user_id = models.UUIDField()
    display_name = models.CharField(max_length=150, blank=True)
    email = models.EmailField(blank=True)
    registered_at = models.DateTimeField(null=True, blank=True)
    synced_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["registered_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["event_id", "user_id"],
                name="uniq_mirror_registration_event_user",
            ),
        ]

    def __str__(self):
        return f"{self.user_id} -> {self.event_id}"

    def as_value(self) -> dict:
        return {
            "event_id": str(self.event_id),
            "user_id": str(self.user_id),
            "display_name": self.display_name,
            "email": self.email,
            "registered_at": self.registered_at.isoformat() if self.registered_at else None,
        }
