# events/models.py
"""
Primary-store models for EventConnect.

Event and Registration are WRITE MODELS owned by the command layer and the
registration ledger. They are the source of truth; the mirror app holds a
derived copy for push feeds.

DO NOT:
- Call .save() on Event/Registration outside command_writes_allowed() or
  ledger_writes_allowed()
- Change Event.registration_count anywhere but events/ledger.py

Event.registration_count is a cached value that must always equal the
number of Registration rows for the event. The ledger re-establishes it
inside every mutating transaction.
"""

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

from events.write_barrier import write_context_allowed


WRITE_CONTEXTS = {"command", "ledger", "bootstrap", "admin_emergency"}


def _writes_allowed() -> bool:
    return write_context_allowed(WRITE_CONTEXTS) or getattr(settings, "TESTING", False)


class Event(models.Model):
    """
    An organized event with an optional attendance cap.

    Attributes:
        public_id: External identifier, immutable
        max_attendees: Capacity; NULL means unbounded
        registration_count: Cached attendee count (ledger-owned)
    """

    class Category(models.TextChoices):
        TECHNOLOGY = "technology", "Technology"
        BUSINESS = "business", "Business"
        EDUCATION = "education", "Education"
        HEALTH = "health", "Health"
        SPORTS = "sports", "Sports"
        ENTERTAINMENT = "entertainment", "Entertainment"
        FOOD = "food", "Food"
        TRAVEL = "travel", "Travel"
        ART = "art", "Art"
        MUSIC = "music", "Music"
        NETWORKING = "networking", "Networking"
        WORKSHOP = "workshop", "Workshop"
        CONFERENCE = "conference", "Conference"
        MEETUP = "meetup", "Meetup"
        OTHER = "other", "Other"

    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    date = models.DateTimeField(db_index=True)
    location = models.CharField(max_length=255, blank=True)
    category = models.CharField(
        max_length=20,
        choices=Category.choices,
        default=Category.OTHER,
        db_index=True,
    )
    banner = models.FileField(upload_to="event_banners/", blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="created_events",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    max_attendees = models.PositiveIntegerField(null=True, blank=True)
    registration_count = models.PositiveIntegerField(default=0)

    is_public = models.BooleanField(default=True)
    is_paid = models.BooleanField(default=False)
    price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    tags = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ["date"]
        indexes = [
            models.Index(fields=["category", "date"], name="events_category_date_idx"),
        ]

    def __str__(self):
        return f"{self.title} ({self.public_id})"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_registration_count = instance.__dict__.get("registration_count")
        return instance

    @property
    def is_full(self) -> bool:
        return self.max_attendees is not None and self.registration_count >= self.max_attendees

    def save(self, *args, **kwargs):
        if not _writes_allowed():
            raise RuntimeError(
                "Event is a command-owned write model. "
                "Direct saves are only allowed within command_writes_allowed()."
            )

        loaded = getattr(self, "_loaded_registration_count", None)
        if self._state.adding:
            count_changed = self.registration_count != 0
        else:
            count_changed = loaded is not None and loaded != self.registration_count

        if count_changed and not write_context_allowed({"ledger"}):
            raise RuntimeError(
                "Event.registration_count is owned by the registration ledger. "
                "It may only change within ledger_writes_allowed()."
            )

        super().save(*args, **kwargs)
        self._loaded_registration_count = self.registration_count

    def delete(self, *args, **kwargs):
        if not _writes_allowed():
            raise RuntimeError(
                "Event is a command-owned write model. "
                "Direct deletes are only allowed within command_writes_allowed()."
            )
        return super().delete(*args, **kwargs)


class Registration(models.Model):
    """A user's registration for an event. Never mutated after creation."""

    event = models.ForeignKey(
        Event,
        on_delete=models.CASCADE,
        related_name="registrations",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="registrations",
    )
    display_name = models.CharField(max_length=150, blank=True)
    email = models.EmailField(blank=True)
    registered_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["registered_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["event", "user"],
                name="uniq_registration_event_user",
            ),
        ]

    def __str__(self):
        return f"{self.user_id} -> {self.event_id}"

    def save(self, *args, **kwargs):
        if not (write_context_allowed({"ledger", "bootstrap", "admin_emergency"}) or getattr(settings, "TESTING", False)):
            raise RuntimeError(
                "Registration is owned by the registration ledger. "
                "Direct saves are only allowed within ledger_writes_allowed()."
            )
        super().save(*args, **kwargs)
