from django.conf import settings
from django.db import models

from events.write_barrier import write_context_allowed


class Feedback(models.Model):
    """Feedback submitted from the contact form; triaged by administrators."""

    class Category(models.TextChoices):
        BUG = "bug", "Bug Report"
        FEATURE = "feature", "Feature Request"
        GENERAL = "general", "General Feedback"
        SUPPORT = "support", "Support Request"
        EVENT = "event", "Event Related"
        OTHER = "other", "Other"

    class Status(models.TextChoices):
        NEW = "new", "New"
        REVIEWED = "reviewed", "Reviewed"
        RESOLVED = "resolved", "Resolved"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="feedback",
    )
    name = models.CharField(max_length=150)
    email = models.EmailField()
    phone = models.CharField(max_length=32)
    category = models.CharField(max_length=20, choices=Category.choices, db_index=True)
    subject = models.CharField(max_length=200)
    message = models.TextField()
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.NEW,
        db_index=True,
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "Feedback"

    def __str__(self):
        return f"[{self.category}] {self.subject}"

    def save(self, *args, **kwargs):
        if not write_context_allowed({"command", "bootstrap", "admin_emergency"}) and not getattr(settings, "TESTING", False):
            raise RuntimeError(
                "Feedback is a command-owned write model. "
                "Direct saves are only allowed within command_writes_allowed()."
            )
        super().save(*args, **kwargs)
