# feedback/commands.py
"""Command layer for feedback submission and triage."""

import logging

from django.db import transaction

from accounts.authz import ActorContext, require_admin
from events.commands import CommandResult
from events.write_barrier import command_writes_allowed
from feedback.models import Feedback

logger = logging.getLogger(__name__)


@transaction.atomic
def submit_feedback(actor: ActorContext | None, **data) -> CommandResult:
    """
    Store a feedback submission.

    Anonymous visitors may submit; a signed-in actor is linked to the row.
    """
    if data.get("category") not in Feedback.Category.values:
        return CommandResult.fail("Unknown feedback category.")

    with command_writes_allowed():
        feedback = Feedback.objects.create(
            user=actor.user if actor else None,
            **data,
        )

    logger.info(
        "Feedback %s submitted (%s)", feedback.pk, feedback.category,
        extra={"feedback_id": feedback.pk, "category": feedback.category},
    )
    return CommandResult.ok(feedback)


@transaction.atomic
def update_feedback_status(actor: ActorContext, feedback_id: int, status: str) -> CommandResult:
    require_admin(actor)

    if status not in Feedback.Status.values:
        return CommandResult.fail(f"Invalid status: {status}")

    feedback = Feedback.objects.select_for_update().filter(pk=feedback_id).first()
    if feedback is None:
        return CommandResult.fail("Feedback not found.", code="not_found")

    if feedback.status == status:
        return CommandResult.ok(feedback)

    previous = feedback.status
    feedback.status = status
    with command_writes_allowed():
        feedback.save(update_fields=["status", "updated_at"])

    logger.info(
        "Feedback %s status %s -> %s", feedback.pk, previous, status,
        extra={"feedback_id": feedback.pk, "user_id": str(actor.user_id)},
    )
    return CommandResult.ok(feedback)
