# accounts/authz.py
"""
Authorization utilities for EventConnect.

Provides:
- ActorContext: Immutable context for the current request
- resolve_actor: Extract actor context from request
- require_admin: Raise unless the actor is an administrator

Roles are deliberately flat: "user" can create events and register,
"admin" can additionally manage any event, read feedback and see the
dashboard aggregates. Per-event ownership checks live in events/policies.py.
"""

from dataclasses import dataclass
from django.core.exceptions import PermissionDenied
from rest_framework.exceptions import NotAuthenticated


@dataclass(frozen=True)
class ActorContext:
    """
    Immutable context for the current actor.

    This is passed to commands and policies to provide context
    about who is performing an action.
    """
    user: object  # User model

    @property
    def is_authenticated(self) -> bool:
        """Mirror Django's user.is_authenticated for compatibility."""
        return bool(getattr(self.user, "is_authenticated", False))

    @property
    def is_admin(self) -> bool:
        return bool(getattr(self.user, "is_admin", False))

    @property
    def user_id(self):
        """The user's public identifier."""
        return self.user.public_id


def resolve_actor(request) -> ActorContext:
    """
    Extract ActorContext from the current request.

    Raises:
        NotAuthenticated: If user is not authenticated
        PermissionDenied: If the account is deactivated
    """
    user = getattr(request, "user", None)

    if not user or not user.is_authenticated:
        raise NotAuthenticated("Authentication required.")

    if not user.is_active:
        raise PermissionDenied("This account has been disabled.")

    return ActorContext(user=user)


def require_admin(actor: ActorContext) -> None:
    """
    Require that the actor is an administrator.

    Raises:
        PermissionDenied: If the actor is not an admin
    """
    if not actor.is_admin:
        raise PermissionDenied("Permission denied: administrators only.")


def resolve_actor_optional(request):
    """
    Try to resolve ActorContext, return None if not possible.

    Useful for views that work with or without authentication.
    """
    try:
        return resolve_actor(request)
    except (NotAuthenticated, PermissionDenied):
        return None
