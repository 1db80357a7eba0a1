# tests/conftest.py
"""
Pytest fixtures for EventConnect tests.

- Users: organizer, attendee, admin_user, plus make_user for N distinct users
- ActorContext wrappers for each
- Events created through the command layer (so the write barrier and
  the mirror dispatch run exactly as in production)
- API clients authenticated with SimpleJWT access tokens
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from accounts.authz import ActorContext
from events.commands import create_event


User = get_user_model()

BOTH_DATABASES = ["default", "mirror"]


@pytest.fixture(autouse=True, scope="session")
def _testing_settings():
    """Ensure test-only settings are enabled for write-model guards."""
    settings.TESTING = True
    settings.MIRROR_SYNC = True


@pytest.fixture(autouse=True)
def _fast_ledger_retries(settings):
    settings.LEDGER_RETRY_BACKOFF = 0


@pytest.fixture
def flush_channel_layer():
    """Drop all groups and queued messages from the in-memory channel layer."""
    yield
    layer = get_channel_layer()
    async_to_sync(layer.flush)()


# =============================================================================
# User Fixtures
# =============================================================================

@pytest.fixture
def make_user(db):
    """Factory for distinct users."""

    def _make(role=User.Role.USER, **extra):
        suffix = uuid4().hex[:8]
        return User.objects.create_user(
            email=extra.pop("email", f"user-{suffix}@test.com"),
            password="testpass123",
            name=extra.pop("name", f"User {suffix}"),
            role=role,
            **extra,
        )

    return _make


@pytest.fixture
def organizer(make_user):
    return make_user(email="organizer@test.com", name="Olive Organizer")


@pytest.fixture
def attendee(make_user):
    return make_user(email="attendee@test.com", name="Avery Attendee")


@pytest.fixture
def admin_user(make_user):
    return make_user(role=User.Role.ADMIN, email="admin@test.com", name="Test Admin")


@pytest.fixture
def organizer_actor(organizer):
    return ActorContext(user=organizer)


@pytest.fixture
def attendee_actor(attendee):
    return ActorContext(user=attendee)


@pytest.fixture
def admin_actor(admin_user):
    return ActorContext(user=admin_user)


# =============================================================================
# Event Fixtures
# =============================================================================

@pytest.fixture
def make_event(organizer_actor):
    """Factory for events created through the command layer."""

    def _make(actor=None, **data):
        data.setdefault("title", "Python Meetup")
        data.setdefault("date", timezone.now() + timedelta(days=7))
        data.setdefault("location", "Berlin")
        data.setdefault("category", "meetup")
        result = create_event(actor or organizer_actor, **data)
        assert result.success, result.error
        return result.data

    return _make


@pytest.fixture
def event(make_event):
    """An unbounded event."""
    return make_event()


@pytest.fixture
def small_event(make_event):
    """An event with capacity 2."""
    return make_event(title="Small Workshop", category="workshop", max_attendees=2)


# =============================================================================
# API Clients
# =============================================================================

def _client_for(user) -> APIClient:
    client = APIClient()
    token = RefreshToken.for_user(user).access_token
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    return client


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def organizer_client(organizer):
    return _client_for(organizer)


@pytest.fixture
def attendee_client(attendee):
    return _client_for(attendee)


@pytest.fixture
def admin_client_jwt(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def client_for():
    return _client_for
