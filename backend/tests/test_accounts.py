# tests/test_accounts.py
"""
Tests for sign-up, login and token handling.
"""

import pytest
from django.urls import reverse

from accounts.models import LoginActivity, User


@pytest.mark.django_db
class TestSignup:
    def test_signup_returns_tokens(self, api_client):
        response = api_client.post(
            reverse("accounts:register"),
            {"email": "New@Example.com", "name": "New Person", "password": "s3cret-pass"},
            format="json",
        )

        assert response.status_code == 201
        assert response.data["user"]["role"] == User.Role.USER
        assert response.data["access"]
        assert response.data["refresh"]
        assert User.objects.filter(email="New@example.com").exists()

    def test_duplicate_email_rejected(self, api_client, attendee):
        response = api_client.post(
            reverse("accounts:register"),
            {"email": attendee.email, "name": "Copy", "password": "s3cret-pass"},
            format="json",
        )

        assert response.status_code == 400
        assert "email" in response.data

    def test_admin_role_rejected_by_default(self, api_client):
        response = api_client.post(
            reverse("accounts:register"),
            {"email": "boss@test.com", "name": "Boss", "password": "s3cret-pass", "role": "admin"},
            format="json",
        )

        assert response.status_code == 400
        assert "role" in response.data

    def test_admin_role_allowed_when_enabled(self, api_client, settings):
        settings.ALLOW_ADMIN_SIGNUP = True

        response = api_client.post(
            reverse("accounts:register"),
            {"email": "boss@test.com", "name": "Boss", "password": "s3cret-pass", "role": "admin"},
            format="json",
        )

        assert response.status_code == 201
        assert User.objects.get(email="boss@test.com").is_admin


@pytest.mark.django_db
class TestLogin:
    def test_login_records_activity(self, api_client, attendee):
        response = api_client.post(
            reverse("accounts:login"),
            {"email": attendee.email, "password": "testpass123"},
            format="json",
        )

        assert response.status_code == 200
        assert response.data["user"]["id"] == str(attendee.public_id)
        assert LoginActivity.objects.filter(user=attendee).count() == 1

    def test_wrong_password(self, api_client, attendee):
        response = api_client.post(
            reverse("accounts:login"),
            {"email": attendee.email, "password": "wrong-password"},
            format="json",
        )

        assert response.status_code == 401
        assert not LoginActivity.objects.exists()

    def test_refresh_and_logout(self, api_client, attendee):
        login = api_client.post(
            reverse("accounts:login"),
            {"email": attendee.email, "password": "testpass123"},
            format="json",
        )
        refresh = login.data["refresh"]

        refreshed = api_client.post(reverse("accounts:token-refresh"), {"refresh": refresh}, format="json")
        assert refreshed.status_code == 200
        assert refreshed.data["access"]

        rotated = refreshed.data["refresh"]
        logout = api_client.post(reverse("accounts:logout"), {"refresh": rotated}, format="json")
        assert logout.status_code == 204

        again = api_client.post(reverse("accounts:token-refresh"), {"refresh": rotated}, format="json")
        assert again.status_code == 401

    def test_logout_requires_token(self, api_client):
        response = api_client.post(reverse("accounts:logout"), {}, format="json")
        assert response.status_code == 400


@pytest.mark.django_db
class TestMe:
    def test_me(self, attendee_client, attendee):
        response = attendee_client.get(reverse("accounts:me"))

        assert response.status_code == 200
        assert response.data["email"] == attendee.email

    def test_me_requires_authentication(self, api_client):
        assert api_client.get(reverse("accounts:me")).status_code == 401
