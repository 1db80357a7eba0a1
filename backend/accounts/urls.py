# accounts/urls.py
"""
URL configuration for the auth API.

Endpoints:
- /auth/register/ - Sign up (returns a JWT pair)
- /auth/login/ - Obtain a JWT pair
- /auth/refresh/ - Refresh the access token
- /auth/logout/ - Blacklist a refresh token
- /auth/me/ - Current user's profile
"""

from django.urls import path

from .views import LoginView, LogoutView, MeView, RefreshView, SignupView

app_name = "accounts"

urlpatterns = [
    path("auth/register/", SignupView.as_view(), name="register"),
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/refresh/", RefreshView.as_view(), name="token-refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("auth/me/", MeView.as_view(), name="me"),
]
