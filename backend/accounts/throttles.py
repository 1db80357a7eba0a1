# accounts/throttles.py
"""
Rate limiting classes for authentication endpoints.

These throttles protect against:
- Bot signups (registration)
- Brute force attacks (login)
"""

from rest_framework.throttling import AnonRateThrottle


class SignupThrottle(AnonRateThrottle):
    """
    Rate limit sign-up attempts.

    Default: 5 sign-ups per hour per IP.
    Configured via settings.REST_FRAMEWORK['DEFAULT_THROTTLE_RATES']['signup']
    """
    scope = 'signup'


class LoginThrottle(AnonRateThrottle):
    """
    Rate limit login attempts.

    Default: 10 attempts per minute per IP.
    Configured via settings.REST_FRAMEWORK['DEFAULT_THROTTLE_RATES']['login']
    """
    scope = 'login'
