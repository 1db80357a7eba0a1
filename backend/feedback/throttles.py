from rest_framework.throttling import UserRateThrottle


class FeedbackThrottle(UserRateThrottle):
    """
    Rate limit feedback submissions per user (or per IP when anonymous).

    Configured via settings.REST_FRAMEWORK['DEFAULT_THROTTLE_RATES']['feedback']
    """
    scope = "feedback"

    def allow_request(self, request, view):
        if request.method != "POST":
            return True
        return super().allow_request(request, view)
