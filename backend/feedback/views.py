"""
Feedback API.

POST /api/feedback/ is open to everyone (throttled); listing, triage and
the summary are for administrators.
"""

from django.db.models import Count
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import require_admin, resolve_actor, resolve_actor_optional

from .commands import submit_feedback, update_feedback_status
from .models import Feedback
from .serializers import FeedbackSerializer, FeedbackStatusSerializer, FeedbackSubmitSerializer
from .throttles import FeedbackThrottle


class FeedbackListCreateView(APIView):
    """
    GET /api/feedback/ -> admin: all feedback, newest first (?category=, ?status=)
    POST /api/feedback/ -> submit feedback
    """
    throttle_classes = [FeedbackThrottle]

    def get_permissions(self):
        if self.request.method == "POST":
            return [AllowAny()]
        return [IsAuthenticated()]

    def get(self, request):
        actor = resolve_actor(request)
        require_admin(actor)

        feedback = Feedback.objects.select_related("user").order_by("-created_at")
        category = request.query_params.get("category")
        if category:
            feedback = feedback.filter(category=category)
        state = request.query_params.get("status")
        if state:
            feedback = feedback.filter(status=state)

        return Response(FeedbackSerializer(feedback, many=True).data)

    def post(self, request):
        actor = resolve_actor_optional(request)

        serializer = FeedbackSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = submit_feedback(actor, **serializer.validated_data)
        if not result.success:
            return Response({"detail": result.error, "code": result.code}, status=status.HTTP_400_BAD_REQUEST)

        return Response(FeedbackSerializer(result.data).data, status=status.HTTP_201_CREATED)


class FeedbackDetailView(APIView):
    """PATCH /api/feedback/<id>/ -> admin: update status"""
    permission_classes = [IsAuthenticated]

    def patch(self, request, pk):
        actor = resolve_actor(request)

        serializer = FeedbackStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = update_feedback_status(actor, pk, serializer.validated_data["status"])
        if not result.success:
            code = status.HTTP_404_NOT_FOUND if result.code == "not_found" else status.HTTP_400_BAD_REQUEST
            return Response({"detail": result.error, "code": result.code}, status=code)

        return Response(FeedbackSerializer(result.data).data)


class FeedbackSummaryView(APIView):
    """GET /api/feedback/summary/ -> admin: counts by category and by status"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require_admin(actor)

        by_category = {
            row["category"]: row["count"]
            for row in Feedback.objects.values("category").annotate(count=Count("id"))
        }
        by_status = {
            row["status"]: row["count"]
            for row in Feedback.objects.values("status").annotate(count=Count("id"))
        }
        return Response({
            "total": sum(by_category.values()),
            "by_category": {value: by_category.get(value, 0) for value in Feedback.Category.values},
            "by_status": {value: by_status.get(value, 0) for value in Feedback.Status.values},
        })
