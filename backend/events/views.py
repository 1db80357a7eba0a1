# events/views.py
"""
Thin views that delegate to the commands layer.

Views handle: HTTP parsing, authentication, response formatting.
Commands handle: ownership policies, the registration ledger, mirroring.

Ledger error codes map to HTTP statuses in ERROR_STATUS; the response
body is {"detail": <message>, "code": <error code>}.
"""

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from django.db.models import Q, Sum
from django.http import Http404
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import resolve_actor, resolve_actor_optional, require_admin
from accounts.models import LoginActivity
from feedback.models import Feedback
from mirror.models import EventMirror

from . import ledger
from .errors import NotFound
from .commands import (
    cancel_registration,
    create_event,
    delete_event,
    register_for_event,
    update_event,
)
from .models import Event, Registration
from .policies import can_view_registrations
from .serializers import (
    EventListQuerySerializer,
    EventSerializer,
    EventWriteSerializer,
    MyRegistrationSerializer,
    RegistrantSerializer,
    RegistrationSerializer,
)

User = get_user_model()


ERROR_STATUS = {
    "invalid": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "already_registered": status.HTTP_409_CONFLICT,
    "not_registered": status.HTTP_409_CONFLICT,
    "capacity_exceeded": status.HTTP_409_CONFLICT,
    "conflict": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(result) -> Response:
    return Response(
        {"detail": result.error, "code": result.code},
        status=ERROR_STATUS.get(result.code, status.HTTP_400_BAD_REQUEST),
    )


def _visible_events(actor):
    events = Event.objects.select_related("created_by")
    if actor is None:
        return events.filter(is_public=True)
    if actor.is_admin:
        return events
    return events.filter(Q(is_public=True) | Q(created_by=actor.user))


def _get_event_or_404(actor, event_id) -> Event:
    event = _visible_events(actor).filter(public_id=event_id).first()
    if event is None:
        raise Http404("Event not found.")
    return event


def _hidden_event_response(actor, event_id):
    """A not_found response in the ledger error shape if the actor cannot see the event."""
    if _visible_events(actor).filter(public_id=event_id).exists():
        return None
    return Response(
        {"detail": NotFound.default_message, "code": NotFound.code},
        status=status.HTTP_404_NOT_FOUND,
    )


def _registered_ids(actor, events) -> set | None:
    if actor is None:
        return None
    return set(
        Registration.objects.filter(
            user=actor.user, event__in=[e.pk for e in events],
        ).values_list("event_id", flat=True)
    )


# =============================================================================
# Event Views
# =============================================================================

class EventListCreateView(APIView):
    """
    GET /api/events/ -> list events (filters, ordering, page/limit, has_more)
    POST /api/events/ -> create an event organized by the current user
    """

    def get_permissions(self):
        if self.request.method == "GET":
            return [AllowAny()]
        return [IsAuthenticated()]

    def get(self, request):
        actor = resolve_actor_optional(request)
        query = EventListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        events = _visible_events(actor)
        if params.get("category"):
            events = events.filter(category=params["category"])
        if params.get("date_from"):
            events = events.filter(date__gte=params["date_from"])
        if params.get("date_to"):
            events = events.filter(date__lte=params["date_to"])
        if params.get("location"):
            events = events.filter(location__istartswith=params["location"])

        events = events.order_by(params["ordering"], "id")

        page, limit = params["page"], params["limit"]
        offset = (page - 1) * limit
        rows = list(events[offset:offset + limit + 1])
        has_more = len(rows) > limit
        rows = rows[:limit]

        serializer = EventSerializer(
            rows,
            many=True,
            context={"request": request, "registered_event_ids": _registered_ids(actor, rows)},
        )
        return Response({
            "results": serializer.data,
            "page": page,
            "limit": limit,
            "has_more": has_more,
        })

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = EventWriteSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_event(actor, **input_serializer.validated_data)
        if not result.success:
            return error_response(result)

        output = EventSerializer(result.data, context={"request": request})
        return Response(output.data, status=status.HTTP_201_CREATED)


class EventDetailView(APIView):
    """
    GET /api/events/<id>/ -> event detail
    PATCH /api/events/<id>/ -> edit (organizer or admin)
    DELETE /api/events/<id>/ -> delete with all registrations (organizer or admin)
    """

    def get_permissions(self):
        if self.request.method == "GET":
            return [AllowAny()]
        return [IsAuthenticated()]

    def get(self, request, event_id):
        actor = resolve_actor_optional(request)
        event = _get_event_or_404(actor, event_id)
        serializer = EventSerializer(
            event,
            context={"request": request, "registered_event_ids": _registered_ids(actor, [event])},
        )
        return Response(serializer.data)

    def patch(self, request, event_id):
        actor = resolve_actor(request)
        _get_event_or_404(actor, event_id)

        input_serializer = EventWriteSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)

        result = update_event(actor, event_id, **input_serializer.validated_data)
        if not result.success:
            return error_response(result)

        return Response(EventSerializer(result.data, context={"request": request}).data)

    def delete(self, request, event_id):
        actor = resolve_actor(request)
        _get_event_or_404(actor, event_id)

        result = delete_event(actor, event_id)
        if not result.success:
            return error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Registration Views
# =============================================================================

class EventRegistrationView(APIView):
    """
    GET /api/events/<id>/registration/ -> {"registered": bool}
    POST /api/events/<id>/registration/ -> register the current user
    DELETE /api/events/<id>/registration/ -> cancel the current user's registration

    Events the user cannot see answer 404, except to someone already
    registered (an event made private keeps its registrants).
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, event_id):
        actor = resolve_actor(request)
        registered = ledger.is_registered(event_id, actor.user_id)
        hidden = None if registered else _hidden_event_response(actor, event_id)
        if hidden is not None:
            return hidden
        return Response({"registered": registered})

    def post(self, request, event_id):
        actor = resolve_actor(request)
        hidden = _hidden_event_response(actor, event_id)
        if hidden is not None:
            return hidden

        registrant = RegistrantSerializer(data=request.data)
        registrant.is_valid(raise_exception=True)

        result = register_for_event(actor, event_id, registrant.validated_data)
        if not result.success:
            return error_response(result)

        return Response(
            RegistrationSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )

    def delete(self, request, event_id):
        actor = resolve_actor(request)
        if not ledger.is_registered(event_id, actor.user_id):
            hidden = _hidden_event_response(actor, event_id)
            if hidden is not None:
                return hidden

        result = cancel_registration(actor, event_id)
        if not result.success:
            return error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class EventRegistrationsListView(APIView):
    """GET /api/events/<id>/registrations/ -> registrations (organizer or admin)"""
    permission_classes = [IsAuthenticated]

    def get(self, request, event_id):
        actor = resolve_actor(request)
        event = _get_event_or_404(actor, event_id)

        allowed, reason = can_view_registrations(actor, event)
        if not allowed:
            raise PermissionDenied(reason)

        registrations = event.registrations.select_related("user").order_by("registered_at")
        return Response({
            "event_id": str(event.public_id),
            "registration_count": event.registration_count,
            "results": RegistrationSerializer(registrations, many=True).data,
        })


class MyRegistrationsView(APIView):
    """GET /api/events/mine/ -> events the current user is registered for"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        registrations = (
            Registration.objects
            .filter(user=actor.user)
            .select_related("event", "event__created_by")
            .order_by("event__date")
        )
        serializer = MyRegistrationSerializer(
            registrations,
            many=True,
            context={
                "request": request,
                "registered_event_ids": {r.event_id for r in registrations},
            },
        )
        return Response(serializer.data)


class EventStatsView(APIView):
    """GET /api/events/stats/ -> admin dashboard aggregates"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require_admin(actor)

        since = timezone.now() - timedelta(days=30)
        active_users = (
            LoginActivity.objects
            .filter(logged_in_at__gte=since)
            .values("user")
            .distinct()
            .count()
        )

        per_event = [
            {
                "id": str(row.event_id),
                "title": row.title,
                "registration_count": row.registration_count,
                "max_attendees": row.max_attendees,
            }
            for row in EventMirror.objects.order_by("-registration_count", "title")
        ]

        return Response({
            "total_events": Event.objects.count(),
            "total_registrations": Registration.objects.count(),
            "registration_count_sum": Event.objects.aggregate(total=Sum("registration_count"))["total"] or 0,
            "total_users": User.objects.count(),
            "active_users_30d": active_users,
            "events": per_event,
            "feedback": {
                "total": Feedback.objects.count(),
                "new": Feedback.objects.filter(status=Feedback.Status.NEW).count(),
            },
        })
