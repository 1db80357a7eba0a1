"""
URL configuration for the events API.

Endpoints:
- / - list / create events
- /mine/ - the current user's registrations
- /stats/ - admin dashboard aggregates
- /<id>/ - detail / edit / delete
- /<id>/registration/ - register / cancel / status for the current user
- /<id>/registrations/ - registrations of an event (organizer or admin)
"""

from django.urls import path

from .views import (
    EventDetailView,
    EventListCreateView,
    EventRegistrationView,
    EventRegistrationsListView,
    EventStatsView,
    MyRegistrationsView,
)

app_name = "events"

urlpatterns = [
    path("", EventListCreateView.as_view(), name="event-list"),
    path("mine/", MyRegistrationsView.as_view(), name="my-registrations"),
    path("stats/", EventStatsView.as_view(), name="event-stats"),
    path("<uuid:event_id>/", EventDetailView.as_view(), name="event-detail"),
    path("<uuid:event_id>/registration/", EventRegistrationView.as_view(), name="event-registration"),
    path("<uuid:event_id>/registrations/", EventRegistrationsListView.as_view(), name="event-registrations"),
]
