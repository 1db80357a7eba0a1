from django.urls import path

from .consumers import EventFeedConsumer, RegistrationFeedConsumer

websocket_urlpatterns = [
    path("ws/events/", EventFeedConsumer.as_asgi()),
    path("ws/events/<uuid:event_id>/registrations/", RegistrationFeedConsumer.as_asgi()),
]
