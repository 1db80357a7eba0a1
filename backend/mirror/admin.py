from django.contrib import admin

from .models import EventMirror, RegistrationMirror


class ReadOnlyMirrorAdmin(admin.ModelAdmin):
    """Mirror rows are written by the synchronizer only."""

    using = "mirror"

    def get_queryset(self, request):
        return super().get_queryset(request).using(self.using)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(EventMirror)
class EventMirrorAdmin(ReadOnlyMirrorAdmin):
    list_display = ("title", "event_id", "date", "registration_count", "max_attendees", "synced_at")
    search_fields = ("title", "event_id")
    list_filter = ("category",)


@admin.register(RegistrationMirror)
class RegistrationMirrorAdmin(ReadOnlyMirrorAdmin):
    list_display = ("event_id", "user_id", "display_name", "email", "registered_at", "synced_at")
    search_fields = ("event_id", "user_id", "email")
