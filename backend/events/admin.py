from django.contrib import admin

from .models import Event, Registration


class RegistrationInline(admin.TabularInline):
    model = Registration
    extra = 0
    can_delete = False
    readonly_fields = ("user", "display_name", "email", "registered_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ("title", "date", "category", "registration_count", "max_attendees", "is_public", "created_by")
    list_filter = ("category", "is_public", "is_paid")
    search_fields = ("title", "location", "public_id")
    date_hierarchy = "date"
    list_select_related = ["created_by"]
    # registration_count is owned by the ledger
    readonly_fields = ("public_id", "registration_count", "created_at", "updated_at")
    inlines = [RegistrationInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ("event", "user", "display_name", "email", "registered_at")
    search_fields = ("event__title", "user__email", "email")
    list_select_related = ["event", "user"]
    readonly_fields = ("event", "user", "display_name", "email", "registered_at")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
