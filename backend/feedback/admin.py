from django.contrib import admin

from .models import Feedback


@admin.register(Feedback)
class FeedbackAdmin(admin.ModelAdmin):
    list_display = ("subject", "category", "status", "name", "email", "created_at")
    list_filter = ("category", "status")
    search_fields = ("subject", "message", "email", "name")
    date_hierarchy = "created_at"
    readonly_fields = ("user", "name", "email", "phone", "category", "subject", "message", "created_at", "updated_at")
