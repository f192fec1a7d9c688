"""Admin registration for notifications."""

from django.contrib import admin

from apps.web.notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ["template", "user", "order", "is_read", "created_at"]
    list_filter = ["template", "is_read"]
    search_fields = ["user__username", "title", "message"]
    readonly_fields = ["created_at", "read_at", "data"]
