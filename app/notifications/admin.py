"""
Django admin configuration for notification deliveries.
"""

from django.contrib import admin

from notifications.models import NotificationDelivery


@admin.register(NotificationDelivery)
class NotificationDeliveryAdmin(admin.ModelAdmin):
    """
    Admin configuration for NotificationDelivery.

    Read-only; rows are written by the dispatch path and the delivery task.
    """

    list_display = [
        "event_type",
        "entity_table",
        "entity_id",
        "recipient",
        "status",
        "attempt_count",
        "created_at",
    ]
    list_filter = ["status", "event_type", "is_permanent_failure"]
    search_fields = ["entity_id", "recipient__email"]
    readonly_fields = [
        "id",
        "event_type",
        "entity_table",
        "entity_id",
        "recipient",
        "payload",
        "status",
        "sent_at",
        "failed_at",
        "failure_reason",
        "failure_code",
        "is_permanent_failure",
        "attempt_count",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False
