"""
Django admin configuration for the audit log.

Entries are read-only in the admin: no add, change or delete permission
for anyone. Writes only happen through audit.services.AuditTrail.
"""

from django.contrib import admin

from audit.models import AuditLogEntry


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    """Read-only browser for audit entries."""

    list_display = [
        "id",
        "action",
        "entity_table",
        "entity_id",
        "actor",
        "created_at",
    ]
    list_filter = ["action", "entity_table"]
    search_fields = ["entity_id", "actor__email", "reason"]
    readonly_fields = [
        "id",
        "action",
        "entity_table",
        "entity_id",
        "actor",
        "prior_state",
        "post_state",
        "reason",
        "ip_address",
        "user_agent",
        "created_at",
    ]
    ordering = ["-created_at", "-id"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
