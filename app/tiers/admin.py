"""
Django admin configuration for tiers.

Assignments are changed through tiers.services.TierService so every
change lands in the history and the audit trail; the admin only reads.
"""

from django.contrib import admin

from tiers.models import TierAssignment, TierHistory


@admin.register(TierAssignment)
class TierAssignmentAdmin(admin.ModelAdmin):
    list_display = ["user", "tier", "source", "interaction_count", "assigned_at"]
    list_filter = ["tier", "source"]
    search_fields = ["user__email"]
    readonly_fields = [
        "user",
        "tier",
        "source",
        "assigned_by",
        "reason",
        "interaction_count",
        "assigned_at",
        "created_at",
        "updated_at",
    ]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(TierHistory)
class TierHistoryAdmin(admin.ModelAdmin):
    list_display = ["user", "previous_tier", "tier", "source", "assigned_by", "created_at"]
    list_filter = ["tier", "source"]
    search_fields = ["user__email", "reason"]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
