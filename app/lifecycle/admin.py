"""
Django admin configuration for orders and remittances.

Status fields are protected django-fsm fields, so the admin shows them
read-only; transitions go through lifecycle.services.LifecycleService
where they are audited.
"""

from django.contrib import admin

from lifecycle.models import Order, Remittance

class LifecycleEntityAdmin(admin.ModelAdmin):
    """Shared read-mostly admin for lifecycle entities."""

    list_filter = ["status", "payment_status"]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]


@admin.register(Order)
class OrderAdmin(LifecycleEntityAdmin):
    list_display = [
        "order_number",
        "user",
        "status",
        "payment_status",
        "total_amount",
        "assigned_account",
        "created_at",
    ]
    search_fields = ["order_number", "user__email", "payment_reference"]


@admin.register(Remittance)
class RemittanceAdmin(LifecycleEntityAdmin):
    list_display = [
        "remittance_number",
        "user",
        "status",
        "payment_status",
        "amount_sent",
        "recipient_name",
        "created_at",
    ]
    search_fields = ["remittance_number", "user__email", "recipient_name"]
