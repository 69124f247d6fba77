"""
Django admin configuration for payment accounts.

Usage counters and the version stamp are read-only here; they are only
written by allocation.services.UsageLedger. Accounts cannot be deleted
from the admin, only disabled.
"""

from django.contrib import admin

from allocation.models import AccountTransaction, PaymentAccount


@admin.register(PaymentAccount)
class PaymentAccountAdmin(admin.ModelAdmin):
    """Operator view of the account pool."""

    list_display = [
        "account_name",
        "is_active",
        "for_goods",
        "for_remittances",
        "priority_order",
        "current_daily_amount",
        "daily_limit",
        "security_limit",
        "current_monthly_amount",
        "monthly_limit",
        "last_used_at",
    ]
    list_filter = ["is_active", "for_goods", "for_remittances"]
    search_fields = ["account_name", "email", "phone", "account_holder"]
    readonly_fields = [
        "id",
        "current_daily_amount",
        "current_monthly_amount",
        "last_reset_date",
        "last_used_at",
        "version",
        "created_at",
        "updated_at",
    ]
    ordering = ["priority_order", "account_name"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "account_name", "is_active", "priority_order"),
            },
        ),
        (
            "Payment details",
            {
                "fields": ("email", "phone", "bank_name", "account_holder"),
            },
        ),
        (
            "Capabilities and limits",
            {
                "fields": (
                    "for_goods",
                    "for_remittances",
                    "daily_limit",
                    "monthly_limit",
                    "security_limit",
                ),
            },
        ),
        (
            "Usage",
            {
                "fields": (
                    "current_daily_amount",
                    "current_monthly_amount",
                    "last_reset_date",
                    "last_used_at",
                ),
            },
        ),
        (
            "Metadata",
            {
                "fields": ("notes", "version", "created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(AccountTransaction)
class AccountTransactionAdmin(admin.ModelAdmin):
    """Read-only payment history per account."""

    list_display = [
        "reference_table",
        "reference_id",
        "account",
        "transaction_type",
        "amount",
        "status",
        "validated_at",
        "created_at",
    ]
    list_filter = ["status", "transaction_type"]
    search_fields = ["reference_id", "account__account_name"]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
