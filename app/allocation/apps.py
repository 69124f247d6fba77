"""Django app configuration for payment-account allocation."""

from django.apps import AppConfig


class AllocationConfig(AppConfig):
    """Configuration for the allocation application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "allocation"
    verbose_name = "Payment Account Allocation"
