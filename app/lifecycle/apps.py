"""Django app configuration for the order and remittance lifecycle."""

from django.apps import AppConfig


class LifecycleConfig(AppConfig):
    """Configuration for the lifecycle application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "lifecycle"
    verbose_name = "Order Lifecycle"
