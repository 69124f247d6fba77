"""Django app configuration for user tiers."""

from django.apps import AppConfig


class TiersConfig(AppConfig):
    """Configuration for the tiers application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "tiers"
    verbose_name = "User Tiers"
