"""
User tier models.

TierAssignment holds each user's current tier; it is created lazily the
first time the user is classified and superseded in place afterwards.
TierHistory keeps every assignment ever made, automatic or manual.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import BaseModel


class Tier(models.TextChoices):
    """Service tiers, lowest first."""

    REGULAR = "regular", "Regular"
    PRO = "pro", "Pro"
    VIP = "vip", "VIP"


class TierSource(models.TextChoices):
    """Who decided a tier: the reclassification engine or an operator."""

    AUTOMATIC = "automatic", "Automatic"
    MANUAL = "manual", "Manual"


class TierAssignment(BaseModel):
    """
    A user's current tier.

    Fields:
        user: The classified user (one assignment per user)
        tier: Current tier
        source: automatic or manual
        assigned_by: Operator for manual assignments (null = automatic)
        reason: Why the tier was set
        interaction_count: Completed interactions the tier was decided at
        assigned_at: When the tier was last set
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="tier_assignment",
    )
    tier = models.CharField(
        max_length=20,
        choices=Tier.choices,
        default=Tier.REGULAR,
        db_index=True,
    )
    source = models.CharField(
        max_length=20,
        choices=TierSource.choices,
        default=TierSource.AUTOMATIC,
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    reason = models.TextField(
        blank=True,
        default="",
    )
    interaction_count = models.PositiveIntegerField(
        default=0,
        help_text="Completed interactions counted when the tier was set",
    )
    assigned_at = models.DateTimeField(
        default=timezone.now,
    )

    class Meta:
        db_table = "user_tier_assignments"
        verbose_name = "Tier Assignment"
        verbose_name_plural = "Tier Assignments"

    def __str__(self) -> str:
        return f"TierAssignment(user={self.user_id}, {self.tier}, {self.source})"


class TierHistory(BaseModel):
    """
    One past or present tier assignment.

    Rows are only ever inserted. Manual assignments always add a row, even
    when the tier did not change.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="tier_history",
    )
    previous_tier = models.CharField(
        max_length=20,
        choices=Tier.choices,
        null=True,
        blank=True,
    )
    tier = models.CharField(
        max_length=20,
        choices=Tier.choices,
    )
    source = models.CharField(
        max_length=20,
        choices=TierSource.choices,
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    reason = models.TextField(
        blank=True,
        default="",
    )
    interaction_count = models.PositiveIntegerField(
        default=0,
    )

    class Meta:
        db_table = "user_tier_history"
        ordering = ["-created_at", "-id"]
        verbose_name = "Tier History Entry"
        verbose_name_plural = "Tier History"
        indexes = [
            models.Index(fields=["user", "-created_at"], name="tier_history_user_idx"),
        ]

    def __str__(self) -> str:
        return f"TierHistory(user={self.user_id}, {self.previous_tier} -> {self.tier}, {self.source})"
