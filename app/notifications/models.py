"""
Notification delivery models.

One NotificationDelivery row per outbound message. Rows are created after
the triggering transaction commits, so a rolled-back transition never
produces a message.

Models:
    NotificationDelivery: Delivery tracking for a single lifecycle event
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.core.serializers.json import DjangoJSONEncoder

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class NotificationEvent(models.TextChoices):
    """Lifecycle events customers are told about."""

    ENTITY_CREATED = "entity_created", "Order or remittance created"
    STATUS_CHANGED = "status_changed", "Status changed"
    PAYMENT_VALIDATED = "payment_validated", "Payment validated"
    PAYMENT_REJECTED = "payment_rejected", "Payment rejected"


class DeliveryStatus(models.TextChoices):
    """
    Delivery status.

    State Flow:
        PENDING → SENT
        PENDING → FAILED (permanent failure or retries exhausted)
        PENDING → SKIPPED (recipient has no email address)
    """

    PENDING = "pending", "Pending"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"
    SKIPPED = "skipped", "Skipped"


class NotificationDelivery(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks delivery of one lifecycle notification.

    Fields:
        event_type: Which lifecycle event this message reports
        entity_table / entity_id: The order or remittance concerned
        recipient: User the message goes to
        payload: Event details rendered into the message
        status: Current delivery status
        attempt_count: Number of delivery attempts
        failure_reason / failure_code: Last error, if any
        is_permanent_failure: Whether a retry could help
    """

    event_type = models.CharField(
        max_length=30,
        choices=NotificationEvent.choices,
        help_text="Lifecycle event being reported",
    )
    entity_table = models.CharField(
        max_length=63,
    )
    entity_id = models.CharField(
        max_length=64,
    )
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notification_deliveries",
    )
    payload = models.JSONField(
        default=dict,
        blank=True,
        encoder=DjangoJSONEncoder,
    )
    status = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.PENDING,
        db_index=True,
        help_text="Current delivery status",
    )

    # Timestamps
    sent_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the message was handed to the email backend",
    )
    failed_at = models.DateTimeField(
        null=True,
        blank=True,
    )

    # Failure details
    failure_reason = models.TextField(
        blank=True,
        default="",
    )
    failure_code = models.CharField(
        max_length=50,
        blank=True,
        default="",
    )
    is_permanent_failure = models.BooleanField(
        default=False,
        help_text="True if retry won't help (e.g., invalid recipient)",
    )
    attempt_count = models.PositiveSmallIntegerField(
        default=0,
    )

    class Meta:
        db_table = "notification_deliveries"
        ordering = ["-created_at"]
        verbose_name = "notification delivery"
        verbose_name_plural = "notification deliveries"
        indexes = [
            models.Index(
                fields=["entity_table", "entity_id"],
                name="notif_delivery_entity_idx",
            ),
            models.Index(
                fields=["status", "-created_at"],
                name="notif_delivery_status_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Delivery({self.event_type}, {self.entity_table}:{self.entity_id}, {self.status})"
