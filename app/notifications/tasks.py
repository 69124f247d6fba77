"""
Celery tasks for notification delivery.

Tasks:
    deliver_notification: Send one lifecycle notification by email

Design:
    - Tasks receive delivery_id (UUID string)
    - Each task updates the NotificationDelivery status
    - Permanent vs transient errors are classified for retry logic
    - Tasks are idempotent: re-running on a non-PENDING delivery is a no-op

Usage:
    from notifications.tasks import deliver_notification

    # Called by notifications.dispatch after commit, or manually:
    deliver_notification.delay(delivery_id="uuid-string")
"""

from __future__ import annotations

import logging
import smtplib

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone as django_timezone

from notifications.models import DeliveryStatus, NotificationDelivery, NotificationEvent

logger = logging.getLogger(__name__)

MAX_DELIVERY_RETRIES = 3

SUBJECTS = {
    NotificationEvent.ENTITY_CREATED: "We received your {kind} {reference}",
    NotificationEvent.STATUS_CHANGED: "Your {kind} {reference} is now {status}",
    NotificationEvent.PAYMENT_VALIDATED: "Payment confirmed for {kind} {reference}",
    NotificationEvent.PAYMENT_REJECTED: "Payment rejected for {kind} {reference}",
}

ENTITY_KINDS = {
    "orders": "order",
    "remittances": "remittance",
}


class DeliveryError(Exception):
    """Base exception for delivery failures."""

    def __init__(self, message: str, code: str, is_permanent: bool = False):
        super().__init__(message)
        self.code = code
        self.is_permanent = is_permanent


def _get_delivery(delivery_id: str) -> NotificationDelivery | None:
    """
    Fetch delivery with its recipient.

    Returns None if delivery not found or not in PENDING status.
    """
    try:
        delivery = NotificationDelivery.objects.select_related("recipient").get(id=delivery_id)
    except NotificationDelivery.DoesNotExist:
        logger.warning(f"Delivery {delivery_id} not found")
        return None

    if delivery.status != DeliveryStatus.PENDING:
        logger.info(f"Delivery {delivery_id} status is {delivery.status}, skipping")
        return None
    return delivery


def render_message(delivery: NotificationDelivery) -> tuple[str, str]:
    """Build the email subject and body for a delivery."""
    payload = delivery.payload or {}
    context = {
        "kind": ENTITY_KINDS.get(delivery.entity_table, "request"),
        "reference": payload.get("reference") or delivery.entity_id,
        "status": payload.get("status", ""),
    }
    subject = SUBJECTS[delivery.event_type].format(**context)

    lines = [subject + "."]
    if payload.get("reason"):
        lines.append(f"Reason: {payload['reason']}")
    return subject, "\n\n".join(lines)


def _send(delivery: NotificationDelivery) -> None:
    subject, body = render_message(delivery)
    try:
        send_mail(
            subject,
            body,
            settings.NOTIFICATION_FROM_EMAIL,
            [delivery.recipient.email],
            fail_silently=False,
        )
    except smtplib.SMTPRecipientsRefused as e:
        raise DeliveryError(str(e), code="invalid_recipient", is_permanent=True) from e
    except (smtplib.SMTPException, OSError) as e:
        raise DeliveryError(str(e), code="provider_unavailable") from e


def _mark_sent(delivery: NotificationDelivery) -> None:
    delivery.status = DeliveryStatus.SENT
    delivery.sent_at = django_timezone.now()
    delivery.attempt_count += 1
    delivery.save(update_fields=["status", "sent_at", "attempt_count", "updated_at"])


def _mark_failed(delivery: NotificationDelivery, error: DeliveryError) -> None:
    delivery.status = DeliveryStatus.FAILED
    delivery.failed_at = django_timezone.now()
    delivery.failure_reason = str(error)
    delivery.failure_code = error.code
    delivery.is_permanent_failure = error.is_permanent
    delivery.attempt_count += 1
    delivery.save(
        update_fields=[
            "status",
            "failed_at",
            "failure_reason",
            "failure_code",
            "is_permanent_failure",
            "attempt_count",
            "updated_at",
        ]
    )


@shared_task(
    bind=True,
    autoretry_for=(DeliveryError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": MAX_DELIVERY_RETRIES},
)
def deliver_notification(self, delivery_id: str) -> bool:
    """
    Send a lifecycle notification by email.

    Flow:
        1. Fetch delivery; skip if status != PENDING
        2. Skip if the recipient has no email address
        3. Send through Django's email backend
        4. On success: status=SENT
        5. On permanent error: status=FAILED, is_permanent_failure=True
        6. On transient error: raise for retry; FAILED once retries run out

    Args:
        delivery_id: UUID string of the NotificationDelivery

    Returns:
        True if sent or skipped, False on permanent failure
    """
    delivery = _get_delivery(delivery_id)
    if delivery is None:
        return True

    if not delivery.recipient.email:
        delivery.status = DeliveryStatus.SKIPPED
        delivery.save(update_fields=["status", "updated_at"])
        logger.info(f"Delivery {delivery_id} skipped: recipient has no email")
        return True

    try:
        _send(delivery)
    except DeliveryError as e:
        if e.is_permanent or self.request.retries >= MAX_DELIVERY_RETRIES:
            _mark_failed(delivery, e)
            logger.warning(
                f"Notification delivery {delivery_id} failed: {e.code} - {e}",
                extra={"delivery_id": delivery_id, "failure_code": e.code},
            )
            return False

        delivery.attempt_count += 1
        delivery.save(update_fields=["attempt_count", "updated_at"])
        logger.warning(
            f"Notification delivery {delivery_id} transiently failed: {e.code} - {e}, will retry",
            extra={"delivery_id": delivery_id, "failure_code": e.code},
        )
        raise

    _mark_sent(delivery)
    logger.info(
        f"Notification {delivery.event_type} sent for delivery {delivery_id}",
        extra={"delivery_id": delivery_id},
    )
    return True
