"""
Post-commit notification dispatch.

dispatch_on_commit() is called from inside a service's atomic block. The
delivery row and the Celery task are only created once the transaction
commits; if it rolls back nothing is sent. Failures on this path are
logged and never reach the caller.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING

from django.db import DatabaseError, transaction
from kombu.exceptions import OperationalError

from notifications.models import NotificationDelivery
from notifications.tasks import deliver_notification

if TYPE_CHECKING:
    from typing import Any

    from authentication.models import User

logger = logging.getLogger(__name__)


def dispatch_on_commit(
    event_type: str,
    entity_table: str,
    entity_id: Any,
    recipient: User,
    payload: dict[str, Any] | None = None,
) -> None:
    """Schedule a notification for after the current transaction commits."""
    transaction.on_commit(
        partial(
            dispatch,
            event_type,
            entity_table,
            str(entity_id),
            recipient.pk,
            payload or {},
        )
    )


def dispatch(
    event_type: str,
    entity_table: str,
    entity_id: str,
    recipient_id: int,
    payload: dict[str, Any],
) -> NotificationDelivery | None:
    """
    Create the delivery row and enqueue the email task.

    Returns:
        The NotificationDelivery, or None if it could not be recorded
    """
    try:
        delivery = NotificationDelivery.objects.create(
            event_type=event_type,
            entity_table=entity_table,
            entity_id=entity_id,
            recipient_id=recipient_id,
            payload=payload,
        )
    except DatabaseError:
        logger.exception(
            f"Could not record {event_type} notification for {entity_table}:{entity_id}",
            extra={"entity_table": entity_table, "entity_id": entity_id},
        )
        return None

    try:
        deliver_notification.delay(str(delivery.id))
    except OperationalError as e:
        # Row stays PENDING for a later resend
        logger.warning(
            f"Could not enqueue delivery {delivery.id}: {e}",
            extra={"delivery_id": str(delivery.id), "event_type": event_type},
        )

    return delivery
