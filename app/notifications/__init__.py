"""
Notifications app for lifecycle event delivery.

This app provides:
- NotificationDelivery model tracking each outbound message
- dispatch_on_commit() for enqueueing a message once the triggering
  transaction has committed
- Celery task for email delivery with retry on transient failures

Usage:
    from notifications.dispatch import dispatch_on_commit
    from notifications.models import NotificationEvent

    with transaction.atomic():
        order.ship()
        order.save()
        dispatch_on_commit(
            NotificationEvent.STATUS_CHANGED,
            entity_table="orders",
            entity_id=order.id,
            recipient=order.user,
            payload={"status": order.status},
        )
"""
