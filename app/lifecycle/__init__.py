"""
Lifecycle app.

Orders and remittances, their status transitions, and the side effects a
transition sets off: the audit entry, usage on the assigned payment
account, tier reclassification and customer notifications.

Usage:
    from lifecycle.services import LifecycleService

    result = LifecycleService.transition("orders", order.id, "shipped", actor=operator)
    if not result.success:
        ...  # INVALID_TRANSITION, ENTITY_NOT_FOUND, ...
"""
