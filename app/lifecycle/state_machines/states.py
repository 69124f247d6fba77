"""
State enums and the transition table for orders and remittances.

These are Django TextChoices for database storage and admin integration;
the models mirror LIFECYCLE_TRANSITIONS with django-fsm transitions.

State Machines Overview:

LifecycleStatus (shared by Order and Remittance):
    pending → processing → shipped → delivered → completed
    pending/processing/shipped → cancelled

PaymentStatus (sub-state, only moves while status is pending):
    pending → validated (unlocks processing)
    pending → rejected (halts progression)
"""

from django.db import models


class LifecycleStatus(models.TextChoices):
    """
    Main status of an order or remittance.

    Terminal states: COMPLETED, CANCELLED
    DELIVERED is terminal except for the explicit move to COMPLETED.
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class PaymentStatus(models.TextChoices):
    """
    Review status of the customer's payment.

    State Flow:
        PENDING → VALIDATED
        PENDING → REJECTED
    """

    PENDING = "pending", "Pending"
    VALIDATED = "validated", "Validated"
    REJECTED = "rejected", "Rejected"


LIFECYCLE_TRANSITIONS: dict[str, frozenset[str]] = {
    LifecycleStatus.PENDING: frozenset({LifecycleStatus.PROCESSING, LifecycleStatus.CANCELLED}),
    LifecycleStatus.PROCESSING: frozenset({LifecycleStatus.SHIPPED, LifecycleStatus.CANCELLED}),
    LifecycleStatus.SHIPPED: frozenset({LifecycleStatus.DELIVERED, LifecycleStatus.CANCELLED}),
    LifecycleStatus.DELIVERED: frozenset({LifecycleStatus.COMPLETED}),
    LifecycleStatus.COMPLETED: frozenset(),
    LifecycleStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[str, frozenset[str]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.VALIDATED, PaymentStatus.REJECTED}),
    PaymentStatus.VALIDATED: frozenset(),
    PaymentStatus.REJECTED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in LIFECYCLE_TRANSITIONS.items() if not targets)


def is_legal_transition(current: str, target: str) -> bool:
    """Whether ``current → target`` is an edge of the lifecycle table."""
    return target in LIFECYCLE_TRANSITIONS.get(current, frozenset())


__all__ = [
    "LIFECYCLE_TRANSITIONS",
    "PAYMENT_TRANSITIONS",
    "TERMINAL_STATUSES",
    "LifecycleStatus",
    "PaymentStatus",
    "is_legal_transition",
]
