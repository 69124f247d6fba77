"""
State machine enums and helpers for lifecycle models.
"""

from lifecycle.state_machines.states import (
    LIFECYCLE_TRANSITIONS,
    PAYMENT_TRANSITIONS,
    TERMINAL_STATUSES,
    LifecycleStatus,
    PaymentStatus,
    is_legal_transition,
)

__all__ = [
    "LIFECYCLE_TRANSITIONS",
    "PAYMENT_TRANSITIONS",
    "TERMINAL_STATUSES",
    "LifecycleStatus",
    "PaymentStatus",
    "is_legal_transition",
]
