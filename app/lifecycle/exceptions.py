"""
Lifecycle-specific exceptions.

Exception Hierarchy:
    ConflictError
    └── InvalidTransition - requested edge is not in the transition table
    NotFoundError
    └── EntityNotFound - unknown order or remittance
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import ConflictError, NotFoundError

if TYPE_CHECKING:
    from typing import Any


class InvalidTransition(ConflictError):
    """
    Raised when a status or payment edge is not legal from the current state.

    Attributes:
        current: State the entity is in
        target: State the caller asked for
    """

    default_error_code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        current: str,
        target: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.current = current
        self.target = target
        super().__init__(
            message or f"Cannot transition from {current} to {target}",
            details={"current": current, "target": target, **(details or {})},
        )


class EntityNotFound(NotFoundError):
    """Raised when an order or remittance id does not exist."""

    default_error_code: str = "ENTITY_NOT_FOUND"
