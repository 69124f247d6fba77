"""
Base exception classes for application-wide error handling.

Services return ServiceResult for expected business outcomes (an exhausted
account pool, an illegal status edge). The exceptions here are for the
conditions a service cannot resolve on its own: missing rows, lost races,
failed audit writes. Each carries a machine-readable error code so the
service boundary can turn it into a ServiceResult without losing detail.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures
    ├── NotFoundError - Resource not found
    ├── PermissionDeniedError - Authorization failures
    └── ConflictError - State conflicts
        └── StaleRecordError - Version stamp no longer matches

Usage:
    from core.exceptions import NotFoundError, StaleRecordError

    raise NotFoundError(
        f"Order {order_id} not found",
        error_code="ENTITY_NOT_FOUND",
        details={"entity_id": str(order_id)},
    )

    try:
        ...
    except BaseApplicationError as e:
        return ServiceResult.failure(e.message, e.error_code)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, versions, limits)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Returns:
            Dict with error, error_code, and (when present) details keys
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Example:
        raise ValidationError(
            "Amount must be positive",
            details={"amount": ["Must be greater than zero"]},
        )
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource does not exist."""

    default_error_code: str = "NOT_FOUND"


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when an actor is not allowed to perform an action.

    Authentication itself is handled by DRF; this covers the role checks
    services perform before privileged operations.
    """

    default_error_code: str = "PERMISSION_DENIED"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with the current state of a record.

    Use for illegal state transitions and concurrent modifications.
    """

    default_error_code: str = "CONFLICT"


class StaleRecordError(ConflictError):
    """
    Raised when a record's version no longer matches the expected value.

    Another process modified the row between our read and our write.
    Callers retry a bounded number of times before giving up.

    Example:
        raise StaleRecordError(
            f"PaymentAccount {pk} has been modified",
            details={"pk": str(pk), "expected_version": 3, "current_version": 4},
        )
    """

    default_error_code: str = "STALE_RECORD"

