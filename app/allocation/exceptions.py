"""
Allocation-specific exceptions.

Exception Hierarchy:
    AllocationError (base)
    ├── AccountNotFound - Account lookup failures
    └── UsageLimitExceeded - Usage would break a daily/monthly ceiling

ConcurrentModification is the outward form of an exhausted
core.exceptions.StaleRecordError retry loop.

Usage:
    from allocation.exceptions import AccountNotFound, UsageLimitExceeded

    raise AccountNotFound(
        f"Payment account {account_id} not found",
        details={"account_id": str(account_id)},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError, NotFoundError

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal
    from typing import Any


class AllocationError(BaseApplicationError):
    """Base exception for allocation and usage ledger operations."""

    default_error_code: str = "ALLOCATION_ERROR"


class AccountNotFound(AllocationError, NotFoundError):
    """
    Raised when a payment account cannot be found.

    Always a programming or data error: account ids reach the ledger from
    rows that referenced them.
    """

    default_error_code: str = "ACCOUNT_NOT_FOUND"


class ConcurrentModification(ConflictError):
    """Raised when a row kept changing under us for every allowed retry."""

    default_error_code: str = "CONCURRENT_MODIFICATION"


class UsageLimitExceeded(AllocationError):
    """
    Raised when recording usage would push a counter past its ceiling.

    Attributes:
        account_id: The account that would overflow
        period: "daily" or "monthly"
        attempted: Counter value the usage would produce
        ceiling: The applicable limit
    """

    default_error_code: str = "USAGE_LIMIT_EXCEEDED"

    def __init__(
        self,
        account_id: uuid.UUID,
        period: str,
        attempted: Decimal,
        ceiling: Decimal,
        details: dict[str, Any] | None = None,
    ):
        self.account_id = account_id
        self.period = period
        self.attempted = attempted
        self.ceiling = ceiling

        full_details = {
            "account_id": str(account_id),
            "period": period,
            "attempted": str(attempted),
            "ceiling": str(ceiling),
        }
        if details:
            full_details.update(details)

        super().__init__(
            message=(
                f"Account {account_id} {period} usage would reach {attempted}, "
                f"above its ceiling of {ceiling}"
            ),
            details=full_details,
        )
