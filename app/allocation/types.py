"""
Data types for allocation and usage ledger operations.

Types:
    TransactionRequest: Allocator input (transaction type and amount)
    UsageRecord: Counters of an account after RecordUsage
    ResetSummary: Outcome of a period-reset sweep
    AccountStats: Aggregates over an account's transaction history

Usage:
    from allocation.types import TransactionRequest

    request = TransactionRequest(TransactionType.GOODS, Decimal("20.00"))
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from allocation.models import TransactionType
from core.exceptions import ValidationError

# Largest values numeric(12, 2) and numeric(10, 2) money columns hold
MAX_AMOUNT = Decimal("9999999999.99")
MAX_FEE = Decimal("99999999.99")
CENT = Decimal("0.01")


def to_amount(value, name: str = "amount", maximum: Decimal = MAX_AMOUNT) -> Decimal:
    """
    Coerce ``value`` to a two-place Decimal that fits a money column.

    Raises:
        ValidationError: If the value is not numeric, not finite or larger
            than ``maximum`` in magnitude
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(
            f"Invalid {name}: {value!r}",
            details={name: ["Must be a number"]},
        )
    if not amount.is_finite():
        raise ValidationError(
            f"Invalid {name}: {value!r}",
            details={name: ["Must be a finite number"]},
        )
    # quantize fails past 28 significant digits
    if abs(amount) <= maximum:
        amount = amount.quantize(CENT)
    if abs(amount) > maximum:
        raise ValidationError(
            f"{name} {amount} is out of range",
            details={name: [f"Must not exceed {maximum}"]},
        )
    return amount


@dataclass(frozen=True)
class TransactionRequest:
    """
    Ephemeral description of a payment awaiting an account.

    Not persisted; the allocator uses it to filter the account pool.

    Raises:
        ValidationError: On an unknown type or a non-positive amount
    """

    transaction_type: str
    amount: Decimal

    def __post_init__(self):
        if self.transaction_type not in TransactionType.values:
            raise ValidationError(
                f"Unknown transaction type: {self.transaction_type}",
                details={"transaction_type": [f"Must be one of {TransactionType.values}"]},
            )
        amount = to_amount(self.amount)
        if amount <= 0:
            raise ValidationError(
                "Amount must be positive",
                details={"amount": ["Must be greater than zero"]},
            )
        object.__setattr__(self, "amount", amount)


@dataclass(frozen=True)
class UsageRecord:
    """Account counters as committed by a usage write."""

    account_id: uuid.UUID
    amount: Decimal
    current_daily_amount: Decimal
    current_monthly_amount: Decimal
    last_reset_date: date
    last_used_at: datetime | None
    version: int
    daily_reset: bool = False
    monthly_reset: bool = False


@dataclass
class ResetSummary:
    """Accounts touched by a reset sweep."""

    run_date: date
    daily_reset: int = 0
    monthly_reset: int = 0
    skipped: list[str] = field(default_factory=list)


@dataclass
class AccountStats:
    """
    Aggregates over one account's transaction history and counters.

    by_type maps each TransactionType value to its transaction count.
    """

    account_id: uuid.UUID
    total_transactions: int
    total_amount: Decimal
    validated_amount: Decimal
    pending_amount: Decimal
    rejected_amount: Decimal
    by_type: dict[str, int]
    current_daily_amount: Decimal
    current_monthly_amount: Decimal
    remaining_daily: Decimal
    remaining_monthly: Decimal | None
