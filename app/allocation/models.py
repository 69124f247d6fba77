"""
Payment account and usage models.

PaymentAccount is a shared collection account (a Zelle account in
practice) that customers pay into. Each account carries its own
daily/monthly usage counters; the counters are only ever written by
allocation.services.UsageLedger.

AccountTransaction records every payment routed to an account, from the
moment an order or remittance is assigned the account until an operator
validates or rejects the payment.

Invariants (enforced by UsageLedger, checked by the tests):
    current_daily_amount <= min(daily_limit, security_limit)
    current_monthly_amount <= monthly_limit
A null daily_limit or monthly_limit means unbounded.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel

ZERO = Decimal("0.00")


def default_security_limit() -> Decimal:
    return Decimal(str(settings.ALLOCATION_DEFAULT_SECURITY_LIMIT))


class TransactionType(models.TextChoices):
    """Kind of payment an account can receive."""

    GOODS = "goods", "Goods"
    REMITTANCE = "remittance", "Remittance"


class AccountTransactionStatus(models.TextChoices):
    """
    Review status of a payment routed to an account.

    PENDING → VALIDATED (usage recorded on the account)
    PENDING → REJECTED (no usage recorded)
    """

    PENDING = "pending", "Pending"
    VALIDATED = "validated", "Validated"
    REJECTED = "rejected", "Rejected"


class UsagePeriod(models.TextChoices):
    """Counter period for manual resets."""

    DAILY = "daily", "Daily"
    MONTHLY = "monthly", "Monthly"


class PaymentAccount(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    A shared payment collection account with usage ceilings.

    Fields:
        account_name: Operator-facing label
        email / phone: Identifiers customers send money to
        bank_name / account_holder: Shown to customers at checkout
        is_active: Disabled accounts leave the rotation but keep history
        for_goods / for_remittances: Capability flags
        daily_limit / monthly_limit: Nominal ceilings (null = unbounded)
        security_limit: Hard daily ceiling below the nominal limit
        priority_order: Lower values are allocated first
        current_daily_amount / current_monthly_amount: Usage counters
        last_reset_date: Day the counters were last brought up to date
        last_used_at: When usage was last recorded (null = never)
        notes: Free-text operator notes
        version: Optimistic locking version
    """

    account_name = models.CharField(
        max_length=100,
        help_text="Operator-facing label",
    )
    email = models.EmailField(
        blank=True,
        help_text="Email customers send payments to",
    )
    phone = models.CharField(
        max_length=32,
        blank=True,
        help_text="Phone number customers send payments to",
    )
    bank_name = models.CharField(
        max_length=100,
        blank=True,
    )
    account_holder = models.CharField(
        max_length=150,
        blank=True,
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether the account is in the allocation rotation",
    )
    for_goods = models.BooleanField(
        default=True,
        help_text="Can receive payments for product orders",
    )
    for_remittances = models.BooleanField(
        default=False,
        help_text="Can receive payments for remittances",
    )
    daily_limit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Nominal daily ceiling (empty = unbounded)",
    )
    monthly_limit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Monthly ceiling (empty = unbounded)",
    )
    security_limit = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=default_security_limit,
        help_text="Hard daily ceiling applied on top of the daily limit",
    )
    priority_order = models.IntegerField(
        default=0,
        help_text="Allocation rank; lower values are tried first",
    )
    current_daily_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=ZERO,
    )
    current_monthly_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=ZERO,
    )
    last_reset_date = models.DateField(
        default=timezone.localdate,
        help_text="Day the usage counters were last brought up to date",
    )
    last_used_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When usage was last recorded",
    )
    notes = models.TextField(
        blank=True,
        default="",
    )

    class Meta:
        db_table = "payment_accounts"
        ordering = ["priority_order", "account_name"]
        verbose_name = "Payment Account"
        verbose_name_plural = "Payment Accounts"
        indexes = [
            models.Index(
                fields=["is_active", "priority_order"],
                name="payment_acct_rotation_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(current_daily_amount__gte=0),
                name="payment_account_daily_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(current_monthly_amount__gte=0),
                name="payment_account_monthly_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(security_limit__gte=0),
                name="payment_account_security_limit_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"PaymentAccount({self.account_name}, priority={self.priority_order})"

    @property
    def effective_daily_limit(self) -> Decimal:
        """The binding daily ceiling: min(daily_limit, security_limit)."""
        if self.daily_limit is None:
            return self.security_limit
        return min(self.daily_limit, self.security_limit)

    def supports(self, transaction_type: str) -> bool:
        if transaction_type == TransactionType.REMITTANCE:
            return self.for_remittances
        return self.for_goods

    def is_daily_stale(self, today: date) -> bool:
        return self.last_reset_date < today

    def is_monthly_stale(self, today: date) -> bool:
        return (self.last_reset_date.year, self.last_reset_date.month) < (today.year, today.month)

    def usage_as_of(self, today: date) -> tuple[Decimal, Decimal]:
        """
        Daily and monthly usage as they stand on ``today``.

        Counters from a past day (or month) count as zero even before the
        ledger or the sweep has written the reset.
        """
        daily = ZERO if self.is_daily_stale(today) else self.current_daily_amount
        monthly = ZERO if self.is_monthly_stale(today) else self.current_monthly_amount
        return daily, monthly

    def exceeded_period(self, daily: Decimal, monthly: Decimal) -> str | None:
        """
        Name the first period whose ceiling the given counters break.

        Returns:
            "daily", "monthly", or None when both fit
        """
        if daily > self.effective_daily_limit:
            return UsagePeriod.DAILY
        if self.monthly_limit is not None and monthly > self.monthly_limit:
            return UsagePeriod.MONTHLY
        return None


class AccountTransaction(UUIDPrimaryKeyMixin, BaseModel):
    """
    A payment routed to a payment account.

    Fields:
        account: Account the customer was told to pay into
        transaction_type: goods or remittance
        reference_table / reference_id: The order or remittance
        amount: Expected payment amount
        status: pending, validated or rejected
        validated_by / validated_at: Operator review
        notes: Rejection reason or operator notes
    """

    account = models.ForeignKey(
        PaymentAccount,
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    transaction_type = models.CharField(
        max_length=20,
        choices=TransactionType.choices,
    )
    reference_table = models.CharField(
        max_length=63,
        help_text="Table of the order or remittance this payment belongs to",
    )
    reference_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Primary key of the order or remittance",
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
    )
    status = models.CharField(
        max_length=20,
        choices=AccountTransactionStatus.choices,
        default=AccountTransactionStatus.PENDING,
        db_index=True,
    )
    validated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="validated_account_transactions",
    )
    validated_at = models.DateTimeField(
        null=True,
        blank=True,
    )
    notes = models.TextField(
        blank=True,
        default="",
    )

    class Meta:
        db_table = "payment_account_transactions"
        ordering = ["-created_at"]
        verbose_name = "Account Transaction"
        verbose_name_plural = "Account Transactions"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="account_transaction_amount_positive",
            ),
            models.UniqueConstraint(
                fields=["reference_table", "reference_id"],
                name="account_transaction_unique_reference",
            ),
        ]

    def __str__(self) -> str:
        return f"AccountTransaction({self.reference_table}:{self.reference_id}, {self.amount}, {self.status})"
