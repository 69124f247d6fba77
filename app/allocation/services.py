"""
Allocation service layer.

Services:
    AccountAllocator: Pick one eligible payment account for a new payment
    UsageLedger: Record confirmed usage, reset counters on period rollover
    PaymentAccountService: Operator administration of the account pool
    AccountTransactionService: Per-account payment history

Concurrency:
    The ledger reads the account with select_for_update, computes the new
    counters, then applies them with a version compare-and-swap
    (core.locks.compare_and_swap). A lost race is retried up to
    settings.ALLOCATION_MAX_RETRIES times before the caller sees
    CONCURRENT_MODIFICATION. No counter value is cached between calls.

Usage:
    from allocation.services import AccountAllocator, UsageLedger

    result = AccountAllocator.allocate(TransactionType.GOODS, Decimal("20.00"))
    if not result.success:
        return result  # NO_AVAILABLE_ACCOUNT

    UsageLedger.record_usage(result.data.id, Decimal("20.00"), actor=operator)
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db.models import Case, Count, DecimalField, ExpressionWrapper, F, Q, Sum, Value, When
from django.utils import timezone

from allocation.exceptions import (
    AccountNotFound,
    ConcurrentModification,
    UsageLimitExceeded,
)
from allocation.models import (
    ZERO,
    AccountTransaction,
    AccountTransactionStatus,
    PaymentAccount,
    TransactionType,
    UsagePeriod,
)
from allocation.types import (
    MAX_AMOUNT,
    AccountStats,
    ResetSummary,
    TransactionRequest,
    UsageRecord,
    to_amount,
)
from audit.exceptions import AuditWriteFailure
from audit.models import AuditAction
from audit.services import AuditTrail, snapshot
from core.exceptions import BaseApplicationError, StaleRecordError, ValidationError
from core.locks import compare_and_swap, retry_on_stale
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    import uuid
    from datetime import date
    from typing import Any

    from django.db.models import QuerySet

    from authentication.models import User

ACCOUNTS_TABLE = "payment_accounts"

USAGE_AUDIT_FIELDS = (
    "current_daily_amount",
    "current_monthly_amount",
    "last_reset_date",
    "last_used_at",
    "version",
)

CONFIG_AUDIT_FIELDS = (
    "account_name",
    "email",
    "phone",
    "bank_name",
    "account_holder",
    "is_active",
    "for_goods",
    "for_remittances",
    "daily_limit",
    "monthly_limit",
    "security_limit",
    "priority_order",
    "notes",
)

MONEY_FIELD = DecimalField(max_digits=14, decimal_places=2)


def _unauthorized(actor: User | None, action: str) -> ServiceResult:
    return ServiceResult.failure(
        f"User is not allowed to {action}",
        error_code="UNAUTHORIZED",
    )


def _is_operator(actor: User | None) -> bool:
    return actor is not None and actor.has_role(settings.OPERATOR_ROLES)


# =============================================================================
# Account Allocator
# =============================================================================


class AccountAllocator(BaseService):
    """
    Selects one payment account for a new transaction.

    Eligible accounts are active, support the transaction type, and can
    take the amount without breaking either ceiling. Among them the lowest
    priority_order wins, then the least recently used (never-used first),
    then the oldest account. The same account states always produce the
    same answer.

    Allocation does not touch counters; an abandoned checkout consumes no
    capacity.
    """

    @classmethod
    def allocate(cls, transaction_type: str, amount: Decimal | str | int) -> ServiceResult[PaymentAccount]:
        """
        Pick an account for ``amount`` of ``transaction_type``.

        Returns:
            ServiceResult with the PaymentAccount, or a failure with
            NO_AVAILABLE_ACCOUNT / VALIDATION_ERROR
        """
        try:
            request = TransactionRequest(transaction_type, amount)
        except ValidationError as e:
            return ServiceResult.failure(e.message, e.error_code, errors=e.details)

        account = cls.eligible_accounts(request).first()
        if account is None:
            cls.get_logger().warning(
                f"No payment account can take {request.amount} ({request.transaction_type})",
                extra={
                    "transaction_type": request.transaction_type,
                    "amount": str(request.amount),
                },
            )
            return ServiceResult.failure(
                "No payment channel available",
                error_code="NO_AVAILABLE_ACCOUNT",
            )

        cls.get_logger().info(
            f"Allocated account {account.id} for {request.amount} ({request.transaction_type})",
            extra={"account_id": str(account.id), "amount": str(request.amount)},
        )
        return ServiceResult.success(account)

    @staticmethod
    def eligible_accounts(request: TransactionRequest, today: date | None = None) -> QuerySet:
        """
        Accounts that can take ``request``, in allocation order.

        Counters left over from a past day or month are evaluated as zero,
        matching what UsageLedger would do on the next write.
        """
        today = today or timezone.localdate()
        month_start = today.replace(day=1)
        amount = Value(request.amount, output_field=MONEY_FIELD)

        capability = (
            Q(for_remittances=True)
            if request.transaction_type == TransactionType.REMITTANCE
            else Q(for_goods=True)
        )

        return (
            PaymentAccount.objects.filter(capability, is_active=True)
            .annotate(
                projected_daily=ExpressionWrapper(
                    Case(
                        When(last_reset_date__lt=today, then=Value(ZERO)),
                        default=F("current_daily_amount"),
                        output_field=MONEY_FIELD,
                    )
                    + amount,
                    output_field=MONEY_FIELD,
                ),
                projected_monthly=ExpressionWrapper(
                    Case(
                        When(last_reset_date__lt=month_start, then=Value(ZERO)),
                        default=F("current_monthly_amount"),
                        output_field=MONEY_FIELD,
                    )
                    + amount,
                    output_field=MONEY_FIELD,
                ),
            )
            .filter(projected_daily__lte=F("security_limit"))
            .filter(Q(daily_limit__isnull=True) | Q(projected_daily__lte=F("daily_limit")))
            .filter(Q(monthly_limit__isnull=True) | Q(projected_monthly__lte=F("monthly_limit")))
            .order_by(
                "priority_order",
                F("last_used_at").asc(nulls_first=True),
                "created_at",
                "id",
            )
        )


# =============================================================================
# Usage Ledger
# =============================================================================


class UsageLedger(BaseService):
    """
    Per-account running totals for the current day and month.

    record_usage() is the only path that increments counters. Every write
    first brings the counters up to date (zeroing a past day, and a past
    month), then applies the change, then writes one audit entry, all in
    one transaction.
    """

    @classmethod
    def record_usage(
        cls,
        account_id: uuid.UUID,
        amount: Decimal | str | int,
        actor: User | None = None,
        reason: str | None = None,
    ) -> ServiceResult[UsageRecord]:
        """
        Add ``amount`` to an account's daily and monthly counters.

        Returns:
            ServiceResult with the committed UsageRecord, or a failure with
            ACCOUNT_NOT_FOUND, USAGE_LIMIT_EXCEEDED, CONCURRENT_MODIFICATION,
            AUDIT_WRITE_FAILURE or VALIDATION_ERROR
        """
        try:
            with cls.atomic():
                record = cls.apply_usage(account_id, amount, actor=actor, reason=reason)
        except (AccountNotFound, AuditWriteFailure) as e:
            return cls.handle_exception(e, "record_usage")
        except BaseApplicationError as e:
            cls.get_logger().info(
                f"Usage not recorded on account {account_id}: {e}",
                extra={"account_id": str(account_id), "error_code": e.error_code},
            )
            return ServiceResult.failure(e.message, e.error_code)

        return ServiceResult.success(record)

    @classmethod
    def apply_usage(
        cls,
        account_id: uuid.UUID,
        amount: Decimal | str | int,
        actor: User | None = None,
        reason: str | None = None,
    ) -> UsageRecord:
        """
        Raising variant of record_usage() for callers with their own transaction.

        Raises:
            ValidationError: Non-positive amount
            AccountNotFound: Unknown account
            UsageLimitExceeded: A ceiling would be broken
            ConcurrentModification: Retries exhausted
            AuditWriteFailure: Audit entry could not be written
        """
        amount = to_amount(amount)
        if amount <= 0:
            raise ValidationError(
                "Amount must be positive",
                details={"amount": ["Must be greater than zero"]},
            )

        def attempt() -> UsageRecord:
            return cls._write_counters(
                account_id,
                actor=actor,
                reason=reason or "Usage recorded",
                increment=amount,
            )

        return cls._with_retries(attempt, account_id)

    @classmethod
    def reset_expired_counters(cls, today: date | None = None) -> ServiceResult[ResetSummary]:
        """
        Zero counters left over from a past day or month.

        Runs from celery-beat shortly after midnight so accounts that saw no
        traffic still start the day at zero. Accounts that lose every retry
        are listed in ``skipped`` and picked up by the next run or the next
        usage write.
        """
        today = today or timezone.localdate()
        month_start = today.replace(day=1)
        summary = ResetSummary(run_date=today)

        stale_ids = list(
            PaymentAccount.objects.filter(last_reset_date__lt=today)
            .order_by("id")
            .values_list("id", flat=True)
        )

        for account_id in stale_ids:
            def attempt(account_id=account_id) -> UsageRecord:
                return cls._write_counters(
                    account_id,
                    actor=None,
                    reason="Scheduled period reset",
                    today=today,
                )

            try:
                with cls.atomic():
                    record = cls._with_retries(attempt, account_id)
            except (ConcurrentModification, AccountNotFound, AuditWriteFailure) as e:
                cls.get_logger().warning(
                    f"Skipped counter reset for account {account_id}: {e}",
                    extra={"account_id": str(account_id), "error_code": e.error_code},
                )
                summary.skipped.append(str(account_id))
                continue

            if record.daily_reset:
                summary.daily_reset += 1
            if record.monthly_reset:
                summary.monthly_reset += 1

        cls.get_logger().info(
            f"Counter reset sweep for {today}: {summary.daily_reset} daily, "
            f"{summary.monthly_reset} monthly, {len(summary.skipped)} skipped",
            extra={
                "daily_reset": summary.daily_reset,
                "monthly_reset": summary.monthly_reset,
                "month_start": month_start.isoformat(),
            },
        )
        return ServiceResult.success(summary)

    @classmethod
    def manual_reset(
        cls,
        account_id: uuid.UUID,
        period: str,
        actor: User,
        reason: str | None = None,
    ) -> ServiceResult[UsageRecord]:
        """
        Operator reset of one account's daily or monthly counter.

        Any pending period rollover is applied first, so a manual daily
        reset on the first of the month also clears the monthly counter.
        """
        if not _is_operator(actor):
            return _unauthorized(actor, "reset account counters")
        if period not in UsagePeriod.values:
            return ServiceResult.failure(
                f"Unknown period: {period}",
                error_code="VALIDATION_ERROR",
                errors={"period": [f"Must be one of {UsagePeriod.values}"]},
            )

        def attempt() -> UsageRecord:
            return cls._write_counters(
                account_id,
                actor=actor,
                reason=reason or f"Manual {period} reset",
                force_period=period,
            )

        try:
            with cls.atomic():
                record = cls._with_retries(attempt, account_id)
        except (AccountNotFound, AuditWriteFailure) as e:
            return cls.handle_exception(e, "manual_reset")
        except ConcurrentModification as e:
            return ServiceResult.failure(e.message, e.error_code)

        cls.get_logger().info(
            f"Manual {period} reset of account {account_id} by user {actor.pk}",
            extra={"account_id": str(account_id), "period": period},
        )
        return ServiceResult.success(record)

    @classmethod
    def _with_retries(cls, attempt, account_id) -> UsageRecord:
        try:
            return retry_on_stale(max_retries=settings.ALLOCATION_MAX_RETRIES)(attempt)()
        except StaleRecordError as e:
            raise ConcurrentModification(
                f"Payment account {account_id} kept changing; gave up after "
                f"{settings.ALLOCATION_MAX_RETRIES} retries",
                details={"account_id": str(account_id), **e.details},
            ) from e

    @classmethod
    def _write_counters(
        cls,
        account_id: uuid.UUID,
        actor: User | None,
        reason: str,
        increment: Decimal = ZERO,
        force_period: str | None = None,
        today: date | None = None,
    ) -> UsageRecord:
        """
        One read-compute-swap cycle on a single account.

        The row is read with select_for_update; the version swap still
        catches writers that bypassed the lock. Runs in its own savepoint,
        so a StaleRecordError leaves nothing behind and the retry loop
        calls it again with a fresh read.
        """
        today = today or timezone.localdate()

        with cls.atomic():
            try:
                account = PaymentAccount.objects.select_for_update().get(pk=account_id)
            except PaymentAccount.DoesNotExist:
                raise AccountNotFound(
                    f"Payment account {account_id} not found",
                    details={"account_id": str(account_id)},
                )

            daily_reset = account.is_daily_stale(today)
            monthly_reset = account.is_monthly_stale(today)
            daily, monthly = account.usage_as_of(today)

            if force_period == UsagePeriod.DAILY:
                daily_reset = daily_reset or daily > 0
                daily = ZERO
            elif force_period == UsagePeriod.MONTHLY:
                monthly_reset = monthly_reset or monthly > 0
                monthly = ZERO

            daily += increment
            monthly += increment

            exceeded = account.exceeded_period(daily, monthly) if increment > 0 else None
            if exceeded == UsagePeriod.DAILY:
                raise UsageLimitExceeded(account.id, exceeded, daily, account.effective_daily_limit)
            if exceeded == UsagePeriod.MONTHLY:
                raise UsageLimitExceeded(account.id, exceeded, monthly, account.monthly_limit)
            # A null monthly limit still stops at the column size
            if monthly > MAX_AMOUNT:
                raise UsageLimitExceeded(account.id, UsagePeriod.MONTHLY, monthly, MAX_AMOUNT)

            prior = snapshot(account, USAGE_AUDIT_FIELDS)
            changes: dict[str, Any] = {
                "current_daily_amount": daily,
                "current_monthly_amount": monthly,
                "last_reset_date": today,
            }
            if increment > 0:
                changes["last_used_at"] = timezone.now()

            new_version = compare_and_swap(PaymentAccount, account.pk, account.version, **changes)

            post = {**prior, **changes, "version": new_version}
            AuditTrail.record(
                action=AuditAction.UPDATE,
                entity_table=ACCOUNTS_TABLE,
                entity_id=account.pk,
                actor=actor,
                prior_state=prior,
                post_state=post,
                reason=reason,
            )

        return UsageRecord(
            account_id=account.pk,
            amount=increment,
            current_daily_amount=daily,
            current_monthly_amount=monthly,
            last_reset_date=today,
            last_used_at=post["last_used_at"],
            version=new_version,
            daily_reset=daily_reset,
            monthly_reset=monthly_reset,
        )


# =============================================================================
# Payment Account Administration
# =============================================================================


class PaymentAccountService(BaseService):
    """
    Operator administration of the account pool.

    Accounts are created, edited and disabled here; they are never
    deleted, and their usage counters cannot be edited through this path.
    Every change writes an audit entry.
    """

    EDITABLE_FIELDS = frozenset(CONFIG_AUDIT_FIELDS)

    @classmethod
    def create_account(cls, actor: User, reason: str | None = None, **fields: Any) -> ServiceResult[PaymentAccount]:
        """Create an account. Unknown or counter fields are rejected."""
        if not _is_operator(actor):
            return _unauthorized(actor, "create payment accounts")

        invalid = set(fields) - cls.EDITABLE_FIELDS
        if invalid:
            return cls._invalid_fields(invalid)

        try:
            with cls.atomic():
                account = PaymentAccount.objects.create(**fields)
                AuditTrail.record(
                    action=AuditAction.CREATE,
                    entity_table=ACCOUNTS_TABLE,
                    entity_id=account.pk,
                    actor=actor,
                    post_state=snapshot(account, CONFIG_AUDIT_FIELDS + USAGE_AUDIT_FIELDS),
                    reason=reason or "Account created",
                )
        except AuditWriteFailure as e:
            return cls.handle_exception(e, "create_account")

        cls.get_logger().info(
            f"Created payment account {account.id} ({account.account_name})",
            extra={"account_id": str(account.id)},
        )
        return ServiceResult.success(account)

    @classmethod
    def update_account(
        cls,
        account_id: uuid.UUID,
        actor: User,
        reason: str | None = None,
        **changes: Any,
    ) -> ServiceResult[PaymentAccount]:
        """Edit configuration fields on an account."""
        if not _is_operator(actor):
            return _unauthorized(actor, "edit payment accounts")

        invalid = set(changes) - cls.EDITABLE_FIELDS
        if invalid:
            return cls._invalid_fields(invalid)

        try:
            with cls.atomic():
                account = cls._locked(account_id)
                prior = snapshot(account, CONFIG_AUDIT_FIELDS)
                for name, value in changes.items():
                    setattr(account, name, value)
                account.save(update_fields=[*changes, "updated_at"])
                AuditTrail.record(
                    action=AuditAction.UPDATE,
                    entity_table=ACCOUNTS_TABLE,
                    entity_id=account.pk,
                    actor=actor,
                    prior_state=prior,
                    post_state=snapshot(account, CONFIG_AUDIT_FIELDS),
                    reason=reason or "Account updated",
                )
        except (AccountNotFound, AuditWriteFailure) as e:
            return cls.handle_exception(e, "update_account")

        return ServiceResult.success(account)

    @classmethod
    def disable_account(
        cls,
        account_id: uuid.UUID,
        actor: User,
        reason: str | None = None,
    ) -> ServiceResult[PaymentAccount]:
        """Take an account out of the rotation. History and counters stay."""
        return cls.update_account(
            account_id,
            actor,
            reason=reason or "Account disabled",
            is_active=False,
        )

    @classmethod
    def list_accounts(
        cls,
        is_active: bool | None = None,
        transaction_type: str | None = None,
    ) -> ServiceResult[list[PaymentAccount]]:
        """
        Accounts in rotation order (priority, then name).

        Args:
            is_active: Only active (True) or only disabled (False) accounts
            transaction_type: Only accounts that accept this payment type
        """
        accounts = PaymentAccount.objects.order_by("priority_order", "account_name")
        if is_active is not None:
            accounts = accounts.filter(is_active=is_active)
        if transaction_type == TransactionType.REMITTANCE:
            accounts = accounts.filter(for_remittances=True)
        elif transaction_type == TransactionType.GOODS:
            accounts = accounts.filter(for_goods=True)
        elif transaction_type is not None:
            return ServiceResult.failure(
                f"Unknown transaction type: {transaction_type}",
                error_code="VALIDATION_ERROR",
                errors={"transaction_type": [f"Must be one of {', '.join(TransactionType.values)}"]},
            )
        return ServiceResult.success(list(accounts))

    @classmethod
    def account_stats(cls, account_id: uuid.UUID) -> ServiceResult[AccountStats]:
        """
        Transaction totals and remaining capacity for one account.

        remaining_monthly is None when the account has no monthly limit.
        """
        try:
            account = PaymentAccount.objects.get(pk=account_id)
        except PaymentAccount.DoesNotExist:
            return cls.handle_exception(
                AccountNotFound(
                    f"Payment account {account_id} not found",
                    details={"account_id": str(account_id)},
                ),
                "account_stats",
            )

        def amount_where(status: str):
            return Sum("amount", filter=Q(status=status), default=ZERO)

        totals = AccountTransaction.objects.filter(account=account).aggregate(
            total_transactions=Count("id"),
            total_amount=Sum("amount", default=ZERO),
            validated_amount=amount_where(AccountTransactionStatus.VALIDATED),
            pending_amount=amount_where(AccountTransactionStatus.PENDING),
            rejected_amount=amount_where(AccountTransactionStatus.REJECTED),
        )
        by_type = {value: 0 for value in TransactionType.values}
        for row in (
            AccountTransaction.objects.filter(account=account)
            .values("transaction_type")
            .annotate(count=Count("id"))
        ):
            by_type[row["transaction_type"]] = row["count"]

        daily, monthly = account.usage_as_of(timezone.localdate())
        remaining_monthly = None
        if account.monthly_limit is not None:
            remaining_monthly = max(account.monthly_limit - monthly, ZERO)

        return ServiceResult.success(
            AccountStats(
                account_id=account.pk,
                total_transactions=totals["total_transactions"],
                total_amount=totals["total_amount"],
                validated_amount=totals["validated_amount"],
                pending_amount=totals["pending_amount"],
                rejected_amount=totals["rejected_amount"],
                by_type=by_type,
                current_daily_amount=daily,
                current_monthly_amount=monthly,
                remaining_daily=max(account.effective_daily_limit - daily, ZERO),
                remaining_monthly=remaining_monthly,
            )
        )

    @staticmethod
    def _locked(account_id: uuid.UUID) -> PaymentAccount:
        try:
            return PaymentAccount.objects.select_for_update().get(pk=account_id)
        except PaymentAccount.DoesNotExist:
            raise AccountNotFound(
                f"Payment account {account_id} not found",
                details={"account_id": str(account_id)},
            )

    @staticmethod
    def _invalid_fields(names: set[str]) -> ServiceResult:
        return ServiceResult.failure(
            "Unknown or read-only account fields",
            error_code="VALIDATION_ERROR",
            errors={name: ["Not an editable field"] for name in sorted(names)},
        )


# =============================================================================
# Account Transaction History
# =============================================================================


class AccountTransactionService(BaseService):
    """
    Payment history per account.

    open() and close() are called by the lifecycle engine inside its own
    transaction and raise instead of returning ServiceResult.
    """

    @classmethod
    def list_for_account(
        cls,
        account_id: uuid.UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        status: str | None = None,
    ) -> ServiceResult[list[AccountTransaction]]:
        """
        Transactions routed to an account, newest first.

        start_date and end_date are inclusive and compared against the
        local creation date.

        Returns:
            ServiceResult with the transactions, or a failure with
            ACCOUNT_NOT_FOUND / VALIDATION_ERROR
        """
        if status is not None and status not in AccountTransactionStatus.values:
            return ServiceResult.failure(
                f"Unknown transaction status: {status}",
                error_code="VALIDATION_ERROR",
                errors={"status": [f"Must be one of {', '.join(AccountTransactionStatus.values)}"]},
            )
        if start_date and end_date and start_date > end_date:
            return ServiceResult.failure(
                "start_date is after end_date",
                error_code="VALIDATION_ERROR",
                errors={"start_date": ["Must not be after end_date"]},
            )
        if not PaymentAccount.objects.filter(pk=account_id).exists():
            return cls.handle_exception(
                AccountNotFound(
                    f"Payment account {account_id} not found",
                    details={"account_id": str(account_id)},
                ),
                "list_for_account",
                log_level=logging.INFO,
            )

        transactions = AccountTransaction.objects.filter(account_id=account_id)
        if start_date:
            transactions = transactions.filter(created_at__date__gte=start_date)
        if end_date:
            transactions = transactions.filter(created_at__date__lte=end_date)
        if status:
            transactions = transactions.filter(status=status)
        return ServiceResult.success(list(transactions.order_by("-created_at", "-id")))

    @staticmethod
    def open(
        account: PaymentAccount,
        transaction_type: str,
        reference_table: str,
        reference_id: Any,
        amount: Decimal,
    ) -> AccountTransaction:
        """Record that a payment of ``amount`` is expected on ``account``."""
        return AccountTransaction.objects.create(
            account=account,
            transaction_type=transaction_type,
            reference_table=reference_table,
            reference_id=str(reference_id),
            amount=amount,
        )

    @staticmethod
    def close(
        reference_table: str,
        reference_id: Any,
        status: str,
        actor: User | None,
        notes: str | None = None,
    ) -> AccountTransaction | None:
        """
        Mark the pending transaction for a reference validated or rejected.

        Returns:
            The updated AccountTransaction, or None if the reference never
            had one
        """
        account_tx = (
            AccountTransaction.objects.select_for_update()
            .filter(
                reference_table=reference_table,
                reference_id=str(reference_id),
                status=AccountTransactionStatus.PENDING,
            )
            .first()
        )
        if account_tx is None:
            return None

        account_tx.status = status
        account_tx.validated_by = actor
        account_tx.validated_at = timezone.now()
        if notes:
            account_tx.notes = notes
        account_tx.save(update_fields=["status", "validated_by", "validated_at", "notes", "updated_at"])
        return account_tx
