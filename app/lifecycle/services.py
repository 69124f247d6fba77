"""
Lifecycle service for orders and remittances.

Every mutation runs in one transaction:
    1. Lock the row (SELECT ... FOR UPDATE, optionally at a known version)
    2. Re-check the edge against the transition table
    3. Apply the django-fsm transition and save (bumps version)
    4. Ledger usage and account transaction updates (payment validation)
    5. Write exactly one audit entry

If any step fails the whole unit rolls back. Notifications and tier
recomputation are registered with transaction.on_commit and never affect
the committed state change.

Usage:
    from lifecycle.services import LifecycleService

    result = LifecycleService.create_order(user, subtotal=Decimal("40.00"))
    order = result.data

    LifecycleService.validate_payment("orders", order.id, actor=operator)
    LifecycleService.transition("orders", order.id, "processing", actor=operator)
"""

from __future__ import annotations

import logging
from decimal import Decimal
from functools import partial
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django_fsm import TransitionNotAllowed, can_proceed
from kombu.exceptions import OperationalError

from allocation.exceptions import AccountNotFound, ConcurrentModification, UsageLimitExceeded
from allocation.models import AccountTransactionStatus
from allocation.services import AccountAllocator, AccountTransactionService, UsageLedger
from allocation.types import MAX_FEE, to_amount
from audit.exceptions import AuditWriteFailure
from audit.models import AuditAction
from audit.services import AuditTrail, snapshot
from core.exceptions import (
    BaseApplicationError,
    NotFoundError,
    PermissionDeniedError,
    StaleRecordError,
    ValidationError,
)
from core.locks import check_version
from core.services import BaseService, ServiceResult
from lifecycle.exceptions import EntityNotFound, InvalidTransition
from lifecycle.models import LIFECYCLE_AUDIT_FIELDS, LifecycleEntity, Order, Remittance
from lifecycle.state_machines import LifecycleStatus, PaymentStatus, is_legal_transition
from notifications.dispatch import dispatch_on_commit
from notifications.models import NotificationEvent
from tiers.services import TierService
from tiers.tasks import recompute_user_tier

if TYPE_CHECKING:
    import uuid
    from typing import Any

    from authentication.models import User

logger = logging.getLogger(__name__)

ENTITY_MODELS: dict[str, type[LifecycleEntity]] = {
    "orders": Order,
    "remittances": Remittance,
}

# Errors logged as unexpected conditions; everything else is a business outcome
ESCALATED_ERRORS = (AccountNotFound, AuditWriteFailure)


def enqueue_tier_recompute(user_id: int) -> None:
    """Queue tier reclassification; enqueue failures are only logged."""
    try:
        recompute_user_tier.delay(user_id)
    except OperationalError as e:
        logger.warning(
            f"Could not enqueue tier recompute for user {user_id}: {e}",
            extra={"user_id": user_id},
        )


class LifecycleService(BaseService):
    """
    Creates orders and remittances and moves them through their lifecycle.

    All methods return ServiceResult. Expected outcomes (illegal edge,
    exhausted account pool, unauthorized actor) are failures with an
    error code; nothing raises for them.
    """

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    @classmethod
    def create_order(
        cls,
        user: User,
        subtotal: Decimal | str | int,
        shipping_cost: Decimal | str | int = 0,
        actor: User | None = None,
        notes: str = "",
        payment_reference: str = "",
    ) -> ServiceResult[Order]:
        """
        Create an order in pending and route its payment to an account.

        The user's tier discount is applied to the subtotal. Totals are
        fixed here; shipping cost comes from the caller.

        Returns:
            ServiceResult with the Order, or a failure with
            NO_AVAILABLE_ACCOUNT / VALIDATION_ERROR / UNAUTHORIZED /
            AUDIT_WRITE_FAILURE
        """
        actor = actor or user
        if not cls._may_act_for(actor, user):
            return cls._unauthorized("create orders for other users")

        try:
            subtotal = cls._positive(subtotal, "subtotal")
            shipping_cost = to_amount(shipping_cost, "shipping_cost", maximum=MAX_FEE)
            if shipping_cost < 0:
                raise ValidationError(
                    "Shipping cost cannot be negative",
                    details={"shipping_cost": ["Must be zero or greater"]},
                )
            percent = TierService.discount_for(user)
            discount = (subtotal * percent / Decimal("100")).quantize(Decimal("0.01"))
            total = to_amount(subtotal - discount + shipping_cost, "total_amount")
        except ValidationError as e:
            return ServiceResult.failure(e.message, e.error_code, errors=e.details)

        return cls._create(
            Order,
            user=user,
            actor=actor,
            amount=total,
            fields={
                "subtotal": subtotal,
                "discount_amount": discount,
                "shipping_cost": shipping_cost,
                "total_amount": total,
                "notes": notes,
                "payment_reference": payment_reference,
            },
        )

    @classmethod
    def create_remittance(
        cls,
        user: User,
        amount_sent: Decimal | str | int,
        recipient_name: str,
        amount_to_deliver: Decimal | str | int | None = None,
        commission_total: Decimal | str | int = 0,
        currency_sent: str = "USD",
        currency_delivered: str = "USD",
        recipient_phone: str = "",
        actor: User | None = None,
        payment_reference: str = "",
    ) -> ServiceResult[Remittance]:
        """
        Create a remittance in pending and route its payment to an account.

        amount_to_deliver defaults to amount_sent minus commission; the
        caller passes it explicitly when a currency conversion applies.
        """
        actor = actor or user
        if not cls._may_act_for(actor, user):
            return cls._unauthorized("create remittances for other users")

        try:
            amount_sent = cls._positive(amount_sent, "amount_sent")
            commission_total = to_amount(commission_total, "commission_total", maximum=MAX_FEE)
            if amount_to_deliver is None:
                amount_to_deliver = amount_sent - commission_total
            amount_to_deliver = cls._positive(amount_to_deliver, "amount_to_deliver")
            if not recipient_name:
                raise ValidationError(
                    "Recipient name is required",
                    details={"recipient_name": ["This field is required"]},
                )
        except ValidationError as e:
            return ServiceResult.failure(e.message, e.error_code, errors=e.details)

        return cls._create(
            Remittance,
            user=user,
            actor=actor,
            amount=amount_sent,
            fields={
                "amount_sent": amount_sent,
                "commission_total": commission_total,
                "amount_to_deliver": amount_to_deliver,
                "currency_sent": currency_sent,
                "currency_delivered": currency_delivered,
                "recipient_name": recipient_name,
                "recipient_phone": recipient_phone,
                "payment_reference": payment_reference,
            },
        )

    @classmethod
    def _create(
        cls,
        model: type[LifecycleEntity],
        user: User,
        actor: User,
        amount: Decimal,
        fields: dict[str, Any],
    ) -> ServiceResult:
        allocation = AccountAllocator.allocate(model.transaction_type, amount)
        if not allocation.success:
            return allocation
        account = allocation.data
        table = model._meta.db_table

        try:
            with cls.atomic():
                entity = model.objects.create(user=user, assigned_account=account, **fields)
                AccountTransactionService.open(
                    account,
                    model.transaction_type,
                    reference_table=table,
                    reference_id=entity.pk,
                    amount=amount,
                )
                AuditTrail.record(
                    action=AuditAction.CREATE,
                    entity_table=table,
                    entity_id=entity.pk,
                    actor=actor,
                    post_state={**snapshot(entity, LIFECYCLE_AUDIT_FIELDS), "amount": amount},
                    reason=f"{model._meta.verbose_name} created",
                )
                dispatch_on_commit(
                    NotificationEvent.ENTITY_CREATED,
                    entity_table=table,
                    entity_id=entity.pk,
                    recipient=user,
                    payload={"reference": entity.reference, "amount": amount},
                )
        except AuditWriteFailure as e:
            return cls.handle_exception(e, f"create {table}")

        cls.get_logger().info(
            f"Created {entity} on account {account.pk}",
            extra={"entity_table": table, "entity_id": str(entity.pk), "account_id": str(account.pk)},
        )
        return ServiceResult.success(entity)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    @classmethod
    def transition(
        cls,
        entity_type: str,
        entity_id: uuid.UUID,
        target_status: str,
        actor: User | None,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> ServiceResult[LifecycleEntity]:
        """
        Move an order or remittance to ``target_status``.

        Args:
            entity_type: "orders" or "remittances"
            entity_id: Primary key of the entity
            target_status: One of LifecycleStatus
            actor: Acting user (operators; owners may cancel while pending)
            reason: Stored on the audit entry
            expected_version: When given, fail with CONCURRENT_MODIFICATION
                unless the row is still at this version

        Returns:
            ServiceResult with the updated entity, or a failure with
            INVALID_TRANSITION / ENTITY_NOT_FOUND / UNAUTHORIZED /
            CONCURRENT_MODIFICATION / AUDIT_WRITE_FAILURE / VALIDATION_ERROR
        """
        model = ENTITY_MODELS.get(entity_type)
        if model is None:
            return cls._unknown_entity_type(entity_type)

        def apply(entity: LifecycleEntity) -> None:
            current = entity.status
            if not is_legal_transition(current, target_status):
                raise InvalidTransition(current, target_status)
            if target_status == LifecycleStatus.CANCELLED and not cls._is_operator(actor):
                if entity.user_id != getattr(actor, "pk", None) or current != LifecycleStatus.PENDING:
                    raise PermissionDeniedError("Only operators can cancel after processing starts", "UNAUTHORIZED")
            elif target_status != LifecycleStatus.CANCELLED and not cls._is_operator(actor):
                raise PermissionDeniedError("Operator role required", "UNAUTHORIZED")

            method = getattr(entity, model.STATUS_TRANSITION_METHODS[target_status])
            if not can_proceed(method):
                raise InvalidTransition(
                    current,
                    target_status,
                    message=f"Payment must be validated before {target_status}",
                    details={"payment_status": entity.payment_status},
                )
            method()

        return cls._mutate(
            model,
            entity_id,
            actor,
            apply,
            reason=reason or f"Status changed to {target_status}",
            expected_version=expected_version,
            target=target_status,
            after_save=schedule_transition_effects,
        )

    @classmethod
    def validate_payment(
        cls,
        entity_type: str,
        entity_id: uuid.UUID,
        actor: User | None,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> ServiceResult[LifecycleEntity]:
        """
        Accept the customer's payment.

        In the same transaction the amount is recorded on the assigned
        account's usage counters and the account transaction is marked
        validated. If the account cannot take the amount the validation
        fails with USAGE_LIMIT_EXCEEDED and nothing changes.
        """
        model = ENTITY_MODELS.get(entity_type)
        if model is None:
            return cls._unknown_entity_type(entity_type)
        if not cls._is_operator(actor):
            return cls._unauthorized("validate payments")

        table = model._meta.db_table
        reason = reason or "Payment validated"

        def apply(entity: LifecycleEntity) -> None:
            cls._check_payment_edge(entity, PaymentStatus.VALIDATED)
            entity.validate_payment(actor=actor)
            if entity.assigned_account_id:
                UsageLedger.apply_usage(
                    entity.assigned_account_id,
                    entity.payment_amount,
                    actor=actor,
                    reason=f"{reason} ({table}:{entity.pk})",
                )
            AccountTransactionService.close(table, entity.pk, AccountTransactionStatus.VALIDATED, actor)

        def notify(entity: LifecycleEntity) -> None:
            dispatch_on_commit(
                NotificationEvent.PAYMENT_VALIDATED,
                entity_table=table,
                entity_id=entity.pk,
                recipient=entity.user,
                payload={"reference": entity.reference},
            )

        return cls._mutate(
            model,
            entity_id,
            actor,
            apply,
            reason=reason,
            expected_version=expected_version,
            target=PaymentStatus.VALIDATED,
            after_save=notify,
        )

    @classmethod
    def reject_payment(
        cls,
        entity_type: str,
        entity_id: uuid.UUID,
        actor: User | None,
        reason: str,
        expected_version: int | None = None,
    ) -> ServiceResult[LifecycleEntity]:
        """
        Refuse the customer's payment and halt the entity.

        Counters never moved for this payment, so the ledger is untouched;
        the account transaction is marked rejected.
        """
        model = ENTITY_MODELS.get(entity_type)
        if model is None:
            return cls._unknown_entity_type(entity_type)
        if not cls._is_operator(actor):
            return cls._unauthorized("reject payments")
        if not reason or not reason.strip():
            return ServiceResult.failure(
                "A rejection reason is required",
                error_code="VALIDATION_ERROR",
                errors={"reason": ["This field is required"]},
            )

        table = model._meta.db_table

        def apply(entity: LifecycleEntity) -> None:
            cls._check_payment_edge(entity, PaymentStatus.REJECTED)
            entity.reject_payment(reason)
            AccountTransactionService.close(
                table,
                entity.pk,
                AccountTransactionStatus.REJECTED,
                actor,
                notes=reason,
            )

        def notify(entity: LifecycleEntity) -> None:
            dispatch_on_commit(
                NotificationEvent.PAYMENT_REJECTED,
                entity_table=table,
                entity_id=entity.pk,
                recipient=entity.user,
                payload={"reference": entity.reference, "reason": reason},
            )

        return cls._mutate(
            model,
            entity_id,
            actor,
            apply,
            reason=reason,
            expected_version=expected_version,
            target=PaymentStatus.REJECTED,
            after_save=notify,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @classmethod
    def _mutate(
        cls,
        model: type[LifecycleEntity],
        entity_id: Any,
        actor: User | None,
        apply,
        reason: str,
        expected_version: int | None,
        target: str,
        after_save=None,
    ) -> ServiceResult[LifecycleEntity]:
        """
        Lock, apply, save and audit one entity in a single transaction.

        ``after_save`` runs inside the transaction once the audit entry is
        written; it is where post-commit callbacks get registered.
        """
        table = model._meta.db_table

        try:
            with cls.atomic():
                entity = cls._lock(model, entity_id, expected_version)
                prior = snapshot(entity, LIFECYCLE_AUDIT_FIELDS)
                try:
                    apply(entity)
                except TransitionNotAllowed as e:
                    raise InvalidTransition(prior["status"], target, message=str(e)) from e
                entity.save()
                AuditTrail.record(
                    action=AuditAction.UPDATE,
                    entity_table=table,
                    entity_id=entity.pk,
                    actor=actor,
                    prior_state=prior,
                    post_state=snapshot(entity, LIFECYCLE_AUDIT_FIELDS),
                    reason=reason,
                )
                if after_save is not None:
                    after_save(entity)
        except ESCALATED_ERRORS as e:
            return cls.handle_exception(e, f"{table} {entity_id} -> {target}")
        except StaleRecordError as e:
            conflict = ConcurrentModification(
                f"{model.__name__} {entity_id} was modified by someone else",
                details=e.details,
            )
            return ServiceResult.failure(conflict.message, conflict.error_code)
        except (InvalidTransition, UsageLimitExceeded, ConcurrentModification, EntityNotFound) as e:
            cls.get_logger().info(
                f"{table} {entity_id} -> {target} refused: {e}",
                extra={"error_code": e.error_code, "details": e.details},
            )
            return ServiceResult.failure(e.message, e.error_code)
        except BaseApplicationError as e:
            return ServiceResult.failure(e.message, e.error_code)

        cls.get_logger().info(
            f"{table} {entity.pk} -> {target} (version {entity.version})",
            extra={"entity_table": table, "entity_id": str(entity.pk), "target": target},
        )
        return ServiceResult.success(entity)

    @staticmethod
    def _lock(model: type[LifecycleEntity], entity_id: Any, expected_version: int | None) -> LifecycleEntity:
        try:
            if expected_version is None:
                return model.objects.select_for_update().get(pk=entity_id)
            return check_version(model, entity_id, expected_version)
        except (model.DoesNotExist, NotFoundError, DjangoValidationError) as e:
            raise EntityNotFound(
                f"{model.__name__} {entity_id} not found",
                details={"entity_table": model._meta.db_table, "entity_id": str(entity_id)},
            ) from e

    @staticmethod
    def _check_payment_edge(entity: LifecycleEntity, target: str) -> None:
        method = entity.validate_payment if target == PaymentStatus.VALIDATED else entity.reject_payment
        if not can_proceed(method):
            raise InvalidTransition(
                entity.payment_status,
                target,
                message=(
                    f"Cannot move payment from {entity.payment_status} to {target} "
                    f"while status is {entity.status}"
                ),
                details={"status": entity.status},
            )

    @staticmethod
    def _is_operator(actor: User | None) -> bool:
        return actor is not None and actor.has_role(settings.OPERATOR_ROLES)

    @classmethod
    def _may_act_for(cls, actor: User, user: User) -> bool:
        return actor.pk == user.pk or cls._is_operator(actor)

    @staticmethod
    def _positive(value: Any, name: str) -> Decimal:
        amount = to_amount(value, name)
        if amount <= 0:
            raise ValidationError(
                f"{name} must be positive",
                details={name: ["Must be greater than zero"]},
            )
        return amount

    @staticmethod
    def _unauthorized(action: str) -> ServiceResult:
        return ServiceResult.failure(
            f"User is not allowed to {action}",
            error_code="UNAUTHORIZED",
        )

    @staticmethod
    def _unknown_entity_type(entity_type: str) -> ServiceResult:
        return ServiceResult.failure(
            f"Unknown entity type: {entity_type}",
            error_code="VALIDATION_ERROR",
            errors={"entity_type": [f"Must be one of {sorted(ENTITY_MODELS)}"]},
        )


def schedule_transition_effects(entity: LifecycleEntity) -> None:
    """
    Register the post-commit side effects of a status change.

    The customer is notified of every change. Completing an order, or
    delivering a remittance whose payment was validated, also queues tier
    reclassification for the owner.
    """
    table = entity._meta.db_table
    dispatch_on_commit(
        NotificationEvent.STATUS_CHANGED,
        entity_table=table,
        entity_id=entity.pk,
        recipient=entity.user,
        payload={"reference": entity.reference, "status": entity.status},
    )

    reached_interaction = (
        isinstance(entity, Order) and entity.status == LifecycleStatus.COMPLETED
    ) or (
        isinstance(entity, Remittance)
        and entity.status == LifecycleStatus.DELIVERED
        and entity.payment_status == PaymentStatus.VALIDATED
    )
    if reached_interaction:
        transaction.on_commit(partial(enqueue_tier_recompute, entity.user_id))


__all__ = [
    "ENTITY_MODELS",
    "LifecycleService",
    "enqueue_tier_recompute",
]
