"""
Tier reclassification service.

A user's tier follows from their completed interactions: completed orders
plus remittances whose payment was validated and that were delivered.
Thresholds come from settings.TIER_THRESHOLDS and are evaluated highest
first.

Operators can override the computed tier with manual_assign(). A manual
tier sticks until the user's interaction count moves; the next recompute
after that replaces it with the computed tier again.

Usage:
    from tiers.services import TierService

    result = TierService.recompute(user.id)
    if result.success and result.data.changed:
        print(result.data.old_tier, "->", result.data.new_tier)

    TierService.manual_assign(user.id, "vip", actor=admin, reason="loyalty")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from audit.exceptions import AuditWriteFailure
from audit.models import AuditAction
from audit.services import AuditTrail, snapshot
from authentication.models import UserRole
from core.services import BaseService, ServiceResult
from lifecycle.models import Order, Remittance
from lifecycle.state_machines import LifecycleStatus, PaymentStatus
from tiers.exceptions import InvalidTier, TierAssignmentConflict, UserNotFound
from tiers.models import Tier, TierAssignment, TierHistory, TierSource

if TYPE_CHECKING:
    from authentication.models import User

ASSIGNMENTS_TABLE = "user_tier_assignments"

ASSIGNMENT_AUDIT_FIELDS = (
    "tier",
    "source",
    "assigned_by_id",
    "reason",
    "interaction_count",
    "assigned_at",
)


@dataclass(frozen=True)
class TierChange:
    """
    Outcome of a recompute.

    old_tier is None when the user had never been classified.
    """

    changed: bool
    old_tier: str | None
    new_tier: str
    interaction_count: int


class TierService(BaseService):
    """Computes, overrides and reports user tiers."""

    @staticmethod
    def thresholds() -> list[tuple[str, int]]:
        """Configured (tier, minimum interactions) pairs, highest threshold first."""
        return sorted(
            settings.TIER_THRESHOLDS.items(),
            key=lambda item: item[1],
            reverse=True,
        )

    @classmethod
    def classify(cls, interaction_count: int) -> str:
        for tier, minimum in cls.thresholds():
            if interaction_count >= minimum:
                return tier
        return Tier.REGULAR

    @staticmethod
    def count_interactions(user_id) -> int:
        """Completed orders plus validated, delivered remittances."""
        completed_orders = Order.objects.filter(
            user_id=user_id,
            status=LifecycleStatus.COMPLETED,
        ).count()
        delivered_remittances = Remittance.objects.filter(
            user_id=user_id,
            payment_status=PaymentStatus.VALIDATED,
            delivered_at__isnull=False,
        ).count()
        return completed_orders + delivered_remittances

    @classmethod
    def current_tier(cls, user_id) -> str:
        """Stored tier, or regular for users never classified."""
        tier = TierAssignment.objects.filter(user_id=user_id).values_list("tier", flat=True).first()
        return tier or Tier.REGULAR

    @classmethod
    def recompute(cls, user_id) -> ServiceResult[TierChange]:
        """
        Reclassify a user from their interaction count.

        Returns:
            ServiceResult with a TierChange (changed=False when nothing was
            written), or a failure with USER_NOT_FOUND / AUDIT_WRITE_FAILURE
        """
        try:
            user = cls._get_user(user_id)
        except UserNotFound as e:
            return cls.handle_exception(e, "recompute")

        if not settings.TIER_RECLASSIFICATION_ENABLED:
            tier = cls.current_tier(user.pk)
            return ServiceResult.success(
                TierChange(changed=False, old_tier=tier, new_tier=tier, interaction_count=0)
            )

        try:
            with cls.atomic():
                assignment = cls._locked_assignment(user)
                count = cls.count_interactions(user.pk)
                new_tier = cls.classify(count)

                created = False
                if assignment is None:
                    assignment, created = cls._create_or_lock_assignment(user, new_tier, count)
                if created:
                    change = TierChange(changed=True, old_tier=None, new_tier=new_tier, interaction_count=count)
                else:
                    change = cls._reclassify(assignment, new_tier, count)
        except (AuditWriteFailure, TierAssignmentConflict) as e:
            return cls.handle_exception(e, "recompute")

        if change.changed:
            cls.get_logger().info(
                f"User {user.pk} tier {change.old_tier} -> {change.new_tier} at {count} interactions",
                extra={"user_id": user.pk, "old_tier": change.old_tier, "new_tier": change.new_tier},
            )
        return ServiceResult.success(change)

    @classmethod
    def manual_assign(
        cls,
        user_id,
        tier: str,
        actor: User | None,
        reason: str | None = None,
    ) -> ServiceResult[TierAssignment]:
        """
        Operator override of a user's tier.

        The role check runs before anything else. A history entry tagged
        manual is always written, even when the tier does not change.

        Returns:
            ServiceResult with the TierAssignment, or a failure with
            UNAUTHORIZED / INVALID_TIER / USER_NOT_FOUND / AUDIT_WRITE_FAILURE
        """
        if actor is None or not actor.has_role(settings.TIER_MANAGER_ROLES):
            cls.get_logger().warning(
                f"Unauthorized manual tier assignment for user {user_id}",
                extra={"user_id": user_id, "actor_id": getattr(actor, "pk", None)},
            )
            return ServiceResult.failure(
                "User is not allowed to assign tiers",
                error_code="UNAUTHORIZED",
            )

        if tier not in Tier.values:
            return cls.handle_exception(
                InvalidTier(f"Unknown tier: {tier}", details={"tier": tier, "allowed": list(Tier.values)}),
                "manual_assign",
                log_level=logging.INFO,
            )

        reason = reason or "Manual update"

        try:
            user = cls._get_user(user_id)
            with cls.atomic():
                assignment = cls._locked_assignment(user)
                count = cls.count_interactions(user.pk)
                if assignment is None:
                    assignment, _ = cls._create_or_lock_assignment(user, cls.classify(count), count)

                prior = snapshot(assignment, ASSIGNMENT_AUDIT_FIELDS)
                previous_tier = assignment.tier
                assignment.tier = tier
                assignment.source = TierSource.MANUAL
                assignment.assigned_by = actor
                assignment.reason = reason
                assignment.interaction_count = count
                assignment.assigned_at = timezone.now()
                assignment.save()

                TierHistory.objects.create(
                    user=user,
                    previous_tier=previous_tier,
                    tier=tier,
                    source=TierSource.MANUAL,
                    assigned_by=actor,
                    reason=reason,
                    interaction_count=count,
                )
                AuditTrail.record(
                    action=AuditAction.UPDATE,
                    entity_table=ASSIGNMENTS_TABLE,
                    entity_id=assignment.pk,
                    actor=actor,
                    prior_state=prior,
                    post_state=snapshot(assignment, ASSIGNMENT_AUDIT_FIELDS),
                    reason=reason,
                )
        except (UserNotFound, AuditWriteFailure, TierAssignmentConflict) as e:
            return cls.handle_exception(e, "manual_assign")

        cls.get_logger().info(
            f"User {user.pk} manually assigned {tier} by user {actor.pk}",
            extra={"user_id": user.pk, "tier": tier, "actor_id": actor.pk},
        )
        return ServiceResult.success(assignment)

    @classmethod
    def recompute_all(cls) -> ServiceResult[dict]:
        """
        Recompute every active customer, for example after the thresholds
        change.

        One user's failure does not stop the sweep; it is reported in
        ``errors`` and the remaining users are still processed.

        Returns:
            ServiceResult with {"total", "processed", "errors"} where
            errors is a list of {"user_id", "error_code", "error"}
        """
        user_ids = list(
            get_user_model()
            .objects.filter(role=UserRole.CUSTOMER, is_active=True)
            .order_by("pk")
            .values_list("pk", flat=True)
        )
        summary = {"total": len(user_ids), "processed": 0, "errors": []}

        for user_id in user_ids:
            result = cls.recompute(user_id)
            if result.success:
                summary["processed"] += 1
            else:
                summary["errors"].append(
                    {"user_id": user_id, "error_code": result.error_code, "error": result.error}
                )

        cls.get_logger().info(
            f"Recomputed {summary['processed']} of {summary['total']} tiers, {len(summary['errors'])} failed",
            extra={"total": summary["total"], "processed": summary["processed"]},
        )
        return ServiceResult.success(summary)

    @staticmethod
    def tier_stats() -> dict:
        """Number of classified users per tier, plus the total."""
        counts = dict(
            TierAssignment.objects.order_by().values_list("tier").annotate(users=Count("pk"))
        )
        stats = {tier: counts.get(tier, 0) for tier in Tier.values}
        stats["total"] = sum(stats.values())
        return stats

    @classmethod
    def discount_for(cls, user: User) -> Decimal:
        """Discount percentage for the user's tier (0 when discounts are off)."""
        if not settings.TIER_DISCOUNTS_ENABLED:
            return Decimal("0")
        tier = cls.current_tier(user.pk)
        return Decimal(str(settings.TIER_DISCOUNTS.get(tier, 0)))

    @classmethod
    def tier_history(cls, user_id, limit: int | None = None) -> ServiceResult[list[TierHistory]]:
        """History entries for a user, newest first."""
        if limit is not None and limit < 1:
            return ServiceResult.failure(
                "Limit must be a positive integer",
                error_code="VALIDATION_ERROR",
                errors={"limit": ["Must be at least 1"]},
            )
        entries = TierHistory.objects.filter(user_id=user_id).select_related("assigned_by")
        if limit is not None:
            entries = entries[:limit]
        return ServiceResult.success(list(entries))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _get_user(user_id) -> User:
        try:
            return get_user_model().objects.get(pk=user_id)
        except get_user_model().DoesNotExist:
            raise UserNotFound(
                f"User {user_id} not found",
                details={"user_id": user_id},
            )

    @staticmethod
    def _locked_assignment(user: User) -> TierAssignment | None:
        return TierAssignment.objects.select_for_update().filter(user=user).first()

    @classmethod
    def _create_or_lock_assignment(cls, user: User, tier: str, count: int) -> tuple[TierAssignment, bool]:
        """
        First classification, tolerating a concurrent one for the same user.

        The insert runs in a savepoint. When another transaction created the
        row first, the one-per-user constraint rejects ours and the winner's
        row is locked and returned instead.

        Returns:
            (assignment, created)

        Raises:
            TierAssignmentConflict: The insert failed but no row can be read
        """
        try:
            with transaction.atomic():
                return cls._create_assignment(user, tier, count), True
        except IntegrityError:
            cls.get_logger().info(
                f"User {user.pk} was classified concurrently; using the existing assignment",
                extra={"user_id": user.pk},
            )

        assignment = cls._locked_assignment(user)
        if assignment is None:
            raise TierAssignmentConflict(
                f"Tier assignment for user {user.pk} could not be created or read",
                details={"user_id": user.pk},
            )
        return assignment, False

    @classmethod
    def _create_assignment(cls, user: User, tier: str, count: int) -> TierAssignment:
        """First classification: one assignment, one automatic history entry."""
        reason = "Initial classification"
        assignment = TierAssignment.objects.create(
            user=user,
            tier=tier,
            source=TierSource.AUTOMATIC,
            reason=reason,
            interaction_count=count,
        )
        TierHistory.objects.create(
            user=user,
            previous_tier=None,
            tier=tier,
            source=TierSource.AUTOMATIC,
            reason=reason,
            interaction_count=count,
        )
        AuditTrail.record(
            action=AuditAction.CREATE,
            entity_table=ASSIGNMENTS_TABLE,
            entity_id=assignment.pk,
            actor=None,
            post_state=snapshot(assignment, ASSIGNMENT_AUDIT_FIELDS),
            reason=reason,
        )
        return assignment

    @classmethod
    def _reclassify(cls, assignment: TierAssignment, new_tier: str, count: int) -> TierChange:
        old_tier = assignment.tier

        # A manual tier holds until the interaction count moves
        if assignment.source == TierSource.MANUAL and assignment.interaction_count == count:
            return TierChange(changed=False, old_tier=old_tier, new_tier=old_tier, interaction_count=count)

        if new_tier == old_tier:
            if assignment.interaction_count != count:
                assignment.interaction_count = count
                assignment.save(update_fields=["interaction_count", "updated_at"])
            return TierChange(changed=False, old_tier=old_tier, new_tier=old_tier, interaction_count=count)

        reason = "Automatic reclassification"
        prior = snapshot(assignment, ASSIGNMENT_AUDIT_FIELDS)
        assignment.tier = new_tier
        assignment.source = TierSource.AUTOMATIC
        assignment.assigned_by = None
        assignment.reason = reason
        assignment.interaction_count = count
        assignment.assigned_at = timezone.now()
        assignment.save()

        TierHistory.objects.create(
            user_id=assignment.user_id,
            previous_tier=old_tier,
            tier=new_tier,
            source=TierSource.AUTOMATIC,
            reason=reason,
            interaction_count=count,
        )
        AuditTrail.record(
            action=AuditAction.UPDATE,
            entity_table=ASSIGNMENTS_TABLE,
            entity_id=assignment.pk,
            actor=None,
            prior_state=prior,
            post_state=snapshot(assignment, ASSIGNMENT_AUDIT_FIELDS),
            reason=reason,
        )
        return TierChange(changed=True, old_tier=old_tier, new_tier=new_tier, interaction_count=count)
