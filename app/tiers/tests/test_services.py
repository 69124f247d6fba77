"""
Tests for TierService: classification, recompute idempotency, manual
overrides, bulk recompute, stats and discounts.
"""

from decimal import Decimal

import pytest
from django.utils import timezone

from audit.models import AuditLogEntry
from authentication.models import UserRole
from authentication.tests.factories import UserFactory
from core.services import ServiceResult
from lifecycle.state_machines import LifecycleStatus, PaymentStatus
from lifecycle.tests.factories import OrderFactory, RemittanceFactory
from tiers.models import Tier, TierAssignment, TierHistory, TierSource
from tiers.services import ASSIGNMENTS_TABLE, TierService


def complete_orders(user, count):
    for _ in range(count):
        OrderFactory(user=user, status=LifecycleStatus.COMPLETED, payment_status=PaymentStatus.VALIDATED)


def missed_then_found():
    """
    Stand-in for the locked read that misses the row on its first call, as
    when another transaction inserts it right after.
    """
    read = TierService._locked_assignment
    calls = []

    def locked_assignment(user):
        calls.append(user)
        return None if len(calls) == 1 else read(user)

    return locked_assignment


class TestClassify:
    """Highest threshold first, with the default 0/5/10 thresholds."""

    @pytest.mark.parametrize(
        "count,tier",
        [(0, Tier.REGULAR), (4, Tier.REGULAR), (5, Tier.PRO), (9, Tier.PRO), (10, Tier.VIP), (250, Tier.VIP)],
    )
    def test_default_thresholds(self, settings, count, tier):
        settings.TIER_THRESHOLDS = {"regular": 0, "pro": 5, "vip": 10}

        assert TierService.classify(count) == tier

    def test_thresholds_are_configurable(self, settings):
        settings.TIER_THRESHOLDS = {"regular": 0, "pro": 2, "vip": 3}

        assert TierService.classify(2) == Tier.PRO
        assert TierService.classify(3) == Tier.VIP


@pytest.mark.django_db
class TestCountInteractions:
    def test_counts_completed_orders_and_delivered_remittances(self, user):
        complete_orders(user, 2)
        OrderFactory(user=user, status=LifecycleStatus.DELIVERED, payment_status=PaymentStatus.VALIDATED)
        RemittanceFactory(
            user=user,
            status=LifecycleStatus.DELIVERED,
            payment_status=PaymentStatus.VALIDATED,
            delivered_at=timezone.now(),
        )
        RemittanceFactory(
            user=user,
            status=LifecycleStatus.CANCELLED,
            payment_status=PaymentStatus.PENDING,
            delivered_at=timezone.now(),
        )
        RemittanceFactory(user=user, payment_status=PaymentStatus.VALIDATED)

        assert TierService.count_interactions(user.pk) == 3

    def test_other_users_do_not_count(self, user, other_user):
        complete_orders(other_user, 3)

        assert TierService.count_interactions(user.pk) == 0


@pytest.mark.django_db
class TestRecompute:
    """Tests for TierService.recompute."""

    def test_first_classification(self, user):
        result = TierService.recompute(user.pk)

        assert result.success
        assert result.data.changed
        assert result.data.old_tier is None
        assert result.data.new_tier == Tier.REGULAR
        assert TierAssignment.objects.get(user=user).source == TierSource.AUTOMATIC
        assert TierHistory.objects.filter(user=user).count() == 1

    def test_is_idempotent(self, user):
        complete_orders(user, 5)
        TierService.recompute(user.pk)

        second = TierService.recompute(user.pk)

        assert not second.data.changed
        assert second.data.new_tier == Tier.PRO
        assert TierHistory.objects.filter(user=user).count() == 1

    def test_promotion_writes_history_and_audit(self, user):
        TierService.recompute(user.pk)
        complete_orders(user, 5)

        result = TierService.recompute(user.pk)

        assert result.data.changed
        assert (result.data.old_tier, result.data.new_tier) == (Tier.REGULAR, Tier.PRO)
        latest = TierHistory.objects.filter(user=user).first()
        assert latest.previous_tier == Tier.REGULAR
        assert latest.tier == Tier.PRO
        assert latest.source == TierSource.AUTOMATIC
        assignment = TierAssignment.objects.get(user=user)
        assert AuditLogEntry.objects.for_entity(ASSIGNMENTS_TABLE, assignment.pk).count() == 2

    def test_reflects_one_more_completed_order(self, user):
        TierService.recompute(user.pk)
        complete_orders(user, 1)

        result = TierService.recompute(user.pk)

        assert result.data.interaction_count == 1
        assert TierAssignment.objects.get(user=user).interaction_count == 1

    def test_unknown_user(self, db):
        result = TierService.recompute(999999)

        assert result.error_code == "USER_NOT_FOUND"

    def test_disabled_engine_reports_unchanged(self, user, settings):
        settings.TIER_RECLASSIFICATION_ENABLED = False
        complete_orders(user, 10)

        result = TierService.recompute(user.pk)

        assert not result.data.changed
        assert not TierAssignment.objects.exists()

    def test_concurrent_first_classification_uses_existing_row(self, user, mocker):
        TierService.recompute(user.pk)
        complete_orders(user, 5)
        mocker.patch.object(TierService, "_locked_assignment", side_effect=missed_then_found())

        result = TierService.recompute(user.pk)

        assert result.success
        assert result.data.changed
        assert (result.data.old_tier, result.data.new_tier) == (Tier.REGULAR, Tier.PRO)
        assert TierAssignment.objects.filter(user=user).count() == 1
        assert TierHistory.objects.filter(user=user).count() == 2

    def test_unreadable_concurrent_row_reports_conflict(self, user, mocker):
        TierService.recompute(user.pk)
        mocker.patch.object(TierService, "_locked_assignment", return_value=None)

        result = TierService.recompute(user.pk)

        assert result.error_code == "CONCURRENT_MODIFICATION"
        assert TierHistory.objects.filter(user=user).count() == 1


@pytest.mark.django_db
class TestManualAssign:
    """Tests for TierService.manual_assign."""

    def test_manual_vip_survives_recompute(self, user, admin_operator):
        result = TierService.manual_assign(user.pk, "vip", actor=admin_operator, reason="loyalty")
        assert result.success

        recompute = TierService.recompute(user.pk)

        assert not recompute.data.changed
        assignment = TierAssignment.objects.get(user=user)
        assert assignment.tier == Tier.VIP
        assert assignment.source == TierSource.MANUAL
        assert assignment.assigned_by == admin_operator
        history = list(TierHistory.objects.filter(user=user))
        assert len(history) == 2
        assert history[0].source == TierSource.MANUAL
        assert history[0].reason == "loyalty"

    def test_manual_tier_replaced_once_interactions_change(self, user, admin_operator):
        TierService.manual_assign(user.pk, "vip", actor=admin_operator, reason="loyalty")
        complete_orders(user, 1)

        result = TierService.recompute(user.pk)

        assert result.data.changed
        assert result.data.new_tier == Tier.REGULAR
        assert TierAssignment.objects.get(user=user).source == TierSource.AUTOMATIC

    def test_history_written_even_without_change(self, user, operator):
        TierService.recompute(user.pk)

        TierService.manual_assign(user.pk, "regular", actor=operator, reason="Confirmed after review")

        latest = TierHistory.objects.filter(user=user).first()
        assert latest.source == TierSource.MANUAL
        assert latest.previous_tier == Tier.REGULAR
        assert latest.tier == Tier.REGULAR
        assert TierHistory.objects.filter(user=user).count() == 2

    def test_customer_unauthorized(self, user, other_user):
        result = TierService.manual_assign(user.pk, "vip", actor=other_user, reason="please")

        assert result.error_code == "UNAUTHORIZED"
        assert not TierHistory.objects.exists()

    def test_anonymous_unauthorized(self, user):
        result = TierService.manual_assign(user.pk, "vip", actor=None)

        assert result.error_code == "UNAUTHORIZED"

    def test_authorization_checked_before_tier_name(self, user, other_user):
        result = TierService.manual_assign(user.pk, "platinum", actor=other_user)

        assert result.error_code == "UNAUTHORIZED"

    def test_invalid_tier(self, user, operator):
        result = TierService.manual_assign(user.pk, "platinum", actor=operator)

        assert result.error_code == "INVALID_TIER"
        assert not TierAssignment.objects.exists()

    def test_unknown_user(self, operator):
        result = TierService.manual_assign(999999, "vip", actor=operator)

        assert result.error_code == "USER_NOT_FOUND"

    def test_default_reason(self, user, operator):
        TierService.manual_assign(user.pk, "pro", actor=operator)

        assert TierAssignment.objects.get(user=user).reason == "Manual update"

    def test_concurrent_first_classification_uses_existing_row(self, user, operator, mocker):
        TierService.recompute(user.pk)
        mocker.patch.object(TierService, "_locked_assignment", side_effect=missed_then_found())

        result = TierService.manual_assign(user.pk, "vip", actor=operator, reason="loyalty")

        assert result.success
        assignment = TierAssignment.objects.get(user=user)
        assert assignment.tier == Tier.VIP
        latest = TierHistory.objects.filter(user=user).first()
        assert (latest.previous_tier, latest.tier) == (Tier.REGULAR, Tier.VIP)


@pytest.mark.django_db
class TestDiscounts:
    def test_discount_for_tier(self, user, settings):
        settings.TIER_DISCOUNTS_ENABLED = True
        TierAssignment.objects.create(user=user, tier=Tier.PRO)

        assert TierService.discount_for(user) == Decimal("5")

    def test_unclassified_user_gets_regular_discount(self, user, settings):
        settings.TIER_DISCOUNTS_ENABLED = True

        assert TierService.discount_for(user) == Decimal("0")

    def test_disabled(self, user, settings):
        settings.TIER_DISCOUNTS_ENABLED = False
        TierAssignment.objects.create(user=user, tier=Tier.VIP)

        assert TierService.discount_for(user) == Decimal("0")


@pytest.mark.django_db
class TestTierHistory:
    def test_limit(self, user, operator):
        for tier in ("pro", "vip", "regular"):
            TierService.manual_assign(user.pk, tier, actor=operator)

        result = TierService.tier_history(user.pk, limit=2)

        assert [entry.tier for entry in result.data] == [Tier.REGULAR, Tier.VIP]

    def test_invalid_limit(self, user):
        assert TierService.tier_history(user.pk, limit=0).error_code == "VALIDATION_ERROR"


@pytest.mark.django_db
class TestRecomputeAll:
    def test_summarizes_active_customers(self, settings):
        settings.TIER_THRESHOLDS = {"regular": 0, "pro": 1, "vip": 2}
        buyer, newcomer = UserFactory(), UserFactory()
        UserFactory(is_active=False)
        UserFactory(role=UserRole.MANAGER)
        complete_orders(buyer, 2)

        result = TierService.recompute_all()

        assert result.data == {"total": 2, "processed": 2, "errors": []}
        assert TierAssignment.objects.get(user=buyer).tier == Tier.VIP
        assert TierAssignment.objects.get(user=newcomer).tier == Tier.REGULAR
        assert TierAssignment.objects.count() == 2

    def test_failures_do_not_stop_the_sweep(self, mocker):
        first, second = UserFactory(), UserFactory()
        recompute = TierService.recompute

        def fail_first(user_id):
            if user_id == first.pk:
                return ServiceResult.failure("Audit log unavailable", error_code="AUDIT_WRITE_FAILURE")
            return recompute(user_id)

        mocker.patch.object(TierService, "recompute", side_effect=fail_first)

        result = TierService.recompute_all()

        assert result.data["total"] == 2
        assert result.data["processed"] == 1
        assert result.data["errors"] == [
            {"user_id": first.pk, "error_code": "AUDIT_WRITE_FAILURE", "error": "Audit log unavailable"}
        ]
        assert TierAssignment.objects.filter(user=second).exists()

    def test_no_customers(self, db):
        assert TierService.recompute_all().data == {"total": 0, "processed": 0, "errors": []}


@pytest.mark.django_db
class TestTierStats:
    def test_counts_per_tier(self, operator):
        for tier in (Tier.PRO, Tier.PRO, Tier.VIP):
            TierService.manual_assign(UserFactory().pk, tier, actor=operator)
        TierService.recompute(UserFactory().pk)

        assert TierService.tier_stats() == {"regular": 1, "pro": 2, "vip": 1, "total": 4}

    def test_empty(self, db):
        assert TierService.tier_stats() == {"regular": 0, "pro": 0, "vip": 0, "total": 0}
