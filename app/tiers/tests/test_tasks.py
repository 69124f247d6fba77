"""
Tests for the tier reclassification tasks.
"""

import pytest
from celery.exceptions import Retry

from authentication.tests.factories import UserFactory
from core.services import ServiceResult
from lifecycle.state_machines import LifecycleStatus, PaymentStatus
from lifecycle.tests.factories import OrderFactory
from tiers.models import Tier, TierAssignment
from tiers.services import TierService
from tiers.tasks import recompute_all_tiers, recompute_user_tier


@pytest.mark.django_db
class TestRecomputeUserTier:
    def test_returns_change(self, user, settings):
        settings.TIER_THRESHOLDS = {"regular": 0, "pro": 1, "vip": 2}
        OrderFactory(user=user, status=LifecycleStatus.COMPLETED, payment_status=PaymentStatus.VALIDATED)

        outcome = recompute_user_tier(user.pk)

        assert outcome == {
            "user_id": user.pk,
            "changed": True,
            "old_tier": None,
            "new_tier": Tier.PRO,
        }
        assert TierAssignment.objects.get(user=user).tier == Tier.PRO

    def test_second_run_unchanged(self, user):
        recompute_user_tier(user.pk)

        outcome = recompute_user_tier(user.pk)

        assert outcome["changed"] is False

    def test_unknown_user_reported(self, db):
        outcome = recompute_user_tier(999999)

        assert outcome == {"user_id": 999999, "error_code": "USER_NOT_FOUND"}

    @pytest.mark.parametrize("error_code", ["AUDIT_WRITE_FAILURE", "CONCURRENT_MODIFICATION"])
    def test_transient_failures_retry(self, user, mocker, error_code):
        mocker.patch.object(
            TierService,
            "recompute",
            return_value=ServiceResult.failure("Try again", error_code=error_code),
        )
        retry = mocker.patch.object(recompute_user_tier, "retry", side_effect=Retry())

        with pytest.raises(Retry):
            recompute_user_tier(user.pk)

        retry.assert_called_once_with(countdown=60)

    def test_runs_through_delay(self, user):
        outcome = recompute_user_tier.delay(user.pk).get()

        assert outcome["new_tier"] == Tier.REGULAR


@pytest.mark.django_db
class TestRecomputeAllTiers:
    def test_returns_summary(self, user, other_user):
        outcome = recompute_all_tiers()

        assert outcome == {"total": 2, "processed": 2, "errors": []}
        assert TierAssignment.objects.count() == 2

    def test_reports_failed_users(self, mocker):
        customer = UserFactory()
        mocker.patch.object(
            TierService,
            "recompute",
            return_value=ServiceResult.failure("Audit log unavailable", error_code="AUDIT_WRITE_FAILURE"),
        )

        outcome = recompute_all_tiers()

        assert outcome["processed"] == 0
        assert outcome["errors"][0]["user_id"] == customer.pk
