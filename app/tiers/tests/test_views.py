"""
Tests for the tiers API.
"""

import pytest
from django.urls import reverse
from rest_framework import status

from tiers.models import Tier, TierAssignment, TierHistory, TierSource
from tiers.services import TierService


@pytest.mark.django_db
class TestTierRecomputeView:
    def test_operator_recomputes(self, operator_client, user):
        response = operator_client.post(reverse("tiers:recompute", args=[user.pk]))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"] == {
            "changed": True,
            "old_tier": None,
            "new_tier": Tier.REGULAR,
            "interaction_count": 0,
        }

    def test_customer_forbidden(self, authenticated_client, user):
        response = authenticated_client.post(reverse("tiers:recompute", args=[user.pk]))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_user(self, operator_client):
        response = operator_client.post(reverse("tiers:recompute", args=[999999]))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "USER_NOT_FOUND"


@pytest.mark.django_db
class TestTierAssignView:
    def test_admin_assigns(self, admin_operator_client, admin_operator, user):
        response = admin_operator_client.post(
            reverse("tiers:assign", args=[user.pk]),
            {"tier": "pro", "reason": "Wholesale buyer"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["tier"] == Tier.PRO
        assert response.data["data"]["source"] == TierSource.MANUAL
        assert response.data["data"]["assigned_by"] == admin_operator.pk

    def test_customer_gets_unauthorized_code(self, authenticated_client, user):
        response = authenticated_client.post(
            reverse("tiers:assign", args=[user.pk]),
            {"tier": "vip"},
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "UNAUTHORIZED"
        assert not TierAssignment.objects.exists()

    def test_invalid_tier(self, admin_operator_client, user):
        response = admin_operator_client.post(
            reverse("tiers:assign", args=[user.pk]),
            {"tier": "platinum"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_TIER"

    def test_missing_tier(self, admin_operator_client, user):
        response = admin_operator_client.post(reverse("tiers:assign", args=[user.pk]), {}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "tier" in response.data["errors"]

    def test_anonymous(self, api_client, user):
        response = api_client.post(reverse("tiers:assign", args=[user.pk]), {"tier": "vip"}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestTierHistoryView:
    def test_newest_first(self, operator_client, operator, user):
        TierService.manual_assign(user.pk, "pro", actor=operator, reason="first")
        TierService.manual_assign(user.pk, "vip", actor=operator, reason="second")

        response = operator_client.get(reverse("tiers:history", args=[user.pk]))

        assert response.status_code == status.HTTP_200_OK
        assert [entry["reason"] for entry in response.data["data"]] == [
            "second",
            "first",
            "Initial classification",
        ]
        assert TierHistory.objects.filter(user=user).count() == 3

    def test_limit(self, operator_client, operator, user):
        TierService.manual_assign(user.pk, "pro", actor=operator)

        response = operator_client.get(reverse("tiers:history", args=[user.pk]), {"limit": 1})

        assert len(response.data["data"]) == 1

    def test_invalid_limit(self, operator_client, user):
        response = operator_client.get(reverse("tiers:history", args=[user.pk]), {"limit": 0})

        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestTierStatsView:
    def test_operator_reads_counts(self, operator_client, user, other_user):
        TierService.recompute(user.pk)
        TierAssignment.objects.create(user=other_user, tier=Tier.VIP, source=TierSource.MANUAL)

        response = operator_client.get(reverse("tiers:stats"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"] == {"regular": 1, "pro": 0, "vip": 1, "total": 2}

    def test_customer_forbidden(self, authenticated_client):
        response = authenticated_client.get(reverse("tiers:stats"))

        assert response.status_code == status.HTTP_403_FORBIDDEN
