"""
Tests for the payment account administration API.
"""

from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework import status

from allocation.models import AccountTransactionStatus, PaymentAccount
from allocation.services import UsageLedger
from allocation.tests.factories import AccountTransactionFactory, PaymentAccountFactory


@pytest.mark.django_db
class TestPaymentAccountListView:
    @pytest.fixture
    def url(self):
        return reverse("allocation:account-list")

    def test_operator_creates_account(self, operator_client, url):
        response = operator_client.post(
            url,
            {
                "account_name": "Zelle - Main",
                "email": "main@bank.example.com",
                "daily_limit": "500.00",
                "for_remittances": True,
                "reason": "New bank account",
            },
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["success"] is True
        assert response.data["data"]["account_name"] == "Zelle - Main"
        assert response.data["data"]["current_daily_amount"] == "0.00"
        assert PaymentAccount.objects.filter(account_name="Zelle - Main").exists()

    def test_counters_are_read_only(self, operator_client, url):
        response = operator_client.post(
            url,
            {"account_name": "Zelle - Main", "current_daily_amount": "999.00"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        account = PaymentAccount.objects.get(account_name="Zelle - Main")
        assert account.current_daily_amount == Decimal("0.00")

    def test_negative_limit_rejected(self, operator_client, url):
        response = operator_client.post(
            url,
            {"account_name": "Broken", "daily_limit": "-10.00"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"

    def test_customer_forbidden(self, authenticated_client, url):
        response = authenticated_client.post(url, {"account_name": "Nope"}, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_anonymous_rejected(self, api_client, url):
        response = api_client.post(url, {"account_name": "Nope"}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_operator_lists_accounts(self, operator_client, url):
        second = PaymentAccountFactory(priority_order=2)
        first = PaymentAccountFactory(priority_order=1)

        response = operator_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert [row["id"] for row in response.data["data"]] == [str(first.pk), str(second.pk)]

    def test_list_filters(self, operator_client, url):
        PaymentAccountFactory(is_active=False)
        active = PaymentAccountFactory(for_remittances=True)

        response = operator_client.get(url, {"is_active": "true", "transaction_type": "remittance"})

        assert [row["id"] for row in response.data["data"]] == [str(active.pk)]

    def test_list_rejects_unknown_type(self, operator_client, url):
        response = operator_client.get(url, {"transaction_type": "crypto"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_customer_cannot_list(self, authenticated_client, url):
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestPaymentAccountDetailViews:
    def test_patch_updates_configuration(self, operator_client):
        account = PaymentAccountFactory(priority_order=1)
        url = reverse("allocation:account-detail", args=[account.pk])

        response = operator_client.patch(url, {"priority_order": 4}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["priority_order"] == 4
        assert response.data["data"]["version"] == account.version + 1

    def test_patch_unknown_account(self, operator_client):
        import uuid

        url = reverse("allocation:account-detail", args=[uuid.uuid4()])

        response = operator_client.patch(url, {"priority_order": 4}, format="json")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "ACCOUNT_NOT_FOUND"

    def test_disable(self, operator_client):
        account = PaymentAccountFactory()
        url = reverse("allocation:account-disable", args=[account.pk])

        response = operator_client.post(url, {"reason": "Bank froze the account"}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["is_active"] is False

    def test_manual_reset(self, operator_client):
        account = PaymentAccountFactory(current_daily_amount=Decimal("40.00"))
        url = reverse("allocation:account-reset", args=[account.pk])

        response = operator_client.post(url, {"period": "daily"}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["current_daily_amount"] == "0.00"

    def test_manual_reset_requires_period(self, operator_client):
        account = PaymentAccountFactory()
        url = reverse("allocation:account-reset", args=[account.pk])

        response = operator_client.post(url, {}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_stats(self, operator_client):
        account = PaymentAccountFactory(daily_limit=Decimal("100.00"), monthly_limit=None)
        UsageLedger.record_usage(account.pk, Decimal("30.00"))
        url = reverse("allocation:account-stats", args=[account.pk])

        response = operator_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        data = response.data["data"]
        assert data["current_daily_amount"] == "30.00"
        assert data["remaining_daily"] == "70.00"
        assert data["remaining_monthly"] is None

    def test_transactions(self, operator_client):
        account = PaymentAccountFactory()
        validated = AccountTransactionFactory(account=account, status=AccountTransactionStatus.VALIDATED)
        AccountTransactionFactory(account=account)
        url = reverse("allocation:account-transactions", args=[account.pk])

        response = operator_client.get(url, {"status": "validated"})

        assert response.status_code == status.HTTP_200_OK
        assert [row["id"] for row in response.data["data"]] == [str(validated.pk)]
        assert response.data["data"][0]["amount"] == "25.00"

    def test_transactions_bad_date(self, operator_client):
        account = PaymentAccountFactory()
        url = reverse("allocation:account-transactions", args=[account.pk])

        response = operator_client.get(url, {"start_date": "yesterday"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "start_date" in response.data["errors"]

    def test_transactions_unknown_account(self, operator_client):
        import uuid

        response = operator_client.get(reverse("allocation:account-transactions", args=[uuid.uuid4()]))

        assert response.status_code == status.HTTP_404_NOT_FOUND
