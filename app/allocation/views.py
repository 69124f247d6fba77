"""
Views for payment account administration.

Endpoints:
    GET   /api/v1/allocation/accounts/ - List accounts, rotation order
    POST  /api/v1/allocation/accounts/ - Create an account
    PATCH /api/v1/allocation/accounts/<id>/ - Edit account configuration
    POST  /api/v1/allocation/accounts/<id>/disable/ - Take out of rotation
    POST  /api/v1/allocation/accounts/<id>/reset/ - Manual counter reset
    GET   /api/v1/allocation/accounts/<id>/stats/ - Transaction totals
    GET   /api/v1/allocation/accounts/<id>/transactions/ - Payment history

All endpoints are restricted to operators.
"""

from __future__ import annotations

from dataclasses import asdict

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from allocation.serializers import (
    AccountChangeSerializer,
    AccountListQuerySerializer,
    AccountStatsSerializer,
    AccountTransactionQuerySerializer,
    AccountTransactionSerializer,
    ManualResetSerializer,
    PaymentAccountSerializer,
    UsageRecordSerializer,
)
from allocation.services import AccountTransactionService, PaymentAccountService, UsageLedger
from authentication.permissions import IsOperator
from core.views import result_response


def _invalid(serializer) -> Response:
    return Response(
        {"success": False, "error_code": "VALIDATION_ERROR", "errors": serializer.errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


class PaymentAccountListView(APIView):
    """List or create payment accounts."""

    permission_classes = [IsOperator]

    @extend_schema(
        operation_id="list_payment_accounts",
        summary="List payment accounts",
        parameters=[AccountListQuerySerializer],
        responses={200: PaymentAccountSerializer(many=True)},
        tags=["Allocation"],
    )
    def get(self, request):
        query = AccountListQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return _invalid(query)

        result = PaymentAccountService.list_accounts(**query.validated_data)
        data = PaymentAccountSerializer(result.data, many=True).data if result.success else None
        return result_response(result, data=data)

    @extend_schema(
        operation_id="create_payment_account",
        summary="Create payment account",
        request=PaymentAccountSerializer,
        responses={201: PaymentAccountSerializer},
        tags=["Allocation"],
    )
    def post(self, request):
        serializer = PaymentAccountSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer)

        result = PaymentAccountService.create_account(
            request.user,
            reason=request.data.get("reason"),
            **serializer.validated_data,
        )
        data = PaymentAccountSerializer(result.data).data if result.success else None
        return result_response(result, data=data, success_status=status.HTTP_201_CREATED)


class PaymentAccountDetailView(APIView):
    """Edit an account's configuration."""

    permission_classes = [IsOperator]

    @extend_schema(
        operation_id="update_payment_account",
        summary="Update payment account",
        request=PaymentAccountSerializer,
        responses={200: PaymentAccountSerializer},
        tags=["Allocation"],
    )
    def patch(self, request, account_id):
        serializer = PaymentAccountSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return _invalid(serializer)

        result = PaymentAccountService.update_account(
            account_id,
            request.user,
            reason=request.data.get("reason"),
            **serializer.validated_data,
        )
        data = PaymentAccountSerializer(result.data).data if result.success else None
        return result_response(result, data=data)


class PaymentAccountDisableView(APIView):
    """Remove an account from the allocation rotation."""

    permission_classes = [IsOperator]

    @extend_schema(
        operation_id="disable_payment_account",
        summary="Disable payment account",
        request=AccountChangeSerializer,
        responses={200: PaymentAccountSerializer},
        tags=["Allocation"],
    )
    def post(self, request, account_id):
        serializer = AccountChangeSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer)

        result = PaymentAccountService.disable_account(
            account_id,
            request.user,
            reason=serializer.validated_data.get("reason"),
        )
        data = PaymentAccountSerializer(result.data).data if result.success else None
        return result_response(result, data=data)


class PaymentAccountResetView(APIView):
    """Zero an account's daily or monthly counter."""

    permission_classes = [IsOperator]

    @extend_schema(
        operation_id="reset_payment_account_usage",
        summary="Reset account usage counter",
        request=ManualResetSerializer,
        responses={200: UsageRecordSerializer},
        tags=["Allocation"],
    )
    def post(self, request, account_id):
        serializer = ManualResetSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer)

        result = UsageLedger.manual_reset(
            account_id,
            serializer.validated_data["period"],
            request.user,
            reason=serializer.validated_data.get("reason"),
        )
        data = UsageRecordSerializer(result.data).data if result.success else None
        return result_response(result, data=data)


class PaymentAccountStatsView(APIView):
    """Transaction totals and remaining capacity for one account."""

    permission_classes = [IsOperator]

    @extend_schema(
        operation_id="get_payment_account_stats",
        summary="Payment account statistics",
        responses={200: AccountStatsSerializer},
        tags=["Allocation"],
    )
    def get(self, request, account_id):
        result = PaymentAccountService.account_stats(account_id)
        data = AccountStatsSerializer(asdict(result.data)).data if result.success else None
        return result_response(result, data=data)


class PaymentAccountTransactionsView(APIView):
    """Payments routed to one account, newest first."""

    permission_classes = [IsOperator]

    @extend_schema(
        operation_id="list_payment_account_transactions",
        summary="Payment account transactions",
        parameters=[AccountTransactionQuerySerializer],
        responses={200: AccountTransactionSerializer(many=True)},
        tags=["Allocation"],
    )
    def get(self, request, account_id):
        query = AccountTransactionQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return _invalid(query)

        result = AccountTransactionService.list_for_account(account_id, **query.validated_data)
        data = AccountTransactionSerializer(result.data, many=True).data if result.success else None
        return result_response(result, data=data)
