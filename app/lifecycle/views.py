"""
Views for the order and remittance lifecycle.

Endpoints:
    POST /api/v1/lifecycle/orders/ - Create an order for the current user
    POST /api/v1/lifecycle/remittances/ - Create a remittance
    POST /api/v1/lifecycle/<entity_type>/<id>/transition/ - Status change
    POST /api/v1/lifecycle/<entity_type>/<id>/payment/validate/ - Accept payment
    POST /api/v1/lifecycle/<entity_type>/<id>/payment/reject/ - Refuse payment

The authenticated user is the acting user. Role checks happen in
LifecycleService.
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.views import result_response
from lifecycle.serializers import (
    ENTITY_SERIALIZERS,
    OrderCreateSerializer,
    OrderSerializer,
    PaymentRejectionSerializer,
    PaymentValidationSerializer,
    RemittanceCreateSerializer,
    RemittanceSerializer,
    TransitionSerializer,
)
from lifecycle.services import LifecycleService


def _invalid(serializer) -> Response:
    return Response(
        {"success": False, "error_code": "VALIDATION_ERROR", "errors": serializer.errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


def _entity_response(entity_type: str, result, success_status: int = status.HTTP_200_OK) -> Response:
    serializer_class = ENTITY_SERIALIZERS.get(entity_type)
    data = serializer_class(result.data).data if result.success and serializer_class else None
    return result_response(result, data=data, success_status=success_status)


class OrderCreateView(APIView):
    """Create an order for the authenticated user."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_order",
        summary="Create order",
        request=OrderCreateSerializer,
        responses={201: OrderSerializer},
        tags=["Lifecycle"],
    )
    def post(self, request):
        serializer = OrderCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer)

        result = LifecycleService.create_order(request.user, **serializer.validated_data)
        return _entity_response("orders", result, success_status=status.HTTP_201_CREATED)


class RemittanceCreateView(APIView):
    """Create a remittance for the authenticated user."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_remittance",
        summary="Create remittance",
        request=RemittanceCreateSerializer,
        responses={201: RemittanceSerializer},
        tags=["Lifecycle"],
    )
    def post(self, request):
        serializer = RemittanceCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer)

        result = LifecycleService.create_remittance(request.user, **serializer.validated_data)
        return _entity_response("remittances", result, success_status=status.HTTP_201_CREATED)


class TransitionView(APIView):
    """Move an order or remittance to a new status."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="transition_entity",
        summary="Change status",
        request=TransitionSerializer,
        responses={200: OrderSerializer},
        tags=["Lifecycle"],
    )
    def post(self, request, entity_type: str, entity_id):
        serializer = TransitionSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer)

        result = LifecycleService.transition(
            entity_type,
            entity_id,
            serializer.validated_data["target_status"],
            actor=request.user,
            reason=serializer.validated_data.get("reason"),
            expected_version=serializer.validated_data.get("expected_version"),
        )
        return _entity_response(entity_type, result)


class PaymentValidateView(APIView):
    """Accept the customer's payment."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="validate_payment",
        summary="Validate payment",
        request=PaymentValidationSerializer,
        responses={200: OrderSerializer},
        tags=["Lifecycle"],
    )
    def post(self, request, entity_type: str, entity_id):
        serializer = PaymentValidationSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer)

        result = LifecycleService.validate_payment(
            entity_type,
            entity_id,
            actor=request.user,
            reason=serializer.validated_data.get("reason"),
            expected_version=serializer.validated_data.get("expected_version"),
        )
        return _entity_response(entity_type, result)


class PaymentRejectView(APIView):
    """Refuse the customer's payment."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="reject_payment",
        summary="Reject payment",
        request=PaymentRejectionSerializer,
        responses={200: OrderSerializer},
        tags=["Lifecycle"],
    )
    def post(self, request, entity_type: str, entity_id):
        serializer = PaymentRejectionSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer)

        result = LifecycleService.reject_payment(
            entity_type,
            entity_id,
            actor=request.user,
            reason=serializer.validated_data["reason"],
            expected_version=serializer.validated_data.get("expected_version"),
        )
        return _entity_response(entity_type, result)
