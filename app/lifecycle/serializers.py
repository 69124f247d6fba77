"""
DRF serializers for the lifecycle API.
"""

from __future__ import annotations

from rest_framework import serializers

from lifecycle.models import Order, Remittance
from lifecycle.state_machines import LifecycleStatus

ENTITY_READ_FIELDS = [
    "id",
    "user",
    "status",
    "payment_status",
    "assigned_account",
    "payment_reference",
    "rejection_reason",
    "payment_validated_at",
    "payment_rejected_at",
    "processing_started_at",
    "shipped_at",
    "delivered_at",
    "completed_at",
    "cancelled_at",
    "version",
    "created_at",
    "updated_at",
]


class OrderSerializer(serializers.ModelSerializer):
    """Read-only representation of an order."""

    class Meta:
        model = Order
        fields = [
            *ENTITY_READ_FIELDS,
            "order_number",
            "subtotal",
            "discount_amount",
            "shipping_cost",
            "total_amount",
            "notes",
        ]
        read_only_fields = fields


class RemittanceSerializer(serializers.ModelSerializer):
    """Read-only representation of a remittance."""

    class Meta:
        model = Remittance
        fields = [
            *ENTITY_READ_FIELDS,
            "remittance_number",
            "amount_sent",
            "commission_total",
            "amount_to_deliver",
            "currency_sent",
            "currency_delivered",
            "recipient_name",
            "recipient_phone",
        ]
        read_only_fields = fields


ENTITY_SERIALIZERS = {
    "orders": OrderSerializer,
    "remittances": RemittanceSerializer,
}


class OrderCreateSerializer(serializers.Serializer):
    """Checkout request for an order."""

    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    shipping_cost = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    payment_reference = serializers.CharField(required=False, allow_blank=True, max_length=200)


class RemittanceCreateSerializer(serializers.Serializer):
    """Remittance request."""

    amount_sent = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    amount_to_deliver = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    commission_total = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)
    currency_sent = serializers.CharField(max_length=10, required=False)
    currency_delivered = serializers.CharField(max_length=10, required=False)
    recipient_name = serializers.CharField(max_length=200)
    recipient_phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    payment_reference = serializers.CharField(required=False, allow_blank=True, max_length=200)


class TransitionSerializer(serializers.Serializer):
    """Body of a status transition request."""

    target_status = serializers.ChoiceField(choices=LifecycleStatus.choices)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)
    expected_version = serializers.IntegerField(required=False, min_value=1)


class PaymentValidationSerializer(serializers.Serializer):
    """Body of a payment validation request."""

    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)
    expected_version = serializers.IntegerField(required=False, min_value=1)


class PaymentRejectionSerializer(serializers.Serializer):
    """Body of a payment rejection request; the reason is mandatory."""

    reason = serializers.CharField(max_length=500)
    expected_version = serializers.IntegerField(required=False, min_value=1)
