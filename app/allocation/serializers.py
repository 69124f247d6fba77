"""
DRF serializers for payment account administration.
"""

from __future__ import annotations

from rest_framework import serializers

from allocation.models import (
    AccountTransaction,
    AccountTransactionStatus,
    PaymentAccount,
    TransactionType,
    UsagePeriod,
)

ACCOUNT_INPUT_FIELDS = [
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
]


class PaymentAccountSerializer(serializers.ModelSerializer):
    """Account configuration plus read-only usage counters."""

    class Meta:
        model = PaymentAccount
        fields = [
            "id",
            *ACCOUNT_INPUT_FIELDS,
            "current_daily_amount",
            "current_monthly_amount",
            "last_reset_date",
            "last_used_at",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "current_daily_amount",
            "current_monthly_amount",
            "last_reset_date",
            "last_used_at",
            "version",
            "created_at",
            "updated_at",
        ]

    def validate(self, attrs):
        for name in ("daily_limit", "monthly_limit", "security_limit"):
            value = attrs.get(name)
            if value is not None and value < 0:
                raise serializers.ValidationError({name: "Limits cannot be negative."})
        return attrs


class AccountChangeSerializer(serializers.Serializer):
    """Optional operator reason accompanying an account change."""

    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)


class ManualResetSerializer(AccountChangeSerializer):
    """Body of a manual counter reset."""

    period = serializers.ChoiceField(choices=UsagePeriod.choices)


class AccountStatsSerializer(serializers.Serializer):
    """Serialized allocation.types.AccountStats."""

    account_id = serializers.UUIDField()
    total_transactions = serializers.IntegerField()
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    validated_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    pending_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    rejected_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    by_type = serializers.DictField(child=serializers.IntegerField())
    current_daily_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    current_monthly_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    remaining_daily = serializers.DecimalField(max_digits=14, decimal_places=2)
    remaining_monthly = serializers.DecimalField(max_digits=14, decimal_places=2, allow_null=True)


class UsageRecordSerializer(serializers.Serializer):
    """Serialized allocation.types.UsageRecord."""

    account_id = serializers.UUIDField()
    current_daily_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    current_monthly_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    last_reset_date = serializers.DateField()
    version = serializers.IntegerField()


class AccountListQuerySerializer(serializers.Serializer):
    """Optional filters for the account list."""

    is_active = serializers.BooleanField(required=False, allow_null=True)
    transaction_type = serializers.ChoiceField(choices=TransactionType.choices, required=False)


class AccountTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = AccountTransaction
        fields = [
            "id",
            "account",
            "transaction_type",
            "reference_table",
            "reference_id",
            "amount",
            "status",
            "validated_by",
            "validated_at",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class AccountTransactionQuerySerializer(serializers.Serializer):
    """Date range (inclusive, by creation date) and status filter."""

    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    status = serializers.ChoiceField(choices=AccountTransactionStatus.choices, required=False)
