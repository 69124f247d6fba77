"""
DRF serializers for the tiers API.
"""

from __future__ import annotations

from rest_framework import serializers

from tiers.models import TierAssignment, TierHistory


class TierAssignmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = TierAssignment
        fields = [
            "user",
            "tier",
            "source",
            "assigned_by",
            "reason",
            "interaction_count",
            "assigned_at",
        ]
        read_only_fields = fields


class TierHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = TierHistory
        fields = [
            "id",
            "previous_tier",
            "tier",
            "source",
            "assigned_by",
            "reason",
            "interaction_count",
            "created_at",
        ]
        read_only_fields = fields


class TierChangeSerializer(serializers.Serializer):
    """Outcome of a recompute."""

    changed = serializers.BooleanField()
    old_tier = serializers.CharField(allow_null=True)
    new_tier = serializers.CharField()
    interaction_count = serializers.IntegerField()


class ManualAssignSerializer(serializers.Serializer):
    """
    Body of a manual tier assignment.

    The tier is a plain string so unknown names reach the service and come
    back as INVALID_TIER.
    """

    tier = serializers.CharField(max_length=20)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)


class TierHistoryQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=1)


class TierStatsSerializer(serializers.Serializer):
    regular = serializers.IntegerField()
    pro = serializers.IntegerField()
    vip = serializers.IntegerField()
    total = serializers.IntegerField()
