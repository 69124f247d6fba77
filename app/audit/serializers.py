"""
DRF serializers for audit history responses.
"""

from __future__ import annotations

from rest_framework import serializers

from audit.models import AuditLogEntry


class AuditLogEntrySerializer(serializers.ModelSerializer):
    """Read-only representation of an audit entry."""

    actor_email = serializers.EmailField(source="actor.email", read_only=True, default=None)

    class Meta:
        model = AuditLogEntry
        fields = [
            "id",
            "action",
            "entity_table",
            "entity_id",
            "actor",
            "actor_email",
            "prior_state",
            "post_state",
            "reason",
            "created_at",
        ]
        read_only_fields = fields


class AuditQuerySerializer(serializers.Serializer):
    """Validates the optional ?limit= query parameter."""

    limit = serializers.IntegerField(required=False, min_value=1)
