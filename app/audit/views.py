"""
Views for audit history.

Endpoints:
    GET /api/v1/audit/<entity_table>/<entity_id>/ - Entity history, newest first
    GET /api/v1/audit/actors/<user_id>/ - Entries by acting user, newest first

Both accept ?limit=N and are restricted to operators.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from audit.serializers import AuditLogEntrySerializer, AuditQuerySerializer
from audit.services import AuditTrail
from authentication.permissions import IsOperator
from core.views import result_response

LIMIT_PARAMETER = OpenApiParameter(
    name="limit",
    type=int,
    location=OpenApiParameter.QUERY,
    description="Maximum number of entries to return",
    required=False,
)


class EntityAuditHistoryView(APIView):
    """Audit history of a single entity."""

    permission_classes = [IsOperator]

    @extend_schema(
        operation_id="get_entity_audit_history",
        summary="Entity audit history",
        parameters=[LIMIT_PARAMETER],
        responses={200: AuditLogEntrySerializer(many=True)},
        tags=["Audit"],
    )
    def get(self, request, entity_table: str, entity_id: str):
        query = AuditQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(
                {"success": False, "error_code": "VALIDATION_ERROR", "errors": query.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        result = AuditTrail.history(entity_table, entity_id, query.validated_data.get("limit"))
        data = AuditLogEntrySerializer(result.data, many=True).data if result.success else None
        return result_response(result, data=data)


class ActorAuditHistoryView(APIView):
    """Audit entries written on behalf of one user."""

    permission_classes = [IsOperator]

    @extend_schema(
        operation_id="get_actor_audit_history",
        summary="Audit entries by actor",
        parameters=[LIMIT_PARAMETER],
        responses={200: AuditLogEntrySerializer(many=True)},
        tags=["Audit"],
    )
    def get(self, request, user_id: int):
        query = AuditQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(
                {"success": False, "error_code": "VALIDATION_ERROR", "errors": query.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        result = AuditTrail.by_actor(user_id, query.validated_data.get("limit"))
        data = AuditLogEntrySerializer(result.data, many=True).data if result.success else None
        return result_response(result, data=data)
