"""
Views for user tiers.

Endpoints:
    POST /api/v1/tiers/<user_id>/recompute/ - Reclassify from interactions
    POST /api/v1/tiers/<user_id>/assign/ - Manual override
    GET  /api/v1/tiers/<user_id>/history/ - Tier history, newest first
    GET  /api/v1/tiers/stats/ - Classified users per tier

Recompute, history and stats are operator endpoints. Assign only requires
authentication; TierService checks TIER_MANAGER_ROLES itself so the
refusal is reported as UNAUTHORIZED.
"""

from __future__ import annotations

from dataclasses import asdict

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import IsOperator
from core.views import result_response
from tiers.serializers import (
    ManualAssignSerializer,
    TierAssignmentSerializer,
    TierChangeSerializer,
    TierHistoryQuerySerializer,
    TierHistorySerializer,
    TierStatsSerializer,
)
from tiers.services import TierService


def _invalid(serializer) -> Response:
    return Response(
        {"success": False, "error_code": "VALIDATION_ERROR", "errors": serializer.errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


class TierRecomputeView(APIView):
    """Reclassify one user."""

    permission_classes = [IsOperator]

    @extend_schema(
        operation_id="recompute_user_tier",
        summary="Recompute tier",
        request=None,
        responses={200: TierChangeSerializer},
        tags=["Tiers"],
    )
    def post(self, request, user_id: int):
        result = TierService.recompute(user_id)
        data = TierChangeSerializer(asdict(result.data)).data if result.success else None
        return result_response(result, data=data)


class TierAssignView(APIView):
    """Manually set a user's tier."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="assign_user_tier",
        summary="Assign tier",
        request=ManualAssignSerializer,
        responses={200: TierAssignmentSerializer},
        tags=["Tiers"],
    )
    def post(self, request, user_id: int):
        serializer = ManualAssignSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer)

        result = TierService.manual_assign(
            user_id,
            serializer.validated_data["tier"],
            actor=request.user,
            reason=serializer.validated_data.get("reason"),
        )
        data = TierAssignmentSerializer(result.data).data if result.success else None
        return result_response(result, data=data)


class TierHistoryView(APIView):
    """Tier history of one user."""

    permission_classes = [IsOperator]

    @extend_schema(
        operation_id="get_user_tier_history",
        summary="Tier history",
        parameters=[TierHistoryQuerySerializer],
        responses={200: TierHistorySerializer(many=True)},
        tags=["Tiers"],
    )
    def get(self, request, user_id: int):
        query = TierHistoryQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return _invalid(query)

        result = TierService.tier_history(user_id, query.validated_data.get("limit"))
        data = TierHistorySerializer(result.data, many=True).data if result.success else None
        return result_response(result, data=data)


class TierStatsView(APIView):
    """Classified users per tier."""

    permission_classes = [IsOperator]

    @extend_schema(
        operation_id="get_tier_stats",
        summary="Tier statistics",
        responses={200: TierStatsSerializer},
        tags=["Tiers"],
    )
    def get(self, request):
        return Response({"success": True, "data": TierStatsSerializer(TierService.tier_stats()).data})
