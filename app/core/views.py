"""
Core views and response helpers shared by the domain apps.

- health_check: liveness/readiness check (database and Redis cache)
- result_response: turn a ServiceResult into a DRF Response with the
  HTTP status that matches its error code
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse
from rest_framework import status
from rest_framework.response import Response

if TYPE_CHECKING:
    from core.services import ServiceResult

logger = logging.getLogger(__name__)

# Error code -> HTTP status. Unknown codes fall back to 400.
STATUS_BY_ERROR_CODE = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "INVALID_TIER": status.HTTP_400_BAD_REQUEST,
    "UNAUTHORIZED": status.HTTP_403_FORBIDDEN,
    "ENTITY_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ACCOUNT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
    "CONCURRENT_MODIFICATION": status.HTTP_409_CONFLICT,
    "NO_AVAILABLE_ACCOUNT": status.HTTP_409_CONFLICT,
    "USAGE_LIMIT_EXCEEDED": status.HTTP_409_CONFLICT,
    "AUDIT_WRITE_FAILURE": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def result_response(
    result: ServiceResult,
    data=None,
    success_status: int = status.HTTP_200_OK,
) -> Response:
    """
    Build a DRF Response from a ServiceResult.

    Args:
        result: The service outcome
        data: Serialized payload to send on success (defaults to result.data)
        success_status: HTTP status for the success case
    """
    if result.success:
        payload = result.data if data is None else data
        return Response({"success": True, "data": payload}, status=success_status)

    http_status = STATUS_BY_ERROR_CODE.get(result.error_code, status.HTTP_400_BAD_REQUEST)
    return Response(result.to_response(), status=http_status)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        200 with {"status": "healthy", ...} when the database answers,
        503 otherwise. A cache outage only degrades the report.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.exception("Health check could not reach the database")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    # IGNORE_EXCEPTIONS on the redis cache turns outages into misses
    cache.set("health_check", "ok", timeout=1)
    health_status["cache"] = "connected" if cache.get("health_check") == "ok" else "disconnected"

    return JsonResponse(health_status, status=200 if is_healthy else 503)
