"""
Views for authentication.

Endpoints:
    POST /api/v1/auth/token/ - Obtain a JWT pair (simplejwt)
    POST /api/v1/auth/token/refresh/ - Refresh an access token (simplejwt)
    GET  /api/v1/auth/me/ - Current user and role
"""

from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.serializers import UserSerializer


class CurrentUserView(APIView):
    """Return the authenticated user."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_current_user",
        summary="Current user",
        responses={200: UserSerializer},
        tags=["Auth"],
    )
    def get(self, request):
        return Response({"success": True, "data": UserSerializer(request.user).data})
