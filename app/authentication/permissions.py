"""
Permission classes for operator endpoints.

- IsOperator: user holds one of settings.OPERATOR_ROLES (or is a superuser)

Customers only ever reach their own orders and remittances; everything
that inspects accounts, audit history or other users' tiers is operator
territory. Services repeat the role check for privileged writes, so this
class only gates access at the HTTP layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings
from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsOperator(permissions.BasePermission):
    """Allows access only to authenticated users with an operator role."""

    message = "Operator role required."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.has_role(settings.OPERATOR_ROLES)
