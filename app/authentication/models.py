"""
Authentication models.

This module defines the custom User model used as the acting party in
every audited mutation and as the owner of orders, remittances and tier
assignments.

Related files:
    - managers.py: Custom user manager for email-based creation

JWT access tokens are issued by rest_framework_simplejwt (see urls.py);
the request layer resolves the authenticated User and passes it to the
services.
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class UserRole(models.TextChoices):
    """
    Operational role of a user.

    CUSTOMER places orders and remittances. MANAGER, ADMIN and SUPER_ADMIN
    are operators; which of them may override tiers or reset account
    counters is configured in settings.TIER_MANAGER_ROLES.
    """

    CUSTOMER = "customer", "Customer"
    MANAGER = "manager", "Manager"
    ADMIN = "admin", "Admin"
    SUPER_ADMIN = "super_admin", "Super admin"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        full_name: Display name used in notifications
        role: Operational role (see UserRole)
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        user = User.objects.create_user(email="buyer@example.com", password="pw")
        operator = User.objects.create_user(
            email="ops@example.com", password="pw", role=UserRole.ADMIN
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    full_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Display name",
    )
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CUSTOMER,
        db_index=True,
        help_text="Operational role used for privileged operations",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.full_name or self.email

    def get_short_name(self):
        return self.full_name.split(" ")[0] if self.full_name else self.email.split("@")[0]

    def has_role(self, roles) -> bool:
        """
        Check whether the user may act with one of ``roles``.

        Superusers pass every role check. Inactive users pass none.
        """
        if not self.is_active:
            return False
        return self.is_superuser or self.role in set(roles)
