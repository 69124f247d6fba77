"""
Tests for the User model and its manager.
"""

import pytest
from django.db import IntegrityError

from authentication.models import User, UserRole
from authentication.tests.factories import UserFactory

OPERATORS = [UserRole.MANAGER, UserRole.ADMIN, UserRole.SUPER_ADMIN]


# =============================================================================
# User Model Tests
# =============================================================================


@pytest.mark.django_db
class TestUserModel:
    def test_defaults_to_customer(self):
        user = User.objects.create_user(email="buyer@example.com", password="pw")

        assert user.role == UserRole.CUSTOMER
        assert user.check_password("pw")
        assert not user.is_staff

    def test_email_is_normalized_and_unique(self):
        User.objects.create_user(email="buyer@EXAMPLE.com", password="pw")

        with pytest.raises(IntegrityError):
            User.objects.create_user(email="buyer@example.com", password="pw")

    def test_superuser(self):
        admin = User.objects.create_superuser(email="root@example.com", password="pw")

        assert admin.is_superuser
        assert admin.is_staff
        assert admin.role == UserRole.SUPER_ADMIN

    def test_names(self):
        user = UserFactory(full_name="Ana Gomez", email="ana@example.com")

        assert user.get_full_name() == "Ana Gomez"
        assert user.get_short_name() == "Ana"
        assert str(user) == "ana@example.com"

    def test_names_fall_back_to_email(self):
        user = UserFactory(full_name="", email="ana@example.com")

        assert user.get_full_name() == "ana@example.com"
        assert user.get_short_name() == "ana"


@pytest.mark.django_db
class TestHasRole:
    def test_customer_is_not_operator(self):
        assert not UserFactory().has_role(OPERATORS)

    @pytest.mark.parametrize("role", OPERATORS)
    def test_operator_roles(self, role):
        assert UserFactory(role=role).has_role(OPERATORS)

    def test_role_outside_list(self):
        assert not UserFactory(role=UserRole.MANAGER).has_role([UserRole.ADMIN])

    def test_superuser_passes_any_check(self):
        admin = User.objects.create_superuser(email="root@example.com", password="pw")

        assert admin.has_role([])

    def test_inactive_user_passes_none(self):
        assert not UserFactory(role=UserRole.ADMIN, is_active=False).has_role(OPERATORS)
