"""
Tests for the authentication API.
"""

import pytest
from django.urls import reverse
from rest_framework import status

from authentication.models import UserRole


@pytest.mark.django_db
class TestTokenObtainView:
    def test_issues_token_pair(self, api_client, user):
        response = api_client.post(
            reverse("authentication:token-obtain"),
            {"email": user.email, "password": "TestPass123!"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data
        assert "refresh" in response.data

    def test_wrong_password(self, api_client, user):
        response = api_client.post(
            reverse("authentication:token-obtain"),
            {"email": user.email, "password": "nope"},
            format="json",
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_refresh(self, api_client, user):
        pair = api_client.post(
            reverse("authentication:token-obtain"),
            {"email": user.email, "password": "TestPass123!"},
            format="json",
        ).data

        response = api_client.post(
            reverse("authentication:token-refresh"),
            {"refresh": pair["refresh"]},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data


@pytest.mark.django_db
class TestCurrentUserView:
    def test_returns_user(self, authenticated_client, user):
        response = authenticated_client.get(reverse("authentication:me"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["data"]["email"] == user.email
        assert response.data["data"]["role"] == UserRole.CUSTOMER

    def test_operator_role_reported(self, operator_client):
        response = operator_client.get(reverse("authentication:me"))

        assert response.data["data"]["role"] == UserRole.MANAGER

    def test_requires_authentication(self, api_client):
        response = api_client.get(reverse("authentication:me"))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
