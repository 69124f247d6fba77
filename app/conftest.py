"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures:
users in each operational role and API clients authenticated with JWT
access tokens. App-specific fixtures are defined in each app's
tests/conftest.py.
"""

import os

import django
import pytest

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()

    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full order and remittance journeys)
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_serializers.py, test_state_transitions.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_dispatch.py",
        "test_locks.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_state_transitions.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def celery_eager():
    """Run Celery tasks inline without touching the broker."""
    from config.celery import app

    app.conf.task_always_eager = True
    app.conf.task_eager_propagates = False
    yield


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """A customer."""
    from authentication.tests.factories import UserFactory

    return UserFactory()


@pytest.fixture
def other_user(db):
    """A second customer, for ownership checks."""
    from authentication.tests.factories import UserFactory

    return UserFactory()


@pytest.fixture
def operator(db):
    """A manager: validates payments and drives the lifecycle."""
    from authentication.models import UserRole
    from authentication.tests.factories import UserFactory

    return UserFactory(role=UserRole.MANAGER)


@pytest.fixture
def admin_operator(db):
    """An admin operator."""
    from authentication.models import UserRole
    from authentication.tests.factories import UserFactory

    return UserFactory(role=UserRole.ADMIN, is_staff=True)


@pytest.fixture
def superuser(db):
    """Create a superuser with admin privileges."""
    from authentication.models import User

    return User.objects.create_superuser(email="root@example.com", password="AdminPass123!")


# =============================================================================
# API Client Fixtures
# =============================================================================


def _client_for(user):
    from rest_framework.test import APIClient
    from rest_framework_simplejwt.tokens import RefreshToken

    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def authenticated_client(user):
    """API client authenticated as the customer via a JWT access token."""
    return _client_for(user)


@pytest.fixture
def other_client(other_user):
    return _client_for(other_user)


@pytest.fixture
def operator_client(operator):
    """API client authenticated as the manager."""
    return _client_for(operator)


@pytest.fixture
def admin_operator_client(admin_operator):
    """API client authenticated as the admin."""
    return _client_for(admin_operator)
