"""
Fixtures for core tests.
"""

import pytest


@pytest.fixture
def mock_redis(mocker):
    """
    Mock Redis client for distributed lock tests.

    Returns a MagicMock configured for basic lock operations.
    """
    mock_client = mocker.MagicMock()
    mock_client.set.return_value = True
    mock_client.eval.return_value = 1

    mocker.patch(
        "core.locks.get_redis_connection",
        return_value=mock_client,
    )
    return mock_client


@pytest.fixture
def account(db):
    from allocation.tests.factories import PaymentAccountFactory

    return PaymentAccountFactory()
