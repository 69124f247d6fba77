"""
Pytest fixtures for allocation tests.

The pool fixtures mirror a typical rotation: a preferred account near its
daily limit and a backup account with spare capacity.
"""

from decimal import Decimal

import pytest

from allocation.tests.factories import PaymentAccountFactory


@pytest.fixture
def account(db):
    """An idle goods account with a 100/day, 1000/month limit."""
    return PaymentAccountFactory(
        daily_limit=Decimal("100.00"),
        monthly_limit=Decimal("1000.00"),
    )


@pytest.fixture
def near_limit_account(db):
    """Priority 1 account that already took 90 of its 100 today."""
    return PaymentAccountFactory(
        account_name="Primary",
        daily_limit=Decimal("100.00"),
        current_daily_amount=Decimal("90.00"),
        current_monthly_amount=Decimal("90.00"),
        priority_order=1,
    )


@pytest.fixture
def spare_account(db):
    """Priority 2 account with nothing used today."""
    return PaymentAccountFactory(
        account_name="Backup",
        daily_limit=Decimal("100.00"),
        priority_order=2,
    )
