"""
Pytest fixtures for lifecycle tests.

Service-level fixtures go through LifecycleService so that each entity
has its account transaction and creation audit entry, the same as in
production.

Usage:
    def test_ship(operator, processing_order):
        LifecycleService.transition("orders", processing_order.pk, "shipped", actor=operator)
"""

from decimal import Decimal

import pytest

from allocation.tests.factories import PaymentAccountFactory
from lifecycle.models import Order, Remittance
from lifecycle.services import LifecycleService
from lifecycle.state_machines import LifecycleStatus


def fetch(entity):
    """Re-read an entity; protected FSM fields rule out refresh_from_db()."""
    return type(entity).objects.get(pk=entity.pk)


def advance(entity, operator, *targets):
    """Validate payment if needed, then walk ``entity`` through ``targets``."""
    table = entity._meta.db_table
    if LifecycleStatus.PROCESSING in targets:
        result = LifecycleService.validate_payment(table, entity.pk, actor=operator)
        assert result.success, result.error
    for target in targets:
        result = LifecycleService.transition(table, entity.pk, target, actor=operator)
        assert result.success, result.error
    return fetch(entity)


# =============================================================================
# Account Fixtures
# =============================================================================


@pytest.fixture
def goods_account(db):
    return PaymentAccountFactory(
        account_name="Goods",
        daily_limit=Decimal("1000.00"),
        monthly_limit=Decimal("5000.00"),
    )


@pytest.fixture
def remittance_account(db):
    return PaymentAccountFactory(
        account_name="Remittances",
        for_goods=False,
        for_remittances=True,
        daily_limit=Decimal("2000.00"),
        monthly_limit=Decimal("10000.00"),
    )


# =============================================================================
# Order Fixtures
# =============================================================================


@pytest.fixture
def pending_order(user, goods_account) -> Order:
    """A fresh order for the customer: status and payment both pending."""
    result = LifecycleService.create_order(user, subtotal=Decimal("40.00"), shipping_cost=Decimal("5.00"))
    assert result.success, result.error
    return result.data


@pytest.fixture
def processing_order(pending_order, operator) -> Order:
    return advance(pending_order, operator, LifecycleStatus.PROCESSING)


@pytest.fixture
def delivered_order(pending_order, operator) -> Order:
    return advance(
        pending_order,
        operator,
        LifecycleStatus.PROCESSING,
        LifecycleStatus.SHIPPED,
        LifecycleStatus.DELIVERED,
    )


@pytest.fixture
def completed_order(delivered_order, operator) -> Order:
    return advance(delivered_order, operator, LifecycleStatus.COMPLETED)


@pytest.fixture
def cancelled_order(pending_order, operator) -> Order:
    return advance(pending_order, operator, LifecycleStatus.CANCELLED)


# =============================================================================
# Remittance Fixtures
# =============================================================================


@pytest.fixture
def pending_remittance(user, remittance_account) -> Remittance:
    result = LifecycleService.create_remittance(
        user,
        amount_sent=Decimal("200.00"),
        commission_total=Decimal("10.00"),
        recipient_name="Maria Perez",
    )
    assert result.success, result.error
    return result.data
