"""
Tests for state machine transitions using django-fsm.

Tests the transition table and the model-level transitions of Order and
Remittance, without the service layer.
"""

import pytest
from django_fsm import TransitionNotAllowed, can_proceed

from lifecycle.state_machines import (
    LIFECYCLE_TRANSITIONS,
    TERMINAL_STATUSES,
    LifecycleStatus,
    PaymentStatus,
    is_legal_transition,
)
from lifecycle.tests.factories import OrderFactory, RemittanceFactory


# =============================================================================
# Transition Table
# =============================================================================


class TestTransitionTable:
    """Tests for LIFECYCLE_TRANSITIONS and is_legal_transition."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (LifecycleStatus.PENDING, LifecycleStatus.PROCESSING),
            (LifecycleStatus.PROCESSING, LifecycleStatus.SHIPPED),
            (LifecycleStatus.SHIPPED, LifecycleStatus.DELIVERED),
            (LifecycleStatus.DELIVERED, LifecycleStatus.COMPLETED),
            (LifecycleStatus.PENDING, LifecycleStatus.CANCELLED),
            (LifecycleStatus.PROCESSING, LifecycleStatus.CANCELLED),
            (LifecycleStatus.SHIPPED, LifecycleStatus.CANCELLED),
        ],
    )
    def test_legal_edges(self, current, target):
        assert is_legal_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (LifecycleStatus.PENDING, LifecycleStatus.SHIPPED),
            (LifecycleStatus.PENDING, LifecycleStatus.COMPLETED),
            (LifecycleStatus.PROCESSING, LifecycleStatus.PENDING),
            (LifecycleStatus.SHIPPED, LifecycleStatus.PROCESSING),
            (LifecycleStatus.DELIVERED, LifecycleStatus.CANCELLED),
            (LifecycleStatus.PENDING, LifecycleStatus.PENDING),
        ],
    )
    def test_illegal_edges(self, current, target):
        assert not is_legal_transition(current, target)

    @pytest.mark.parametrize("terminal", [LifecycleStatus.COMPLETED, LifecycleStatus.CANCELLED])
    def test_nothing_leaves_terminal_states(self, terminal):
        for target in LifecycleStatus.values:
            assert not is_legal_transition(terminal, target)

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {LifecycleStatus.COMPLETED, LifecycleStatus.CANCELLED}

    def test_unknown_status_has_no_edges(self):
        assert not is_legal_transition("archived", LifecycleStatus.PENDING)

    def test_table_covers_every_status(self):
        assert set(LIFECYCLE_TRANSITIONS) == set(LifecycleStatus.values)


# =============================================================================
# Order Transitions
# =============================================================================


@pytest.mark.django_db
class TestOrderTransitions:
    """Tests for Order django-fsm transitions."""

    # -------------------------------------------------------------------------
    # Payment sub-path
    # -------------------------------------------------------------------------

    def test_validate_payment(self, operator):
        order = OrderFactory()

        order.validate_payment(actor=operator)
        order.save()

        assert order.payment_status == PaymentStatus.VALIDATED
        assert order.payment_validated_at is not None
        assert order.payment_validated_by == operator

    def test_reject_payment_records_reason(self):
        order = OrderFactory()

        order.reject_payment("Transfer not received")
        order.save()

        assert order.payment_status == PaymentStatus.REJECTED
        assert order.rejection_reason == "Transfer not received"
        assert order.payment_rejected_at is not None
        assert order.status == LifecycleStatus.PENDING

    def test_payment_only_moves_while_pending(self):
        order = OrderFactory(status=LifecycleStatus.CANCELLED)

        assert not can_proceed(order.validate_payment)
        with pytest.raises(TransitionNotAllowed):
            order.validate_payment()

    def test_rejected_payment_cannot_be_validated(self):
        order = OrderFactory(payment_status=PaymentStatus.REJECTED)

        with pytest.raises(TransitionNotAllowed):
            order.validate_payment()

    # -------------------------------------------------------------------------
    # Main status
    # -------------------------------------------------------------------------

    def test_processing_requires_validated_payment(self):
        order = OrderFactory()

        assert not can_proceed(order.start_processing)
        with pytest.raises(TransitionNotAllowed):
            order.start_processing()

    def test_processing_blocked_after_rejection(self):
        order = OrderFactory(payment_status=PaymentStatus.REJECTED)

        assert not can_proceed(order.start_processing)

    def test_full_happy_path(self):
        order = OrderFactory(payment_status=PaymentStatus.VALIDATED)

        order.start_processing()
        order.ship()
        order.deliver()
        order.complete()
        order.save()

        assert order.status == LifecycleStatus.COMPLETED
        assert order.processing_started_at is not None
        assert order.shipped_at is not None
        assert order.delivered_at is not None
        assert order.completed_at is not None
        assert order.is_terminal

    @pytest.mark.parametrize(
        "status",
        [LifecycleStatus.PENDING, LifecycleStatus.PROCESSING, LifecycleStatus.SHIPPED],
    )
    def test_cancel_from_non_terminal(self, status):
        order = OrderFactory(status=status, payment_status=PaymentStatus.VALIDATED)

        order.cancel()
        order.save()

        assert order.status == LifecycleStatus.CANCELLED
        assert order.cancelled_at is not None

    @pytest.mark.parametrize(
        "status",
        [LifecycleStatus.DELIVERED, LifecycleStatus.COMPLETED, LifecycleStatus.CANCELLED],
    )
    def test_cannot_cancel(self, status):
        order = OrderFactory(status=status, payment_status=PaymentStatus.VALIDATED)

        with pytest.raises(TransitionNotAllowed):
            order.cancel()

    def test_cannot_skip_shipping(self):
        order = OrderFactory(status=LifecycleStatus.PROCESSING, payment_status=PaymentStatus.VALIDATED)

        with pytest.raises(TransitionNotAllowed):
            order.deliver()

    def test_status_field_is_protected(self):
        order = OrderFactory()

        with pytest.raises(AttributeError):
            order.status = LifecycleStatus.COMPLETED


@pytest.mark.django_db
class TestRemittanceTransitions:
    def test_same_lifecycle_as_orders(self):
        remittance = RemittanceFactory(payment_status=PaymentStatus.VALIDATED)

        remittance.start_processing()
        remittance.ship()
        remittance.deliver()
        remittance.save()

        assert remittance.status == LifecycleStatus.DELIVERED
        assert remittance.delivered_at is not None

    def test_payment_amount_is_amount_sent(self):
        remittance = RemittanceFactory()

        assert remittance.payment_amount == remittance.amount_sent
        assert remittance.reference.startswith("REM-")
