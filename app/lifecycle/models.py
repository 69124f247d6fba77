"""
Order and Remittance models.

Both share one lifecycle shape (LifecycleEntity): a main status, an
independent payment sub-status, the payment account the customer was
told to pay into, and one timestamp per transition. Status fields are
protected django-fsm fields; they only change through the transition
methods below, and those are only called by lifecycle.services.

Usage:
    from lifecycle.models import Order

    order = Order.objects.create(
        user=user,
        subtotal=Decimal("40.00"),
        total_amount=Decimal("40.00"),
        assigned_account=account,
    )

    order.validate_payment(actor=operator)   # payment pending -> validated
    order.start_processing()                 # pending -> processing
    order.save()
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from allocation.models import TransactionType
from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin
from core.models import BaseModel
from lifecycle.state_machines import LifecycleStatus, PaymentStatus

ZERO = Decimal("0.00")

# Fields captured in audit snapshots for every lifecycle mutation
LIFECYCLE_AUDIT_FIELDS = (
    "status",
    "payment_status",
    "assigned_account_id",
    "payment_validated_at",
    "payment_rejected_at",
    "processing_started_at",
    "shipped_at",
    "delivered_at",
    "completed_at",
    "cancelled_at",
    "rejection_reason",
    "version",
)


def generate_order_number() -> str:
    return f"ORD-{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


def generate_remittance_number() -> str:
    return f"REM-{timezone.now():%Y}-{uuid.uuid4().hex[:8].upper()}"


def status_is_pending(instance: LifecycleEntity) -> bool:
    return instance.status == LifecycleStatus.PENDING


def payment_is_validated(instance: LifecycleEntity) -> bool:
    return instance.payment_status == PaymentStatus.VALIDATED


class LifecycleEntity(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    Abstract base for payment-bearing entities with a tracked lifecycle.

    State Flow:
        PENDING → PROCESSING → SHIPPED → DELIVERED → COMPLETED
        PENDING/PROCESSING/SHIPPED → CANCELLED

    Payment Flow (while PENDING):
        payment PENDING → VALIDATED (required before PROCESSING)
        payment PENDING → REJECTED (records rejection_reason)

    Entities are never deleted; cancellation is a terminal status.
    """

    transaction_type: str = TransactionType.GOODS

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="%(class)ss",
        help_text="Customer who placed the order or remittance",
    )
    status = FSMField(
        default=LifecycleStatus.PENDING,
        choices=LifecycleStatus.choices,
        db_index=True,
        protected=True,
        help_text="Lifecycle status (managed by FSM)",
    )
    payment_status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Payment review status (managed by FSM)",
    )
    assigned_account = models.ForeignKey(
        "allocation.PaymentAccount",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="%(class)ss",
        help_text="Payment account the customer pays into",
    )
    payment_reference = models.CharField(
        max_length=200,
        blank=True,
        default="",
        help_text="Customer-supplied transfer reference",
    )
    payment_validated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    rejection_reason = models.TextField(
        blank=True,
        default="",
    )

    # Transition timestamps
    payment_validated_at = models.DateTimeField(null=True, blank=True)
    payment_rejected_at = models.DateTimeField(null=True, blank=True)
    processing_started_at = models.DateTimeField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    @property
    def payment_amount(self) -> Decimal:
        """Amount the customer pays into the assigned account."""
        raise NotImplementedError

    @property
    def reference(self) -> str:
        """Human-facing reference number."""
        raise NotImplementedError

    @property
    def is_terminal(self) -> bool:
        return self.status in (LifecycleStatus.COMPLETED, LifecycleStatus.CANCELLED)

    # ==========================================================================
    # Payment Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=payment_status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.VALIDATED,
        conditions=[status_is_pending],
    )
    def validate_payment(self, actor=None):
        """
        Accept the customer's payment.

        Transition: payment PENDING -> VALIDATED (status must be PENDING)
        """
        self.payment_validated_at = timezone.now()
        self.payment_validated_by = actor

    @transition(
        field=payment_status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.REJECTED,
        conditions=[status_is_pending],
    )
    def reject_payment(self, reason: str):
        """
        Refuse the customer's payment.

        Transition: payment PENDING -> REJECTED (status must be PENDING)
        """
        self.payment_rejected_at = timezone.now()
        self.rejection_reason = reason

    # ==========================================================================
    # Status Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=LifecycleStatus.PENDING,
        target=LifecycleStatus.PROCESSING,
        conditions=[payment_is_validated],
    )
    def start_processing(self):
        """Transition: PENDING -> PROCESSING (payment must be validated)."""
        self.processing_started_at = timezone.now()

    @transition(
        field=status,
        source=LifecycleStatus.PROCESSING,
        target=LifecycleStatus.SHIPPED,
    )
    def ship(self):
        """Transition: PROCESSING -> SHIPPED."""
        self.shipped_at = timezone.now()

    @transition(
        field=status,
        source=LifecycleStatus.SHIPPED,
        target=LifecycleStatus.DELIVERED,
    )
    def deliver(self):
        """Transition: SHIPPED -> DELIVERED."""
        self.delivered_at = timezone.now()

    @transition(
        field=status,
        source=LifecycleStatus.DELIVERED,
        target=LifecycleStatus.COMPLETED,
    )
    def complete(self):
        """Transition: DELIVERED -> COMPLETED."""
        self.completed_at = timezone.now()

    @transition(
        field=status,
        source=[
            LifecycleStatus.PENDING,
            LifecycleStatus.PROCESSING,
            LifecycleStatus.SHIPPED,
        ],
        target=LifecycleStatus.CANCELLED,
    )
    def cancel(self):
        """Transition: PENDING/PROCESSING/SHIPPED -> CANCELLED."""
        self.cancelled_at = timezone.now()

    # Target status -> transition method name
    STATUS_TRANSITION_METHODS = {
        LifecycleStatus.PROCESSING: "start_processing",
        LifecycleStatus.SHIPPED: "ship",
        LifecycleStatus.DELIVERED: "deliver",
        LifecycleStatus.COMPLETED: "complete",
        LifecycleStatus.CANCELLED: "cancel",
    }


class Order(LifecycleEntity):
    """
    A storefront order paid by transfer into a shared payment account.

    Fields:
        order_number: Human-facing reference (ORD-YYYYMMDD-XXXXXX)
        subtotal / discount_amount / shipping_cost / total_amount: Totals
            fixed at checkout
        notes: Customer delivery notes
    """

    transaction_type = TransactionType.GOODS

    order_number = models.CharField(
        max_length=32,
        unique=True,
        default=generate_order_number,
        editable=False,
    )
    subtotal = models.DecimalField(
        max_digits=12,
        decimal_places=2,
    )
    discount_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=ZERO,
        help_text="Tier discount applied at checkout",
    )
    shipping_cost = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=ZERO,
    )
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
    )
    notes = models.TextField(
        blank=True,
        default="",
    )

    class Meta(LifecycleEntity.Meta):
        db_table = "orders"
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        indexes = [
            models.Index(fields=["user", "status"], name="order_user_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gt=0),
                name="order_total_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Order({self.order_number}, {self.status}, {self.total_amount})"

    @property
    def payment_amount(self) -> Decimal:
        return self.total_amount

    @property
    def reference(self) -> str:
        return self.order_number


class Remittance(LifecycleEntity):
    """
    A money transfer to a recipient, funded by a payment into a shared account.

    Fields:
        remittance_number: Human-facing reference (REM-YYYY-XXXXXXXX)
        amount_sent: What the customer pays in
        commission_total: Fee retained
        amount_to_deliver: What the recipient receives
        currency_sent / currency_delivered: Currency codes
        recipient_name / recipient_phone: Who receives the money
    """

    transaction_type = TransactionType.REMITTANCE

    remittance_number = models.CharField(
        max_length=32,
        unique=True,
        default=generate_remittance_number,
        editable=False,
    )
    amount_sent = models.DecimalField(
        max_digits=12,
        decimal_places=2,
    )
    commission_total = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=ZERO,
    )
    amount_to_deliver = models.DecimalField(
        max_digits=12,
        decimal_places=2,
    )
    currency_sent = models.CharField(
        max_length=10,
        default="USD",
    )
    currency_delivered = models.CharField(
        max_length=10,
        default="USD",
    )
    recipient_name = models.CharField(
        max_length=200,
    )
    recipient_phone = models.CharField(
        max_length=32,
        blank=True,
        default="",
    )

    class Meta(LifecycleEntity.Meta):
        db_table = "remittances"
        verbose_name = "Remittance"
        verbose_name_plural = "Remittances"
        indexes = [
            models.Index(fields=["user", "status"], name="remittance_user_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_sent__gt=0),
                name="remittance_amount_sent_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Remittance({self.remittance_number}, {self.status}, {self.amount_sent})"

    @property
    def payment_amount(self) -> Decimal:
        return self.amount_sent

    @property
    def reference(self) -> str:
        return self.remittance_number
