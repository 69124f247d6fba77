"""
Factory Boy factories for lifecycle test data.

The factories write rows directly, bypassing LifecycleService, so they
do not allocate accounts or write audit entries. Use them for model-level
tests and for entities that must start in a given state; use
LifecycleService.create_order() when the test is about the service.

Usage:
    from lifecycle.tests.factories import OrderFactory, RemittanceFactory

    order = OrderFactory()
    shipped = OrderFactory(
        status=LifecycleStatus.SHIPPED,
        payment_status=PaymentStatus.VALIDATED,
    )
"""

from decimal import Decimal

import factory

from allocation.tests.factories import PaymentAccountFactory
from authentication.tests.factories import UserFactory
from lifecycle.models import Order, Remittance
from lifecycle.state_machines import LifecycleStatus, PaymentStatus


class OrderFactory(factory.django.DjangoModelFactory):
    """
    Factory for Order in pending/pending by default.

    Status fields are protected; they can only be set at construction.
    """

    class Meta:
        model = Order

    user = factory.SubFactory(UserFactory)
    assigned_account = factory.SubFactory(PaymentAccountFactory)
    status = LifecycleStatus.PENDING
    payment_status = PaymentStatus.PENDING
    subtotal = Decimal("40.00")
    shipping_cost = Decimal("5.00")
    total_amount = factory.LazyAttribute(lambda o: o.subtotal + o.shipping_cost)


class RemittanceFactory(factory.django.DjangoModelFactory):
    """Factory for Remittance in pending/pending by default."""

    class Meta:
        model = Remittance

    user = factory.SubFactory(UserFactory)
    assigned_account = factory.SubFactory(PaymentAccountFactory, for_remittances=True)
    status = LifecycleStatus.PENDING
    payment_status = PaymentStatus.PENDING
    amount_sent = Decimal("200.00")
    commission_total = Decimal("10.00")
    amount_to_deliver = factory.LazyAttribute(lambda o: o.amount_sent - o.commission_total)
    recipient_name = factory.Faker("name")
    recipient_phone = "+1 555 0100"
