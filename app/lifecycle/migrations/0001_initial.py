import uuid
from decimal import Decimal

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models

import lifecycle.models

LIFECYCLE_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("processing", "Processing"),
    ("shipped", "Shipped"),
    ("delivered", "Delivered"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
]

PAYMENT_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("validated", "Validated"),
    ("rejected", "Rejected"),
]


def lifecycle_fields():
    """Fields shared by orders and remittances."""
    return [
        (
            "created_at",
            models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created"),
        ),
        (
            "updated_at",
            models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified"),
        ),
        (
            "version",
            models.PositiveIntegerField(
                default=1, help_text="Version for optimistic locking - incremented on each save"
            ),
        ),
        (
            "id",
            models.UUIDField(
                default=uuid.uuid4,
                editable=False,
                help_text="Unique identifier for this record",
                primary_key=True,
                serialize=False,
            ),
        ),
        (
            "status",
            django_fsm.FSMField(
                choices=LIFECYCLE_STATUS_CHOICES,
                db_index=True,
                default="pending",
                help_text="Lifecycle status (managed by FSM)",
                max_length=50,
                protected=True,
            ),
        ),
        (
            "payment_status",
            django_fsm.FSMField(
                choices=PAYMENT_STATUS_CHOICES,
                db_index=True,
                default="pending",
                help_text="Payment review status (managed by FSM)",
                max_length=50,
                protected=True,
            ),
        ),
        (
            "payment_reference",
            models.CharField(blank=True, default="", help_text="Customer-supplied transfer reference", max_length=200),
        ),
        ("rejection_reason", models.TextField(blank=True, default="")),
        ("payment_validated_at", models.DateTimeField(blank=True, null=True)),
        ("payment_rejected_at", models.DateTimeField(blank=True, null=True)),
        ("processing_started_at", models.DateTimeField(blank=True, null=True)),
        ("shipped_at", models.DateTimeField(blank=True, null=True)),
        ("delivered_at", models.DateTimeField(blank=True, null=True)),
        ("completed_at", models.DateTimeField(blank=True, null=True)),
        ("cancelled_at", models.DateTimeField(blank=True, null=True)),
    ]


def lifecycle_relations():
    return [
        (
            "user",
            models.ForeignKey(
                help_text="Customer who placed the order or remittance",
                on_delete=django.db.models.deletion.PROTECT,
                related_name="%(class)ss",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
        (
            "assigned_account",
            models.ForeignKey(
                blank=True,
                help_text="Payment account the customer pays into",
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="%(class)ss",
                to="allocation.paymentaccount",
            ),
        ),
        (
            "payment_validated_by",
            models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("allocation", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                *lifecycle_fields(),
                (
                    "order_number",
                    models.CharField(
                        default=lifecycle.models.generate_order_number,
                        editable=False,
                        max_length=32,
                        unique=True,
                    ),
                ),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "discount_amount",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Tier discount applied at checkout",
                        max_digits=12,
                    ),
                ),
                ("shipping_cost", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("notes", models.TextField(blank=True, default="")),
                *lifecycle_relations(),
            ],
            options={
                "verbose_name": "Order",
                "verbose_name_plural": "Orders",
                "db_table": "orders",
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [
                    models.Index(fields=["user", "status"], name="order_user_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(total_amount__gt=0),
                        name="order_total_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Remittance",
            fields=[
                *lifecycle_fields(),
                (
                    "remittance_number",
                    models.CharField(
                        default=lifecycle.models.generate_remittance_number,
                        editable=False,
                        max_length=32,
                        unique=True,
                    ),
                ),
                ("amount_sent", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "commission_total",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10),
                ),
                ("amount_to_deliver", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency_sent", models.CharField(default="USD", max_length=10)),
                ("currency_delivered", models.CharField(default="USD", max_length=10)),
                ("recipient_name", models.CharField(max_length=200)),
                ("recipient_phone", models.CharField(blank=True, default="", max_length=32)),
                *lifecycle_relations(),
            ],
            options={
                "verbose_name": "Remittance",
                "verbose_name_plural": "Remittances",
                "db_table": "remittances",
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [
                    models.Index(fields=["user", "status"], name="remittance_user_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(amount_sent__gt=0),
                        name="remittance_amount_sent_positive",
                    ),
                ],
            },
        ),
    ]
