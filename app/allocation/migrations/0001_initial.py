import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import allocation.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentAccount",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True, db_index=True, help_text="Timestamp when this record was created"
                    ),
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
                ("account_name", models.CharField(help_text="Operator-facing label", max_length=100)),
                ("email", models.EmailField(blank=True, help_text="Email customers send payments to", max_length=254)),
                (
                    "phone",
                    models.CharField(blank=True, help_text="Phone number customers send payments to", max_length=32),
                ),
                ("bank_name", models.CharField(blank=True, max_length=100)),
                ("account_holder", models.CharField(blank=True, max_length=150)),
                (
                    "is_active",
                    models.BooleanField(
                        db_index=True, default=True, help_text="Whether the account is in the allocation rotation"
                    ),
                ),
                ("for_goods", models.BooleanField(default=True, help_text="Can receive payments for product orders")),
                (
                    "for_remittances",
                    models.BooleanField(default=False, help_text="Can receive payments for remittances"),
                ),
                (
                    "daily_limit",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Nominal daily ceiling (empty = unbounded)",
                        max_digits=12,
                        null=True,
                    ),
                ),
                (
                    "monthly_limit",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Monthly ceiling (empty = unbounded)",
                        max_digits=12,
                        null=True,
                    ),
                ),
                (
                    "security_limit",
                    models.DecimalField(
                        decimal_places=2,
                        default=allocation.models.default_security_limit,
                        help_text="Hard daily ceiling applied on top of the daily limit",
                        max_digits=12,
                    ),
                ),
                (
                    "priority_order",
                    models.IntegerField(default=0, help_text="Allocation rank; lower values are tried first"),
                ),
                (
                    "current_daily_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                (
                    "current_monthly_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12),
                ),
                (
                    "last_reset_date",
                    models.DateField(
                        default=django.utils.timezone.localdate,
                        help_text="Day the usage counters were last brought up to date",
                    ),
                ),
                (
                    "last_used_at",
                    models.DateTimeField(blank=True, help_text="When usage was last recorded", null=True),
                ),
                ("notes", models.TextField(blank=True, default="")),
            ],
            options={
                "verbose_name": "Payment Account",
                "verbose_name_plural": "Payment Accounts",
                "db_table": "payment_accounts",
                "ordering": ["priority_order", "account_name"],
                "indexes": [
                    models.Index(fields=["is_active", "priority_order"], name="payment_acct_rotation_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(current_daily_amount__gte=0),
                        name="payment_account_daily_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(current_monthly_amount__gte=0),
                        name="payment_account_monthly_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(security_limit__gte=0),
                        name="payment_account_security_limit_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AccountTransaction",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True, db_index=True, help_text="Timestamp when this record was created"
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified"),
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
                    "transaction_type",
                    models.CharField(
                        choices=[("goods", "Goods"), ("remittance", "Remittance")],
                        max_length=20,
                    ),
                ),
                (
                    "reference_table",
                    models.CharField(
                        help_text="Table of the order or remittance this payment belongs to",
                        max_length=63,
                    ),
                ),
                (
                    "reference_id",
                    models.CharField(
                        db_index=True, help_text="Primary key of the order or remittance", max_length=64
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("validated", "Validated"), ("rejected", "Rejected")],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("validated_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="allocation.paymentaccount",
                    ),
                ),
                (
                    "validated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="validated_account_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Account Transaction",
                "verbose_name_plural": "Account Transactions",
                "db_table": "payment_account_transactions",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(amount__gt=0),
                        name="account_transaction_amount_positive",
                    ),
                    models.UniqueConstraint(
                        fields=("reference_table", "reference_id"),
                        name="account_transaction_unique_reference",
                    ),
                ],
            },
        ),
    ]
