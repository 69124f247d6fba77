import uuid

import django.core.serializers.json
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="NotificationDelivery",
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
                    "event_type",
                    models.CharField(
                        choices=[
                            ("entity_created", "Order or remittance created"),
                            ("status_changed", "Status changed"),
                            ("payment_validated", "Payment validated"),
                            ("payment_rejected", "Payment rejected"),
                        ],
                        help_text="Lifecycle event being reported",
                        max_length=30,
                    ),
                ),
                ("entity_table", models.CharField(max_length=63)),
                ("entity_id", models.CharField(max_length=64)),
                (
                    "payload",
                    models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("sent", "Sent"),
                            ("failed", "Failed"),
                            ("skipped", "Skipped"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current delivery status",
                        max_length=20,
                    ),
                ),
                (
                    "sent_at",
                    models.DateTimeField(
                        blank=True, help_text="When the message was handed to the email backend", null=True
                    ),
                ),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                ("failure_reason", models.TextField(blank=True, default="")),
                ("failure_code", models.CharField(blank=True, default="", max_length=50)),
                (
                    "is_permanent_failure",
                    models.BooleanField(default=False, help_text="True if retry won't help (e.g., invalid recipient)"),
                ),
                ("attempt_count", models.PositiveSmallIntegerField(default=0)),
                (
                    "recipient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notification_deliveries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "notification delivery",
                "verbose_name_plural": "notification deliveries",
                "db_table": "notification_deliveries",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["entity_table", "entity_id"], name="notif_delivery_entity_idx"),
                    models.Index(fields=["status", "-created_at"], name="notif_delivery_status_idx"),
                ],
            },
        ),
    ]
