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
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "action",
                    models.CharField(
                        choices=[("create", "Create"), ("update", "Update"), ("delete", "Delete")],
                        help_text="Kind of mutation",
                        max_length=10,
                    ),
                ),
                (
                    "entity_table",
                    models.CharField(help_text="Logical table name of the mutated entity", max_length=63),
                ),
                (
                    "entity_id",
                    models.CharField(help_text="Primary key of the mutated entity", max_length=64),
                ),
                (
                    "prior_state",
                    models.JSONField(
                        blank=True,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        help_text="Entity snapshot before the mutation",
                        null=True,
                    ),
                ),
                (
                    "post_state",
                    models.JSONField(
                        blank=True,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        help_text="Entity snapshot after the mutation",
                        null=True,
                    ),
                ),
                ("reason", models.TextField(blank=True, default="", help_text="Why the change was made")),
                (
                    "ip_address",
                    models.GenericIPAddressField(
                        blank=True, help_text="Client IP of the originating request", null=True
                    ),
                ),
                (
                    "user_agent",
                    models.TextField(blank=True, default="", help_text="User agent of the originating request"),
                ),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, db_index=True, help_text="When the entry was written"),
                ),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who performed the mutation (null for system jobs)",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="audit_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Audit Log Entry",
                "verbose_name_plural": "Audit Log Entries",
                "db_table": "audit_log_entries",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["entity_table", "entity_id", "-created_at"],
                        name="audit_entity_created_idx",
                    ),
                    models.Index(fields=["actor", "-created_at"], name="audit_actor_created_idx"),
                ],
            },
        ),
    ]
