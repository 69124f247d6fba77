import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

TIER_CHOICES = [("regular", "Regular"), ("pro", "Pro"), ("vip", "VIP")]
SOURCE_CHOICES = [("automatic", "Automatic"), ("manual", "Manual")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="TierAssignment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
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
                    "tier",
                    models.CharField(choices=TIER_CHOICES, db_index=True, default="regular", max_length=20),
                ),
                ("source", models.CharField(choices=SOURCE_CHOICES, default="automatic", max_length=20)),
                ("reason", models.TextField(blank=True, default="")),
                (
                    "interaction_count",
                    models.PositiveIntegerField(
                        default=0, help_text="Completed interactions counted when the tier was set"
                    ),
                ),
                ("assigned_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "assigned_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tier_assignment",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Tier Assignment",
                "verbose_name_plural": "Tier Assignments",
                "db_table": "user_tier_assignments",
            },
        ),
        migrations.CreateModel(
            name="TierHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
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
                ("previous_tier", models.CharField(blank=True, choices=TIER_CHOICES, max_length=20, null=True)),
                ("tier", models.CharField(choices=TIER_CHOICES, max_length=20)),
                ("source", models.CharField(choices=SOURCE_CHOICES, max_length=20)),
                ("reason", models.TextField(blank=True, default="")),
                ("interaction_count", models.PositiveIntegerField(default=0)),
                (
                    "assigned_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tier_history",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Tier History Entry",
                "verbose_name_plural": "Tier History",
                "db_table": "user_tier_history",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["user", "-created_at"], name="tier_history_user_idx"),
                ],
            },
        ),
    ]
