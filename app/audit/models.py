"""
Audit log model.

AuditLogEntry rows are write-once. Three layers keep them that way:
- AuditLogEntry.save() refuses to update an existing row and
  AuditLogEntry.delete() always raises
- AuditLogQuerySet.update() and .delete() always raise
- on PostgreSQL, a trigger (migration 0002) rejects UPDATE and DELETE for
  every database role
"""

from __future__ import annotations

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from audit.exceptions import ImmutableAuditEntry


class AuditAction(models.TextChoices):
    """Kind of mutation an entry describes."""

    CREATE = "create", "Create"
    UPDATE = "update", "Update"
    DELETE = "delete", "Delete"


class AuditLogQuerySet(models.QuerySet):
    """QuerySet that only supports reads and inserts."""

    def update(self, **kwargs):
        raise ImmutableAuditEntry(
            "Audit log entries cannot be updated",
            details={"operation": "update"},
        )

    def delete(self):
        raise ImmutableAuditEntry(
            "Audit log entries cannot be deleted",
            details={"operation": "delete"},
        )

    def for_entity(self, entity_table: str, entity_id) -> AuditLogQuerySet:
        return self.filter(entity_table=entity_table, entity_id=str(entity_id))

    def by_actor(self, user_id) -> AuditLogQuerySet:
        return self.filter(actor_id=user_id)

    def newest_first(self) -> AuditLogQuerySet:
        return self.order_by("-created_at", "-id")


class AuditLogEntry(models.Model):
    """
    Immutable record of a single mutation to a protected entity.

    Fields:
        action: create/update/delete
        entity_table: Logical table name of the mutated entity
        entity_id: Primary key of the mutated entity (stored as text so
            UUID and integer keys share one column)
        actor: User who performed the mutation (null for system jobs)
        prior_state: Snapshot before the mutation (null on create)
        post_state: Snapshot after the mutation (null on delete)
        reason: Free-text reason supplied by the caller
        ip_address / user_agent: Request metadata when available
        created_at: Insertion time

    The integer primary key doubles as a tie-breaker for entries written
    within the same clock tick.
    """

    action = models.CharField(
        max_length=10,
        choices=AuditAction.choices,
        help_text="Kind of mutation",
    )
    entity_table = models.CharField(
        max_length=63,
        help_text="Logical table name of the mutated entity",
    )
    entity_id = models.CharField(
        max_length=64,
        help_text="Primary key of the mutated entity",
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="audit_entries",
        help_text="User who performed the mutation (null for system jobs)",
    )
    prior_state = models.JSONField(
        null=True,
        blank=True,
        encoder=DjangoJSONEncoder,
        help_text="Entity snapshot before the mutation",
    )
    post_state = models.JSONField(
        null=True,
        blank=True,
        encoder=DjangoJSONEncoder,
        help_text="Entity snapshot after the mutation",
    )
    reason = models.TextField(
        blank=True,
        default="",
        help_text="Why the change was made",
    )
    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="Client IP of the originating request",
    )
    user_agent = models.TextField(
        blank=True,
        default="",
        help_text="User agent of the originating request",
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="When the entry was written",
    )

    objects = AuditLogQuerySet.as_manager()

    class Meta:
        db_table = "audit_log_entries"
        ordering = ["-created_at", "-id"]
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log Entries"
        indexes = [
            models.Index(
                fields=["entity_table", "entity_id", "-created_at"],
                name="audit_entity_created_idx",
            ),
            models.Index(
                fields=["actor", "-created_at"],
                name="audit_actor_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"AuditLogEntry({self.id}, {self.action} {self.entity_table}:{self.entity_id})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableAuditEntry(
                f"Audit log entry {self.pk} cannot be modified",
                details={"entry_id": self.pk, "operation": "update"},
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableAuditEntry(
            f"Audit log entry {self.pk} cannot be deleted",
            details={"entry_id": self.pk, "operation": "delete"},
        )
