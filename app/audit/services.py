"""
Audit trail service.

AuditTrail is the only writer of AuditLogEntry rows. Callers invoke
record() inside their own transaction.atomic() block so the entry and the
mutation commit or roll back together. A failed insert raises
AuditWriteFailure, which aborts the caller's unit of work.

Usage:
    from audit.services import AuditTrail, snapshot

    with transaction.atomic():
        before = snapshot(order, LIFECYCLE_AUDIT_FIELDS)
        order.ship()
        order.save()
        AuditTrail.record(
            action=AuditAction.UPDATE,
            entity_table="orders",
            entity_id=order.id,
            actor=actor,
            prior_state=before,
            post_state=snapshot(order, LIFECYCLE_AUDIT_FIELDS),
        )

    result = AuditTrail.history("orders", order.id, limit=20)
    for entry in result.data:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from audit.exceptions import AuditWriteFailure
from audit.models import AuditAction, AuditLogEntry
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

    from django.db import models

    from authentication.models import User


def snapshot(instance: models.Model, fields: Iterable[str]) -> dict[str, Any]:
    """
    Capture the named attributes of a model instance for prior/post state.

    Foreign keys should be listed by their ``*_id`` attribute.
    """
    return {name: getattr(instance, name) for name in fields}


@dataclass(frozen=True)
class RetentionSummary:
    """Counts of entries on either side of a retention cutoff."""

    cutoff: Any
    archived_count: int
    remaining_count: int


class AuditTrail(BaseService):
    """
    Records and queries the append-only audit log.

    All methods are class methods; the service holds no state.
    """

    @classmethod
    def record(
        cls,
        action: AuditAction | str,
        entity_table: str,
        entity_id: Any,
        actor: User | None,
        prior_state: dict[str, Any] | None = None,
        post_state: dict[str, Any] | None = None,
        reason: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLogEntry:
        """
        Write one audit entry.

        The insert runs in a savepoint, so a database error leaves the
        caller's transaction usable long enough to roll back cleanly.

        Returns:
            The persisted AuditLogEntry

        Raises:
            AuditWriteFailure: If the entry could not be stored
        """
        try:
            with transaction.atomic():
                entry = AuditLogEntry.objects.create(
                    action=action,
                    entity_table=entity_table,
                    entity_id=str(entity_id),
                    actor=actor,
                    prior_state=prior_state,
                    post_state=post_state,
                    reason=reason or "",
                    ip_address=ip_address,
                    user_agent=user_agent or "",
                )
        except DatabaseError as e:
            cls.get_logger().error(
                f"Audit write failed for {entity_table}:{entity_id}: {e}",
                extra={
                    "entity_table": entity_table,
                    "entity_id": str(entity_id),
                    "action": str(action),
                },
            )
            raise AuditWriteFailure(
                f"Could not record audit entry for {entity_table}:{entity_id}",
                details={
                    "entity_table": entity_table,
                    "entity_id": str(entity_id),
                    "action": str(action),
                },
            ) from e

        return entry

    @classmethod
    def history(
        cls,
        entity_table: str,
        entity_id: Any,
        limit: int | None = None,
    ) -> ServiceResult[list[AuditLogEntry]]:
        """
        Entries for one entity, most recent first.

        Args:
            entity_table: Logical table name (e.g. "orders")
            entity_id: Primary key of the entity
            limit: Maximum entries (default AUDIT_DEFAULT_HISTORY_LIMIT)
        """
        limit_or_error = cls._resolve_limit(limit, settings.AUDIT_DEFAULT_HISTORY_LIMIT)
        if isinstance(limit_or_error, ServiceResult):
            return limit_or_error

        entries = list(
            AuditLogEntry.objects.for_entity(entity_table, entity_id)
            .select_related("actor")
            .newest_first()[:limit_or_error]
        )
        return ServiceResult.success(entries)

    @classmethod
    def by_actor(
        cls,
        user_id: Any,
        limit: int | None = None,
    ) -> ServiceResult[list[AuditLogEntry]]:
        """
        Entries written on behalf of one user, most recent first.

        Args:
            user_id: Primary key of the acting user
            limit: Maximum entries (default AUDIT_DEFAULT_ACTOR_LIMIT)
        """
        limit_or_error = cls._resolve_limit(limit, settings.AUDIT_DEFAULT_ACTOR_LIMIT)
        if isinstance(limit_or_error, ServiceResult):
            return limit_or_error

        entries = list(AuditLogEntry.objects.by_actor(user_id).newest_first()[:limit_or_error])
        return ServiceResult.success(entries)

    @classmethod
    def retention_summary(cls, days: int | None = None) -> ServiceResult[RetentionSummary]:
        """
        Count entries older than the retention window and those within it.

        Nothing is moved or deleted; the log is append-only. Operators use
        the counts to plan exports to cold storage.
        """
        days = settings.AUDIT_RETENTION_DAYS if days is None else days
        if days < 0:
            return ServiceResult.failure(
                "Retention window cannot be negative",
                error_code="VALIDATION_ERROR",
                errors={"days": ["Must be zero or greater"]},
            )

        cutoff = timezone.now() - timedelta(days=days)
        archived = AuditLogEntry.objects.filter(created_at__lt=cutoff).count()
        remaining = AuditLogEntry.objects.filter(created_at__gte=cutoff).count()
        return ServiceResult.success(
            RetentionSummary(cutoff=cutoff, archived_count=archived, remaining_count=remaining)
        )

    @staticmethod
    def _resolve_limit(limit: int | None, default: int) -> int | ServiceResult:
        if limit is None:
            return default
        if limit < 1:
            return ServiceResult.failure(
                "Limit must be a positive integer",
                error_code="VALIDATION_ERROR",
                errors={"limit": ["Must be at least 1"]},
            )
        return min(limit, settings.AUDIT_MAX_LIMIT)
