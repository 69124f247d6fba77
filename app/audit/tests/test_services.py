"""
Tests for the audit trail service and the append-only guarantees of
AuditLogEntry.
"""

from datetime import timedelta

import pytest
from django.db import DatabaseError
from django.utils import timezone
from freezegun import freeze_time

from audit.exceptions import AuditWriteFailure, ImmutableAuditEntry
from audit.models import AuditAction, AuditLogEntry
from audit.services import AuditTrail
from audit.tasks import report_audit_retention


def record(entity_id="order-1", actor=None, reason="", table="orders", **states):
    return AuditTrail.record(
        action=AuditAction.UPDATE,
        entity_table=table,
        entity_id=entity_id,
        actor=actor,
        prior_state=states.get("prior"),
        post_state=states.get("post"),
        reason=reason,
    )


@pytest.mark.django_db
class TestRecord:
    """Tests for AuditTrail.record."""

    def test_persists_entry(self, operator):
        entry = AuditTrail.record(
            action=AuditAction.UPDATE,
            entity_table="orders",
            entity_id="6f1c",
            actor=operator,
            prior_state={"status": "pending"},
            post_state={"status": "processing"},
            reason="Payment confirmed",
            ip_address="10.0.0.8",
        )

        stored = AuditLogEntry.objects.get(pk=entry.pk)
        assert stored.entity_table == "orders"
        assert stored.entity_id == "6f1c"
        assert stored.actor == operator
        assert stored.prior_state == {"status": "pending"}
        assert stored.post_state == {"status": "processing"}
        assert stored.reason == "Payment confirmed"
        assert stored.ip_address == "10.0.0.8"

    def test_entity_id_stored_as_text(self, db):
        entry = record(entity_id=42)

        assert entry.entity_id == "42"

    def test_system_entries_have_no_actor(self, db):
        entry = record()

        assert entry.actor is None

    def test_database_error_raises_audit_write_failure(self, db, mocker):
        mocker.patch.object(AuditLogEntry.objects, "create", side_effect=DatabaseError("disk full"))

        with pytest.raises(AuditWriteFailure) as exc_info:
            record()

        assert exc_info.value.error_code == "AUDIT_WRITE_FAILURE"
        assert exc_info.value.details["entity_table"] == "orders"


@pytest.mark.django_db
class TestImmutability:
    """Entries can be inserted and read, never changed or removed."""

    def test_save_on_existing_entry_raises(self, db):
        entry = record(reason="original")
        entry.reason = "rewritten"

        with pytest.raises(ImmutableAuditEntry):
            entry.save()

        assert AuditLogEntry.objects.get(pk=entry.pk).reason == "original"

    def test_delete_raises(self, db):
        entry = record()

        with pytest.raises(ImmutableAuditEntry):
            entry.delete()

        assert AuditLogEntry.objects.filter(pk=entry.pk).exists()

    def test_queryset_update_raises(self, db):
        record()

        with pytest.raises(ImmutableAuditEntry):
            AuditLogEntry.objects.all().update(reason="rewritten")

    def test_queryset_delete_raises(self, db):
        record()

        with pytest.raises(ImmutableAuditEntry):
            AuditLogEntry.objects.filter(entity_table="orders").delete()

    def test_superuser_entries_are_also_immutable(self, superuser):
        entry = record(actor=superuser)

        with pytest.raises(ImmutableAuditEntry):
            entry.delete()

    def test_error_code(self, db):
        entry = record()

        with pytest.raises(ImmutableAuditEntry) as exc_info:
            entry.delete()

        assert exc_info.value.error_code == "AUDIT_ENTRY_IMMUTABLE"


@pytest.mark.django_db
class TestHistory:
    """Tests for AuditTrail.history and AuditTrail.by_actor."""

    def test_most_recent_first(self, db):
        first = record(reason="first")
        second = record(reason="second")
        third = record(reason="third")

        result = AuditTrail.history("orders", "order-1")

        assert [entry.pk for entry in result.data] == [third.pk, second.pk, first.pk]

    def test_only_requested_entity(self, db):
        mine = record(entity_id="order-1")
        record(entity_id="order-2")
        record(entity_id="order-1", table="remittances")

        result = AuditTrail.history("orders", "order-1")

        assert [entry.pk for entry in result.data] == [mine.pk]

    def test_limit(self, db):
        for n in range(5):
            record(reason=str(n))

        result = AuditTrail.history("orders", "order-1", limit=2)

        assert [entry.reason for entry in result.data] == ["4", "3"]

    def test_limit_capped(self, db, settings):
        settings.AUDIT_MAX_LIMIT = 3
        for n in range(5):
            record(reason=str(n))

        result = AuditTrail.history("orders", "order-1", limit=100)

        assert len(result.data) == 3

    def test_default_limit(self, db, settings):
        settings.AUDIT_DEFAULT_HISTORY_LIMIT = 2
        for n in range(4):
            record(reason=str(n))

        assert len(AuditTrail.history("orders", "order-1").data) == 2

    def test_invalid_limit(self, db):
        result = AuditTrail.history("orders", "order-1", limit=0)

        assert result.error_code == "VALIDATION_ERROR"

    def test_by_actor(self, operator, admin_operator):
        mine = [record(actor=operator, entity_id=f"o-{n}") for n in range(3)]
        record(actor=admin_operator)
        record()

        result = AuditTrail.by_actor(operator.pk)

        assert [entry.pk for entry in result.data] == [e.pk for e in reversed(mine)]

    def test_history_is_read_only(self, db):
        record()

        AuditTrail.history("orders", "order-1")
        AuditTrail.by_actor(1)

        assert AuditLogEntry.objects.count() == 1


@pytest.mark.django_db
class TestRetention:
    def test_counts_either_side_of_cutoff(self, db):
        with freeze_time(timezone.now() - timedelta(days=400)):
            record(reason="old")
        record(reason="new")

        summary = AuditTrail.retention_summary(days=365).data

        assert summary.archived_count == 1
        assert summary.remaining_count == 1
        assert AuditLogEntry.objects.count() == 2

    def test_negative_window(self, db):
        result = AuditTrail.retention_summary(days=-1)

        assert result.error_code == "VALIDATION_ERROR"

    def test_report_task(self, db):
        with freeze_time(timezone.now() - timedelta(days=30)):
            record()

        outcome = report_audit_retention(days=7)

        assert outcome["archived_count"] == 1
        assert outcome["remaining_count"] == 0
        assert "cutoff" in outcome
