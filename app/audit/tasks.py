"""
Celery tasks for the audit trail.

Tasks:
    report_audit_retention: Weekly count of entries past the retention window
"""

from __future__ import annotations

import logging

from celery import shared_task

from audit.services import AuditTrail

logger = logging.getLogger(__name__)


@shared_task
def report_audit_retention(days: int | None = None) -> dict:
    """
    Log how many audit entries fall outside the retention window.

    Returns:
        Dict with archived_count, remaining_count and cutoff (ISO format)
    """
    result = AuditTrail.retention_summary(days)
    if not result.success:
        logger.warning(f"Audit retention report skipped: {result.error}")
        return {"error": result.error, "error_code": result.error_code}

    summary = result.data
    logger.info(
        f"Audit retention: {summary.archived_count} entries past cutoff, "
        f"{summary.remaining_count} within window",
        extra={
            "archived_count": summary.archived_count,
            "remaining_count": summary.remaining_count,
        },
    )
    return {
        "archived_count": summary.archived_count,
        "remaining_count": summary.remaining_count,
        "cutoff": summary.cutoff.isoformat(),
    }
