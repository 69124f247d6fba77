"""
Celery tasks for the usage ledger.

Tasks:
    reset_usage_counters: Daily sweep that zeroes counters left over from
        a past day or month (scheduled by celery-beat at 00:05 UTC)

Usage:
    from allocation.tasks import reset_usage_counters

    reset_usage_counters.delay()
"""

from __future__ import annotations

import logging
from datetime import date

from celery import shared_task

from allocation.services import UsageLedger
from core.locks import DistributedLock, LockAcquisitionError

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

RESET_LOCK_KEY = "allocation:reset-sweep"
RESET_LOCK_TTL_SECONDS = 600


@shared_task(acks_late=True)
def reset_usage_counters(run_date: str | None = None) -> dict:
    """
    Bring every stale account's counters up to date.

    Only one sweep runs at a time across workers; a second worker that
    finds the lock held returns immediately. The ledger resets stale
    counters on its own as well, so a skipped run loses nothing.

    Args:
        run_date: ISO date to treat as "today" (defaults to the local date)

    Returns:
        Dict with daily_reset, monthly_reset and skipped account ids, or
        {"status": "locked"} when another sweep holds the lock
    """
    today = date.fromisoformat(run_date) if run_date else None

    try:
        with DistributedLock(RESET_LOCK_KEY, ttl=RESET_LOCK_TTL_SECONDS, blocking=False):
            result = UsageLedger.reset_expired_counters(today)
    except LockAcquisitionError:
        logger.info("Counter reset sweep already running, skipping")
        return {"status": "locked"}

    summary = result.data
    return {
        "status": "completed",
        "run_date": summary.run_date.isoformat(),
        "daily_reset": summary.daily_reset,
        "monthly_reset": summary.monthly_reset,
        "skipped": summary.skipped,
    }
