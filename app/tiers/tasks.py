"""
Celery tasks for tier reclassification.

Tasks:
    recompute_user_tier: Reclassify one user (queued by the lifecycle
        service when an order completes or a remittance is delivered)
    recompute_all_tiers: Reclassify every active customer, for example
        after TIER_THRESHOLDS changes

Usage:
    from tiers.tasks import recompute_all_tiers, recompute_user_tier

    recompute_user_tier.delay(user.id)
    recompute_all_tiers.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

from tiers.services import TierService

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = ("AUDIT_WRITE_FAILURE", "CONCURRENT_MODIFICATION")


@shared_task(
    bind=True,
    acks_late=True,
    max_retries=3,
)
def recompute_user_tier(self, user_id: int) -> dict:
    """
    Recompute a user's tier.

    Returns:
        Dict with changed, old_tier and new_tier, or the error code
    """
    result = TierService.recompute(user_id)
    if not result.success:
        logger.warning(
            f"Tier recompute for user {user_id} failed: {result.error}",
            extra={"user_id": user_id, "error_code": result.error_code},
        )
        if result.error_code in RETRYABLE_ERRORS:
            raise self.retry(countdown=60)
        return {"user_id": user_id, "error_code": result.error_code}

    change = result.data
    return {
        "user_id": user_id,
        "changed": change.changed,
        "old_tier": change.old_tier,
        "new_tier": change.new_tier,
    }


@shared_task(acks_late=True)
def recompute_all_tiers() -> dict:
    """
    Recompute every active customer's tier.

    Returns:
        Dict with total, processed and errors
    """
    summary = TierService.recompute_all().data
    if summary["errors"]:
        logger.warning(
            f"Bulk tier recompute: {len(summary['errors'])} of {summary['total']} users failed",
            extra={"failed_user_ids": [error["user_id"] for error in summary["errors"]]},
        )
    return summary
