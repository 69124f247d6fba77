"""
Concurrency control utilities.

Every coordination point lives in the persistent store; nothing here keeps
state in process memory between requests.

1. **Optimistic Locking** (check_version, compare_and_swap, retry_on_stale)
   - Version-based conflict detection on a single row
   - Use for: ledger counter updates, lifecycle transitions

2. **Distributed Locks** (DistributedLock)
   - Redis-based mutual exclusion across processes/servers
   - TTL prevents deadlocks from crashed processes
   - Use for: periodic sweeps that must not overlap

Usage:

    from core.locks import compare_and_swap, retry_on_stale

    @retry_on_stale(max_retries=3)
    def bump(account_id):
        account = PaymentAccount.objects.get(pk=account_id)
        compare_and_swap(
            PaymentAccount,
            account_id,
            expected_version=account.version,
            current_daily_amount=account.current_daily_amount + 10,
        )

    with DistributedLock("allocation:reset-sweep", ttl=120, blocking=False):
        reset_expired_counters()
"""

from __future__ import annotations

import functools
import logging
import time
import uuid as uuid_module
from typing import TYPE_CHECKING, TypeVar

from django.db import models, transaction
from django.db.models import F
from django.utils import timezone

from django_redis import get_redis_connection

from core.exceptions import ConflictError, NotFoundError, StaleRecordError

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

    from redis import Redis

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=models.Model)


class LockAcquisitionError(ConflictError):
    """Raised when a distributed lock cannot be acquired."""

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


# =============================================================================
# Optimistic Locking
# =============================================================================


def check_version(
    model_class: type[T],
    pk: Any,
    expected_version: int,
) -> T:
    """
    Lock a record for update after verifying its version.

    Args:
        model_class: Django model class (must have 'version' field)
        pk: Primary key of the record
        expected_version: Version the caller read earlier

    Returns:
        The locked model instance

    Raises:
        StaleRecordError: If the version moved on since the caller read it
        NotFoundError: If the record doesn't exist

    Note:
        Call inside transaction.atomic(); the row lock is held until the
        outer transaction ends.
    """
    with transaction.atomic():
        instance = (
            model_class.objects.select_for_update()
            .filter(pk=pk, version=expected_version)
            .first()
        )
        if instance is not None:
            return instance

        model_name = model_class.__name__
        current = model_class.objects.filter(pk=pk).values_list("version", flat=True).first()
        if current is None:
            raise NotFoundError(
                f"{model_name} {pk} not found",
                error_code=f"{model_name.upper()}_NOT_FOUND",
                details={"pk": str(pk)},
            )
        raise StaleRecordError(
            f"{model_name} {pk} has been modified "
            f"(expected version {expected_version}, current {current})",
            details={
                "pk": str(pk),
                "expected_version": expected_version,
                "current_version": current,
            },
        )


def compare_and_swap(
    model_class: type[models.Model],
    pk: Any,
    expected_version: int,
    **changes: Any,
) -> int:
    """
    Apply ``changes`` only if the row is still at ``expected_version``.

    Issues a single ``UPDATE ... WHERE pk = %s AND version = %s`` that also
    bumps the version and ``updated_at``. The database serializes
    concurrent writers on the row, so exactly one of two racing callers
    with the same expected version wins.

    Returns:
        The new version number

    Raises:
        StaleRecordError: If no row matched (another writer got there first)
    """
    updated = model_class.objects.filter(pk=pk, version=expected_version).update(
        version=F("version") + 1,
        updated_at=timezone.now(),
        **changes,
    )
    if updated == 0:
        raise StaleRecordError(
            f"{model_class.__name__} {pk} changed during update",
            details={"pk": str(pk), "expected_version": expected_version},
        )
    return expected_version + 1


def retry_on_stale(max_retries: int = 3, backoff: float = 0.01) -> Callable:
    """
    Retry a read-modify-write function when it loses a version race.

    The wrapped function must re-read its rows on every call. After
    ``max_retries`` additional attempts the last StaleRecordError is
    re-raised for the caller to report.

    Args:
        max_retries: Retries after the first attempt
        backoff: Base sleep in seconds, multiplied by the attempt number
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except StaleRecordError as exc:
                    if attempt >= max_retries:
                        logger.warning(
                            f"Giving up on {func.__qualname__} after {attempt + 1} attempts",
                            extra={"details": exc.details},
                        )
                        raise
                    attempt += 1
                    logger.info(
                        f"Version conflict in {func.__qualname__}, retry {attempt}/{max_retries}",
                        extra={"details": exc.details},
                    )
                    if backoff:
                        time.sleep(backoff * attempt)

        return wrapper

    return decorator


# =============================================================================
# Distributed Locks
# =============================================================================


class DistributedLock:
    """
    Redis-based distributed lock with TTL.

    Token-based ownership stops one process from releasing a lock another
    process holds. The TTL releases locks left behind by crashed workers.

    Args:
        key: Lock identifier (will be prefixed with "lock:")
        ttl: Lock TTL in seconds
        blocking: If True, acquire() waits until the lock is available
        timeout: Maximum wait time in seconds (only if blocking=True)

    Example:
        try:
            with DistributedLock("allocation:reset-sweep", blocking=False):
                run_sweep()
        except LockAcquisitionError:
            logger.info("Sweep already running elsewhere")
    """

    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> bool:
        """
        Acquire the lock.

        Raises:
            LockAcquisitionError: If the lock is held elsewhere (non-blocking)
                or was not freed within ``timeout`` (blocking)
        """
        self._token = str(uuid_module.uuid4())
        redis = self._get_redis()

        if self.blocking:
            end_time = time.time() + self.timeout
            while time.time() < end_time:
                if self._try_acquire(redis):
                    return True
                time.sleep(0.05)

            raise LockAcquisitionError(
                f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                details={"key": self.key, "timeout": self.timeout},
            )

        if not self._try_acquire(redis):
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )
        return True

    def _try_acquire(self, redis: Redis) -> bool:
        return bool(redis.set(self.key, self._token, nx=True, ex=self.ttl))

    def release(self) -> bool:
        """Release the lock if we hold it. Safe to call more than once."""
        if self._token is None:
            return False

        result = self._get_redis().eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.release()
        return False


__all__ = [
    "DistributedLock",
    "LockAcquisitionError",
    "check_version",
    "compare_and_swap",
    "retry_on_stale",
]
