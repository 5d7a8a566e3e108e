"""
Transaction and lock-retry helpers shared by the ledger and the state machine.

Every engine operation is one short transaction. Datastore lock failures and
compare-and-swap misses surface as LockContention; run_with_retry retries the
whole operation a bounded number of times before giving up.
"""
import logging
import time
from contextlib import contextmanager
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from leave_engine.core.config import settings
from leave_engine.core.exceptions import LockContention

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Driver messages meaning "someone else holds the row/table", across SQLite and PostgreSQL
LOCK_ERROR_MARKERS = (
    "database is locked",
    "database table is locked",
    "could not obtain lock",
    "lock not available",
    "lock timeout",
    "deadlock detected",
    "could not serialize access",
)


def is_lock_error(exc: BaseException) -> bool:
    message = str(getattr(exc, "orig", exc)).lower()
    return any(marker in message for marker in LOCK_ERROR_MARKERS)


@contextmanager
def atomic(db: Session, entity_id: Optional[int] = None):
    """
    Commit on success, roll back on any error.

    Lock errors raised by the driver are converted to LockContention.
    """
    try:
        yield db
        db.commit()
    except OperationalError as exc:
        db.rollback()
        if is_lock_error(exc):
            raise LockContention(
                "The balance is being updated by another operation, retry the request",
                entity_id=entity_id,
            ) from exc
        raise
    except BaseException:
        db.rollback()
        raise


def run_with_retry(
    operation: Callable[[], T],
    entity_id: Optional[int] = None,
    attempts: Optional[int] = None,
    backoff_seconds: Optional[float] = None,
) -> T:
    """
    Run operation, retrying on LockContention.

    The operation must re-read everything it needs on each attempt; atomic()
    has already rolled the session back when LockContention reaches here.
    """
    attempts = attempts or settings.LOCK_RETRY_ATTEMPTS
    if backoff_seconds is None:
        backoff_seconds = settings.LOCK_RETRY_BACKOFF_SECONDS

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except LockContention:
            if attempt >= attempts:
                logger.warning(
                    "lock contention not resolved: entity_id=%s attempts=%s", entity_id, attempts
                )
                raise
            logger.warning(
                "lock contention, retrying: entity_id=%s attempt=%s/%s", entity_id, attempt, attempts
            )
            time.sleep(backoff_seconds * attempt)
    raise LockContention("Lock retry attempts exhausted", entity_id=entity_id)
