# Overview: Retry helpers for short write transactions that contend on the same rows.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

# Driver messages that mean "another writer holds the row/table, try again".
_LOCK_MARKERS = (
    "database is locked",
    "database table is locked",
    "deadlock",
    "could not serialize",
    "lock wait timeout",
)


def is_retryable(exc: BaseException) -> bool:
    """
    StaleDataError is always an optimistic-locking conflict.
    OperationalError is only retried when it is a lock/serialization failure;
    other operational errors (missing table, bad connection string) propagate.
    """
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, OperationalError):
        message = str(exc.orig if exc.orig is not None else exc).lower()
        return any(marker in message for marker in _LOCK_MARKERS)
    return False


def run_with_retry(func, *, attempts: int = 5, backoff_base: float = 0.05):
    """
    Execute a DB unit of work with retry on concurrency-related failures.

    func must be safe to re-run from scratch: the session is rolled back
    before every retry. When attempts run out the last error is re-raised.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if not is_retryable(exc) or attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))

