# Overview: Transaction helpers for the write paths; row locking, write-lock acquisition and bounded retry.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, UnavailableError
from ..extensions import db


# Driver messages that mean "someone else holds the row/table", not "the store is gone"
LOCK_ERROR_MARKERS = (
    "locked",
    "busy",
    "deadlock",
    "could not serialize",
    "lock wait timeout",
    "lock timeout",
)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() covers it there.
    """
    return query.with_for_update()


def begin_write() -> None:
    """
    Take the database write lock before the first read of a unit of work.

    SQLite only locks on the first write, which would let two transactions
    read the same stock and both decide it is sufficient. BEGIN IMMEDIATE
    makes the read-check-write sequence serial.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def _is_lock_conflict(exc: Exception) -> bool:
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return False
    message = str(getattr(exc, "orig", exc)).lower()
    return any(marker in message for marker in LOCK_ERROR_MARKERS)


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None, retry_on: tuple = ()):
    """
    Execute a DB unit of work with retry on concurrency-related failures.

    Any exception rolls the session back so nothing partial survives.
    OperationalError (locks, deadlocks, dropped connections), StaleDataError
    (optimistic version conflicts) and anything in retry_on are retried with
    exponential backoff. Once attempts are exhausted the failure is reported
    as ConflictError, or UnavailableError when the store itself is unreachable.
    """
    if attempts is None:
        attempts = current_app.config.get("TX_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("TX_RETRY_BACKOFF", 0.05)

    retryable = (OperationalError, StaleDataError) + tuple(retry_on)
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except retryable as exc:
            db.session.rollback()
            last_exc = exc
            if attempt < attempts - 1:
                time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise

    if isinstance(last_exc, OperationalError) and not _is_lock_conflict(last_exc):
        raise UnavailableError(
            "Database unavailable; please retry",
            details={"attempts": attempts},
        ) from last_exc
    raise ConflictError(
        "Concurrent update conflict; please retry",
        details={"attempts": attempts},
    ) from last_exc
