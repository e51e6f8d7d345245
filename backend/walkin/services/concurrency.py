# Overview: Service-layer operations for concurrency; encapsulates transaction, locking and retry handling.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError, StoreUnavailable


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    SQLite callers get the same guarantee from begin_write_transaction().
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Take the database write lock before a read-check-write sequence.

    On SQLite this issues BEGIN IMMEDIATE so a concurrent writer cannot
    slip in between the check and the write. Other dialects rely on
    lock_for_update() and conditional UPDATEs instead.
    """
    if db.engine.dialect.name != "sqlite":
        return
    conn = db.session.connection()
    if not conn.connection.dbapi_connection.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB unit of work with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other exception rolls the session
    back and propagates unchanged, so a failed unit never commits partially.
    When retries run out the failure surfaces as StoreUnavailable.
    """
    if attempts is None:
        attempts = current_app.config.get("DB_RETRY_ATTEMPTS", 3)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.error("Store operation failed after %d attempts: %s", attempts, exc)
                raise StoreUnavailable() from exc
            current_app.logger.warning("Retrying store operation (attempt %d): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise


def commit_or_conflict(message: str) -> None:
    """
    Commit the current session; a unique-constraint violation becomes ConflictError.

    The storage constraint is the final authority on uniqueness; service
    pre-checks only exist to give a friendlier error first.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(message) from exc
