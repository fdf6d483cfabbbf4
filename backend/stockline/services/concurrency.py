# Overview: Transaction boundary helpers; row locking and retry on concurrency failures.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import LedgerError, StorageError
from ..extensions import db


# Deadlocks, lock timeouts, serialization failures and dropped connections
# surface as OperationalError; optimistic version conflicts as StaleDataError.
TRANSIENT_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Callers that must stay correct on SQLite pair the lock with a guarded
    UPDATE (see stock_service.debit_checked).
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute one ledger transaction with retry on concurrency-related failures.

    func runs the whole operation and commits. Any exception rolls the
    session back so no partial write survives. Business errors
    (LedgerError) propagate unchanged and are never retried; transient
    storage failures are retried with exponential backoff and, once
    attempts run out, re-raised as StorageError(transient=True). Other
    database errors (integrity violations) become StorageError(transient=False).
    """
    config = current_app.config
    if attempts is None:
        attempts = config.get("LEDGER_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = config.get("LEDGER_RETRY_BACKOFF", 0.1)
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return func()
        except LedgerError:
            db.session.rollback()
            raise
        except TRANSIENT_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.exception(
                    "Ledger transaction failed after %d attempts", attempts
                )
                raise StorageError(
                    f"transaction aborted after {attempts} attempts: {exc}",
                    transient=True,
                ) from exc
            current_app.logger.warning(
                "Transient storage failure (attempt %d/%d), retrying: %s",
                attempt + 1, attempts, exc,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(f"transaction rejected by store: {exc}", transient=False) from exc
        except Exception:
            db.session.rollback()
            raise
