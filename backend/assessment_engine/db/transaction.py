"""Unit-of-work boundary for the engine's multi-record writes.

Every assignment step and every scoring step runs inside `unit_of_work(db)`:
commit on success, rollback on any exception, and storage exceptions are
translated into the engine's typed errors so callers can tell a retryable
write conflict from a permanent failure.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from assessment_engine.services.errors import (
    AssessmentEngineError,
    PersistenceError,
    TransactionConflictError,
)

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected, lock_not_available, unique_violation.
# The unique keys written inside a unit of work (progress ledger rows and
# entries, generated assessment ids) only collide when two writers race on the
# same first insert.
_CONFLICT_PGCODES = {"40001", "40P01", "55P03", "23505"}


def is_conflict(exc: BaseException) -> bool:
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, DBAPIError):
        orig = getattr(exc, "orig", None)
        pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        if pgcode in _CONFLICT_PGCODES:
            return True
        text = str(orig or "").lower()
        if "database is locked" in text or "unique constraint failed" in text:
            return True
    return False


def translate_error(exc: BaseException, *, label: str) -> AssessmentEngineError:
    if isinstance(exc, AssessmentEngineError):
        return exc
    if is_conflict(exc):
        return TransactionConflictError(
            f"Concurrent update while {label}; retry the request",
            details={"operation": label},
        )
    return PersistenceError(f"Storage failure while {label}: {exc}", details={"operation": label})


@contextmanager
def unit_of_work(db: Session, *, label: str = "writing") -> Iterator[Session]:
    try:
        yield db
        db.commit()
    except (SQLAlchemyError, AssessmentEngineError) as exc:
        db.rollback()
        err = translate_error(exc, label=label)
        logger.warning("Unit of work '%s' rolled back: %s (%s)", label, err.message, err.code)
        if err is exc:
            raise
        raise err from exc
    except Exception:
        db.rollback()
        logger.exception("Unit of work '%s' rolled back on unexpected error", label)
        raise
