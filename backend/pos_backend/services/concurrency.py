# Overview: Transaction boundary, row locking and caller-side retry helpers.

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import PersistenceError


logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the version_id columns catch the conflict at flush instead.
    """
    return query.with_for_update()


@contextmanager
def unit_of_work(session):
    """
    One atomic unit against the store: commit on success, roll back on any
    error. Store errors are re-raised as PersistenceError.
    """
    try:
        yield session
        session.commit()
    except (OperationalError, StaleDataError) as exc:
        session.rollback()
        logger.warning("Rolled back on concurrent update: %s", exc)
        raise PersistenceError(
            "Concurrent update conflict; nothing was saved",
            details={"cause": exc.__class__.__name__},
            retryable=True,
        ) from exc
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Rolled back on constraint violation: %s", exc.orig)
        raise PersistenceError(
            "Constraint violation; nothing was saved",
            details={"cause": "IntegrityError", "message": str(exc.orig)},
        ) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning("Rolled back on store error: %s", exc)
        raise PersistenceError(
            "Store error; nothing was saved",
            details={"cause": exc.__class__.__name__},
        ) from exc
    except Exception:
        session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute an engine operation, retrying retryable PersistenceErrors.

    Meant for callers (routes, CLI); the engine itself never retries.
    """
    for attempt in range(attempts):
        try:
            return func()
        except PersistenceError as exc:
            if not exc.retryable or attempt >= attempts - 1:
                raise
            logger.info("Retrying after %s (attempt %d of %d)", exc.details.get("cause"), attempt + 1, attempts)
            time.sleep(backoff_base * (2 ** attempt))
