# Overview: Unit-of-work helpers for order, payment and category mutations.

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on the target row (order, inventory, category).
    SQLite ignores the clause; the version_id columns still catch conflicts.
    """
    return query.with_for_update()


def run_with_retry(op: Callable[[], T], *, attempts: int = 3, backoff_base: float = 0.1) -> T:
    """
    Run op as one all-or-nothing unit of work.

    op validates, mutates and commits. Lock timeouts and version conflicts
    are retried from scratch with exponential backoff; any other exception
    rolls the session back and propagates, so a rejected transition never
    leaves pending changes behind.
    """
    for attempt in range(1, attempts + 1):
        try:
            return op()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            logger.info("Retrying after %s (attempt %d/%d)", type(exc).__name__, attempt, attempts)
            time.sleep(backoff_base * (2 ** (attempt - 1)))
        except Exception:
            db.session.rollback()
            raise
    raise RuntimeError("run_with_retry needs at least one attempt")
