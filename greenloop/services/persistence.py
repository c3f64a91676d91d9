"""
Transaction boundary shared by every mutating service call.

    with unit_of_work(db, "approve action log", action_log_id=7):
        ...stage rows, flush...

Commits on success. Any failure rolls the whole unit back: application
errors propagate unchanged, store errors are logged with the given context
and re-raised as PersistenceError.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from greenloop.core.errors import GreenLoopException, PersistenceError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session, operation: str, **context: Any) -> Iterator[Session]:
    try:
        yield db
        db.commit()
    except GreenLoopException:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to %s %s", operation, context)
        raise PersistenceError(operation) from exc
    except Exception:
        db.rollback()
        raise
