"""Persistence helpers shared by the mutation services."""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session

from errors import ConflictError, ValidationError

logger = logging.getLogger(__name__)

PG_UNIQUE_VIOLATION = "23505"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_unique_violation(error: IntegrityError) -> bool:
    orig = error.orig
    if getattr(orig, "pgcode", None) == PG_UNIQUE_VIOLATION:
        return True
    # SQLite reports unique violations only through the message
    return "UNIQUE constraint failed" in str(orig)


def commit_or_raise(db: Session, conflict_message: str, invalid_message: str) -> None:
    """Commit the session, mapping constraint failures to domain errors.

    Raises:
        ConflictError: On a unique constraint violation.
        ValidationError: On any other integrity or data format violation.
    """
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            logger.info(f"Unique constraint violation: {e.orig}")
            raise ConflictError(conflict_message)
        logger.info(f"Integrity violation: {e.orig}")
        raise ValidationError(invalid_message)
    except DataError as e:
        db.rollback()
        logger.info(f"Data format violation: {e.orig}")
        raise ValidationError(invalid_message)
