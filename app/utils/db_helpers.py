"""
Database Helper Utilities for Concurrency Control

Provides:
- Database dialect detection (PostgreSQL vs SQLite)
- Row-level locking helpers
- Transaction-scoped advisory locks for confirm/booking paths
"""

import hashlib
import logging
from typing import Optional, TypeVar, Type
from sqlalchemy.orm import Session
from sqlalchemy import text


logger = logging.getLogger(__name__)

T = TypeVar('T')


def is_postgres(db: Session) -> bool:
    """Check if the database is PostgreSQL"""
    try:
        dialect = db.bind.dialect.name
        return dialect == 'postgresql'
    except Exception:
        return False


def acquire_row_lock(
    db: Session,
    model: Type[T],
    filter_condition
) -> Optional[T]:
    """
    Acquire a row-level lock on a database record.

    Args:
        db: Database session
        model: SQLAlchemy model class
        filter_condition: Filter to find the row

    Returns:
        The locked model instance, or None if not found

    Example:
        reservation = acquire_row_lock(db, Reservation, Reservation.id == reservation_id)
    """
    query = db.query(model).filter(filter_condition)

    # SQLite serialises writers on its own
    if is_postgres(db):
        query = query.with_for_update()

    return query.first()


def advisory_lock_key(*parts) -> int:
    """
    Derive a signed 64-bit advisory lock key from arbitrary parts.

    Example:
        advisory_lock_key("experience", experience_id, "2025-03-01")
    """
    raw = ":".join(str(p) for p in parts).encode("utf-8")
    digest = hashlib.sha256(raw).digest()
    return int.from_bytes(digest[:8], "big", signed=True)


def acquire_advisory_xact_lock(db: Session, *parts) -> bool:
    """
    Take a transaction-scoped advisory lock keyed on the given parts.

    The lock is released automatically on commit or rollback. On SQLite
    the single-writer database lock already serialises writers, so this
    is a no-op there.

    Returns:
        True if a lock was taken
    """
    if not is_postgres(db):
        return False

    key = advisory_lock_key(*parts)
    db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": key})
    logger.debug(f"Advisory lock {key} taken for {parts}")
    return True
