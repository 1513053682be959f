"""
Database Helper Utilities for Concurrency Control

Provides:
- Database dialect detection (PostgreSQL vs SQLite)
- Row-level locking helpers
- Get-or-create under a unique constraint
- Translation of store failures into StoreUnavailable
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple, Type, TypeVar

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from ..errors import StoreUnavailable

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Raised by the driver or the pool when a store is down, slow or out of connections
STORE_FAILURES = (OperationalError, InterfaceError, PoolTimeoutError)


def is_postgres(db: Session) -> bool:
    """Check if the database is PostgreSQL"""
    try:
        dialect = db.bind.dialect.name
        return dialect == 'postgresql'
    except Exception:
        return False


def is_sqlite(db: Session) -> bool:
    """Check if the database is SQLite"""
    try:
        dialect = db.bind.dialect.name
        return dialect == 'sqlite'
    except Exception:
        return True  # Default to SQLite for safety


@contextmanager
def store_errors(store: str) -> Iterator[None]:
    """
    Surface driver/pool failures of one store as StoreUnavailable.

    Lock waits and statements that exceed the store deadline arrive here as
    OperationalError as well. Nothing is retried.

    Example:
        with store_errors("registry"):
            person = db.query(RegistryPerson).get(person_id)
    """
    try:
        yield
    except STORE_FAILURES as e:
        logger.error(f"{store} store round-trip failed: {e.__class__.__name__}: {e}")
        raise StoreUnavailable(store) from e


def acquire_row_lock(db: Session, model: Type[T], filter_condition) -> Optional[T]:
    """
    Acquire a row-level lock on a database record.

    Args:
        db: Database session
        model: SQLAlchemy model class
        filter_condition: Filter to find the row

    Returns:
        The locked model instance, or None if not found

    Example:
        booking = acquire_row_lock(db, Booking, Booking.id == booking_id)
    """
    query = db.query(model).filter(filter_condition)

    # Only apply locking on PostgreSQL
    if is_postgres(db):
        query = query.with_for_update()

    return query.first()


def get_or_create_locked(
    db: Session,
    model: Type[T],
    filter_condition,
    create_data: dict
) -> Tuple[T, bool]:
    """
    Return the row matching a unique key, locked, creating it if missing.

    Two transactions that both miss the row race on the unique constraint.
    On PostgreSQL the loser's insert is rolled back to a savepoint and it
    re-reads (and locks) the winner's row once that commits. On SQLite the
    insert is ON CONFLICT DO NOTHING, so the loser's transaction stays
    usable and it re-reads the winner's row.

    Returns:
        Tuple of (record, is_new)
    """
    existing = acquire_row_lock(db, model, filter_condition)
    if existing is not None:
        return existing, False

    if is_sqlite(db):
        # No savepoint here: pysqlite releases an outermost SAVEPOINT as a commit
        result = db.execute(
            sqlite_insert(model).values(**create_data).on_conflict_do_nothing()
        )
        created = result.rowcount == 1
        if not created:
            logger.info(f"Concurrent insert on {model.__name__}, re-reading the committed row")
        return acquire_row_lock(db, model, filter_condition), created

    try:
        with db.begin_nested():
            record = model(**create_data)
            db.add(record)
            db.flush()
        return record, True
    except IntegrityError:
        logger.info(f"Concurrent insert on {model.__name__}, re-reading the committed row")
        record = acquire_row_lock(db, model, filter_condition)
        if record is None:
            raise
        return record, False
