from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Optional

import mysql.connector

from ..common.datetime_utils import ensure_utc
from ..core.enums import ErrorReason
from ..core.exceptions import StorageError, ValidationError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

DUPLICATE_KEY_ERRNO = 1062
MISSING_PARENT_ERRNO = 1452


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """One connection, one transaction.

    Commits when the block finishes, rolls back on any exception.
    Connector errors surface as ``StorageError`` with the driver message,
    except unknown project/category references, which are validation errors.
    """
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        logger.error("database connection failed: %s", e)
        raise StorageError(str(e)) from e
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        conn.rollback()
        invalid = missing_reference_error(e)
        if invalid is not None:
            logger.warning("rejected write: %s", e)
            raise invalid from e
        logger.error("database operation failed: %s", e)
        raise StorageError(str(e)) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def is_duplicate_key(error: Exception) -> bool:
    return isinstance(error, mysql.connector.IntegrityError) and getattr(error, "errno", None) == DUPLICATE_KEY_ERRNO


def missing_reference_error(error: Exception) -> Optional[ValidationError]:
    """Map an unknown project/category foreign key to a validation error; None for anything else."""
    if not isinstance(error, mysql.connector.IntegrityError) or getattr(error, "errno", None) != MISSING_PARENT_ERRNO:
        return None
    message = str(error)
    if "project_id" in message:
        return ValidationError("Project not found", reason=ErrorReason.INVALID_PROJECT_ID)
    if "category_id" in message:
        return ValidationError("Category not found", reason=ErrorReason.INVALID_CATEGORY_ID)
    return None


def to_db_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """DATETIME columns hold naive UTC."""
    if value is None:
        return None
    return ensure_utc(value).replace(tzinfo=None)


def from_db_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return ensure_utc(value)


def normalize_mysql_time(value: Any) -> Optional[time]:
    """Normalize MySQL TIME values across connector implementations.

    mysql-connector can return TIME as:
    - datetime.time
    - datetime.timedelta
    - string (e.g. '08:30:00')
    """

    if value is None:
        return None

    if isinstance(value, time):
        return value

    if isinstance(value, timedelta):
        total_seconds = int(value.total_seconds()) % 86400
        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        seconds = total_seconds % 60
        return time(hour=hours, minute=minutes, second=seconds)

    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: {value!r}")
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2]) if len(parts) >= 3 and parts[2] else 0
        return time(hour=hours, minute=minutes, second=seconds)

    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")
