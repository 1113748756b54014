from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.constants import IST
from ..core.exceptions import ConflictError, StoreError
from .connection import DatabaseConnection

# Deadlocks, lock wait timeouts and unique-key races are resolved by re-running the unit of work.
RETRYABLE_ERRNOS = frozenset({errorcode.ER_LOCK_DEADLOCK, errorcode.ER_LOCK_WAIT_TIMEOUT, errorcode.ER_DUP_ENTRY})


def translate_error(exc: mysql.connector.Error) -> StoreError:
    if exc.errno in RETRYABLE_ERRNOS:
        return ConflictError(f"MySQL conflict ({exc.errno}): {exc.msg}")
    return StoreError(f"MySQL error ({exc.errno}): {exc.msg}")


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True, isolation_level: Optional[str] = None):
    """Open a connection and cursor; commit on clean exit, roll back otherwise.

    Driver errors surface as ``ConflictError`` (retryable) or ``StoreError``.
    """
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        raise translate_error(exc) from exc
    try:
        if isolation_level:
            conn.start_transaction(isolation_level=isolation_level)
        cur = conn.cursor(dictionary=dictionary, buffered=True)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        conn.rollback()
        raise translate_error(exc) from exc
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


def to_db_datetime(value: datetime) -> datetime:
    """DATETIME columns hold naive wall-clock time at +05:30."""
    if value.tzinfo is not None:
        value = value.astimezone(IST)
    return value.replace(tzinfo=None)


def from_db_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        return value.replace(tzinfo=IST)
    return value.astimezone(IST)


def to_float(value: Any) -> float:
    """DECIMAL columns come back as ``Decimal``."""
    if value is None:
        return 0.0
    return float(value)
