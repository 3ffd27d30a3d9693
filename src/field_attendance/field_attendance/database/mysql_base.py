from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from mysql.connector import errorcode, errors

from ..core.exceptions import DatabaseError, DuplicateEntry, InvalidReference
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


def translate_integrity_error(exc: errors.IntegrityError) -> DatabaseError:
    """Map storage-level constraint violations onto typed domain errors."""

    if exc.errno == errorcode.ER_DUP_ENTRY:
        return DuplicateEntry("Duplicate entry. This record already exists.", detail=exc.msg)
    if exc.errno in (errorcode.ER_NO_REFERENCED_ROW_2, errorcode.ER_ROW_IS_REFERENCED_2):
        return InvalidReference("Referenced record does not exist.", detail=exc.msg)
    return DatabaseError("Database operation failed.", detail=exc.msg)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except errors.IntegrityError as exc:
        conn.rollback()
        logger.warning("Integrity error (errno=%s): %s", exc.errno, exc.msg)
        raise translate_integrity_error(exc) from exc
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


def dump_json(value: Optional[Dict[str, Any]]) -> str:
    return json.dumps(value or {}, default=str)


def load_json(value: Any) -> Dict[str, Any]:
    """Normalize MySQL JSON columns across connector implementations.

    mysql-connector can return JSON as str, bytes/bytearray or (rarely) an
    already-decoded dict.
    """

    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        if not value.strip():
            return {}
        decoded = json.loads(value)
        if not isinstance(decoded, dict):
            raise TypeError(f"Expected a JSON object, got {type(decoded)!r}")
        return decoded
    raise TypeError(f"Unsupported MySQL JSON value type: {type(value)!r}")


def optional_float(value: Any) -> Optional[float]:
    # DECIMAL columns arrive as decimal.Decimal.
    return float(value) if value is not None else None
