from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errors as mysql_errors

from ..core.exceptions import StoreTimeoutError, StoreUnavailableError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

# ER_LOCK_WAIT_TIMEOUT, ER_QUERY_TIMEOUT (MAX_EXECUTION_TIME exceeded)
_TIMEOUT_ERRNOS = {1205, 3024}


def _translate(exc: mysql.connector.Error, operation: Optional[str], entity_id: Optional[str]):
    if getattr(exc, "errno", None) in _TIMEOUT_ERRNOS:
        return StoreTimeoutError(f"Store call timed out: {exc.msg}", operation=operation, entity_id=entity_id)
    if isinstance(exc, (mysql_errors.InterfaceError, mysql_errors.OperationalError)):
        return StoreUnavailableError(f"Store unavailable: {exc.msg}", operation=operation, entity_id=entity_id)
    return None


@contextmanager
def db_cursor(
    conn_factory: DatabaseConnection,
    *,
    dictionary: bool = True,
    operation: Optional[str] = None,
    entity_id: Optional[str] = None,
):
    """One connection, one transaction: commit on success, rollback on error.

    Driver timeouts and connection failures surface as StoreTimeoutError /
    StoreUnavailableError; other driver errors propagate unchanged.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        translated = _translate(e, operation, entity_id) or StoreUnavailableError(
            f"Store unavailable: {e.msg}", operation=operation, entity_id=entity_id
        )
        raise translated from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        _safe_rollback(conn)
        translated = _translate(e, operation, entity_id)
        if translated is None:
            raise
        logger.warning("Store error during %s (%s): %s", operation or "query", translated.kind, e)
        raise translated from e
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        conn.close()


def _safe_rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error:
        # The connection is already broken; the server discards the transaction.
        logger.debug("Rollback failed on a broken connection", exc_info=True)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value)


def load_json(value: Any) -> Any:
    """JSON columns come back as str (or bytes) depending on the connector build."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value)
    return value
