"""
Connection health check and one-shot connection test.
"""

import logging
from typing import Any

from querypilot.models import Dialect, ExecutionOptions

from .connection import close_cursor_quietly, closing_connection, connect, execute

_log = logging.getLogger(__name__)


def health_check(conn: Any) -> bool:
    """
    Run SELECT 1 and return True if no exception. Postgres and MySQL both support SELECT 1.
    """
    cur = None
    try:
        cur = execute(conn, "SELECT 1")
        cur.fetchone()
        return True
    except Exception:
        return False
    finally:
        if cur is not None:
            close_cursor_quietly(cur)


def check_connection(
    connection: Any,
    dialect: Dialect,
    options: ExecutionOptions | None = None,
) -> tuple[bool, str]:
    """Connect, run SELECT 1, close. Returns (ok, message)."""
    try:
        conn = connect(connection, dialect, options or ExecutionOptions())
    except Exception as e:
        _log.info("%s connection test failed: %s", dialect.label, e)
        return False, str(e)
    with closing_connection(conn, dialect):
        if not health_check(conn):
            return False, "Connected, but SELECT 1 failed"
    return True, "Connection successful"
