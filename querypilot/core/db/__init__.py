"""
DB connections for MySQL and PostgreSQL: validation, connect/close, health check, pool.

No driver layer: psycopg and pymysql are installed via pip; a connection descriptor
(host, port, user, password, database) and a Dialect are enough.
"""

from .connection import (
    close_quietly,
    closing_connection,
    connect,
    cursor_to_dicts,
    execute,
)
from .health import check_connection, health_check
from .pool import ConnectionPool
from .validate import resolve_dialect, validate_connection

__all__ = [
    "connect",
    "execute",
    "close_quietly",
    "closing_connection",
    "cursor_to_dicts",
    "health_check",
    "check_connection",
    "ConnectionPool",
    "resolve_dialect",
    "validate_connection",
]
