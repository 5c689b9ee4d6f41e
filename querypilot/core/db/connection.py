"""
DB connection helpers for MySQL (pymysql) and PostgreSQL (psycopg).

Opens one connection from a connection descriptor (dict or ConnectionDescriptor) and
ExecutionOptions, and closes it again on every exit path of a ``closing_connection``
scope. Cursor helpers turn DB-API results into row dicts and column descriptors.
"""

import logging
import math
import ssl
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg
import pymysql

from querypilot.errors import ErrorKind
from querypilot.models import Dialect, ExecutionOptions, get_field

_log = logging.getLogger(__name__)

MYSQL_FIELD_KEYS = (
    "name",
    "type_code",
    "display_size",
    "internal_size",
    "precision",
    "scale",
    "null_ok",
)


def connection_params(connection: Any, dialect: Dialect) -> dict[str, Any]:
    """host, port (dialect default when missing), user, password ("" when missing), database."""
    port = get_field(connection, "port")
    password = get_field(connection, "password")
    return {
        "host": get_field(connection, "host"),
        "port": int(port) if port else dialect.default_port,
        "user": get_field(connection, "user"),
        "password": password if password is not None else "",
        "database": get_field(connection, "database"),
    }


def relaxed_ssl_context() -> ssl.SSLContext:
    """TLS context that encrypts but does not verify the server certificate or hostname."""
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def connect_mysql(connection: Any, options: ExecutionOptions) -> Any:
    params = connection_params(connection, Dialect.MYSQL)
    if options.ssl:
        _log.warning(
            "SSL requested for MySQL %s:%s; server certificate will not be verified",
            params["host"],
            params["port"],
        )
    timeout = options.timeout_seconds
    return pymysql.connect(
        host=params["host"],
        port=params["port"],
        user=params["user"],
        password=params["password"],
        database=params["database"],
        connect_timeout=timeout,
        read_timeout=timeout,
        write_timeout=timeout,
        autocommit=True,
        # CLIENT.MULTI_STATEMENTS is never requested: one statement per call
        client_flag=0,
        ssl=relaxed_ssl_context() if options.ssl else None,
    )


def connect_postgres(connection: Any, options: ExecutionOptions) -> Any:
    params = connection_params(connection, Dialect.POSTGRES)
    if options.ssl:
        _log.warning(
            "SSL requested for PostgreSQL %s:%s; server certificate will not be verified",
            params["host"],
            params["port"],
        )
    return psycopg.connect(
        host=params["host"],
        port=params["port"],
        user=params["user"],
        password=params["password"],
        dbname=params["database"],
        # libpq takes whole seconds
        connect_timeout=max(1, math.ceil(options.timeout_seconds)),
        options=f"-c statement_timeout={options.timeout_ms}",
        sslmode="require" if options.ssl else "disable",
        autocommit=True,
    )


_CONNECTORS = {
    Dialect.MYSQL: connect_mysql,
    Dialect.POSTGRES: connect_postgres,
}


def connect(connection: Any, dialect: Dialect, options: ExecutionOptions) -> Any:
    """Open a connection for ``dialect``. Driver errors propagate unchanged."""
    return _CONNECTORS[dialect](connection, options)


def close_quietly(
    conn: Any,
    dialect: Dialect,
    *,
    logger: logging.Logger | None = None,
) -> None:
    """Close ``conn``; a failure is logged as a cleanup warning and never raised."""
    log = logger or _log
    try:
        conn.close()
        log.debug("%s connection closed", dialect.label)
    except Exception as e:
        log.warning(
            "Error closing %s connection: %s",
            dialect.label,
            e,
            extra={"error_kind": ErrorKind.CLEANUP.value},
        )


@contextmanager
def closing_connection(
    conn: Any,
    dialect: Dialect,
    *,
    logger: logging.Logger | None = None,
) -> Iterator[Any]:
    """Scope that yields ``conn`` and closes it exactly once on exit, however the body ends."""
    try:
        yield conn
    finally:
        close_quietly(conn, dialect, logger=logger)


def execute(conn: Any, sql: str, params: Any = None) -> Any:
    """
    Execute one statement and return the cursor.

    ``params`` is passed to the driver separately from ``sql`` (never interpolated here).
    """
    cur = conn.cursor()
    try:
        if params is not None:
            cur.execute(sql, params)
        else:
            cur.execute(sql)
    except Exception:
        close_cursor_quietly(cur)
        raise
    return cur


def close_cursor_quietly(cur: Any) -> None:
    try:
        cur.close()
    except Exception as e:
        _log.debug("Error closing cursor: %s", e)


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Fetch all remaining rows as ``{column: value}`` dicts (pymysql and psycopg cursors)."""
    if not cursor.description:
        return []
    names = [col[0] for col in cursor.description]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]


def mysql_fields(description: Any) -> list[dict[str, Any]]:
    """pymysql column descriptors as dicts (the 7 DB-API items)."""
    return [dict(zip(MYSQL_FIELD_KEYS, col)) for col in description]


def postgres_fields(description: Any) -> list[dict[str, Any]]:
    """psycopg column descriptors as dicts, keyed like a PostgreSQL RowDescription."""
    return [
        {
            "name": col[0],
            "data_type_id": col[1],
            "data_type_size": col[3],
            "precision": col[4],
            "scale": col[5],
        }
        for col in description
    ]
