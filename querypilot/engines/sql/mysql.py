"""
MySQL executor: one connection, one statement, always closed.
"""

import logging
from typing import Any

import pymysql

from querypilot.core.db.connection import (
    close_cursor_quietly,
    closing_connection,
    connect_mysql,
    connection_params,
    cursor_to_dicts,
    execute,
    mysql_fields,
)
from querypilot.errors import ConnectivityError, ExecutionError, elapsed_ms
from querypilot.models import Dialect, ExecutionOptions, QueryOutcome, ResultEnvelope

from .parser import Statement

_log = logging.getLogger(__name__)


def run_query(conn: Any, statement: Statement) -> QueryOutcome:
    """
    Execute ``statement`` on an open pymysql connection.

    Statements with a result set give row dicts and ``row_count = len(rows)``; others
    (INSERT/UPDATE/DDL) give the status header and ``row_count = None``.
    """
    cur = execute(conn, statement.sql, statement.params)
    try:
        if not cur.description:
            header = {"affected_rows": cur.rowcount, "insert_id": cur.lastrowid}
            return QueryOutcome(data=header, fields=None, row_count=None)
        fields = mysql_fields(cur.description)
        rows = cursor_to_dicts(cur)
        return QueryOutcome(
            data=rows,
            fields=fields,
            row_count=len(rows),
        )
    finally:
        close_cursor_quietly(cur)


def execute_mysql(
    connection: Any,
    statement: Statement,
    options: ExecutionOptions,
    started: float,
    *,
    logger: logging.Logger | None = None,
) -> ResultEnvelope:
    """
    Open a MySQL connection, run one statement, close the connection.

    ``started`` is the caller's ``time.monotonic()`` reading, so execution_time covers
    connection setup. Raises ConnectivityError (connect failed) or ExecutionError
    (statement failed); the connection is closed before either propagates.
    """
    log = logger or _log
    dialect = Dialect.MYSQL
    try:
        conn = connect_mysql(connection, options)
    except Exception as e:
        raise ConnectivityError.from_driver(
            e, dialect=dialect.value, started=started, query=statement.sql
        ) from e

    params = connection_params(connection, dialect)
    log.info(
        "Connected to MySQL: %s@%s:%s",
        params["database"],
        params["host"],
        params["port"],
    )

    with closing_connection(conn, dialect, logger=log):
        try:
            outcome = run_query(conn, statement)
        except Exception as e:
            code = e.args[0] if isinstance(e, pymysql.MySQLError) and e.args else "N/A"
            log.error("MySQL statement failed (code=%s): %s", code, e)
            raise ExecutionError.from_driver(
                e, dialect=dialect.value, started=started, query=statement.sql
            ) from e

    execution_time = elapsed_ms(started)
    log.info(
        "MySQL query executed in %dms, returned %s rows",
        execution_time,
        outcome.row_count if outcome.row_count is not None else "N/A",
    )
    return ResultEnvelope(
        data=outcome.data,
        fields=outcome.fields,
        row_count=outcome.row_count,
        execution_time=execution_time,
        dialect=dialect.value,
    )
