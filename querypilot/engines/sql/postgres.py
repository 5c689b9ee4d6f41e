"""
PostgreSQL executor: same contract as the MySQL one, psycopg result shape.
"""

import logging
from typing import Any

import psycopg

from querypilot.core.db.connection import (
    close_cursor_quietly,
    closing_connection,
    connect_postgres,
    connection_params,
    cursor_to_dicts,
    execute,
    postgres_fields,
)
from querypilot.errors import ConnectivityError, ExecutionError, elapsed_ms
from querypilot.models import Dialect, ExecutionOptions, QueryOutcome, ResultEnvelope

from .parser import Statement

_log = logging.getLogger(__name__)


def run_query(conn: Any, statement: Statement) -> QueryOutcome:
    """
    Execute ``statement`` on an open psycopg connection.

    row_count is the driver's own count (rows returned or rows affected); psycopg
    reports -1 when it has none, which becomes None.
    """
    cur = execute(conn, statement.sql, statement.params)
    try:
        if cur.description:
            rows = cursor_to_dicts(cur)
            fields = postgres_fields(cur.description)
        else:
            rows, fields = [], []
        row_count = cur.rowcount
        if row_count is None or row_count < 0:
            row_count = None
        return QueryOutcome(data=rows, fields=fields, row_count=row_count)
    finally:
        close_cursor_quietly(cur)


def execute_postgres(
    connection: Any,
    statement: Statement,
    options: ExecutionOptions,
    started: float,
    *,
    logger: logging.Logger | None = None,
) -> ResultEnvelope:
    """Open a PostgreSQL connection, run one statement, close the connection."""
    log = logger or _log
    dialect = Dialect.POSTGRES
    try:
        conn = connect_postgres(connection, options)
    except Exception as e:
        raise ConnectivityError.from_driver(
            e, dialect=dialect.value, started=started, query=statement.sql
        ) from e

    params = connection_params(connection, dialect)
    log.info(
        "Connected to PostgreSQL: %s@%s:%s",
        params["database"],
        params["host"],
        params["port"],
    )

    with closing_connection(conn, dialect, logger=log):
        try:
            outcome = run_query(conn, statement)
        except psycopg.errors.QueryCanceled as e:
            log.warning("PostgreSQL statement timed out (statement_timeout): %s", e)
            raise ExecutionError.from_driver(
                e, dialect=dialect.value, started=started, query=statement.sql
            ) from e
        except Exception as e:
            sqlstate = getattr(e, "sqlstate", None) or "N/A"
            log.error("PostgreSQL statement failed (sqlstate=%s): %s", sqlstate, e)
            raise ExecutionError.from_driver(
                e, dialect=dialect.value, started=started, query=statement.sql
            ) from e

    execution_time = elapsed_ms(started)
    log.info(
        "PostgreSQL query executed in %dms, returned %d rows",
        execution_time,
        len(outcome.data),
    )
    return ResultEnvelope(
        data=outcome.data,
        fields=outcome.fields,
        row_count=outcome.row_count,
        execution_time=execution_time,
        dialect=dialect.value,
    )
