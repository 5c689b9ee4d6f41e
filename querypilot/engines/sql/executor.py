"""
Execution facade: validate input, pick the dialect executor, run one statement.

execute_sql(dialect, connection, query, options) -> ResultEnvelope

Supports:
- dialect: mysql, postgres, postgresql (case-insensitive)
- query: plain SQL string, or [sql_template, params] for bound parameters
- options: {timeout_ms | timeoutMs, ssl}

No retries: one attempt, one connection, one statement.
"""

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from querypilot.core.db.validate import (
    ensure_connection_shape,
    resolve_dialect,
    validate_connection,
)
from querypilot.errors import ExecutionError, ValidationError
from querypilot.models import Dialect, ExecutionOptions, ResultEnvelope

from .mysql import execute_mysql
from .parser import Statement, parse_query
from .postgres import execute_postgres

_log = logging.getLogger(__name__)

DialectExecutor = Callable[..., ResultEnvelope]

EXECUTORS: dict[Dialect, DialectExecutor] = {
    Dialect.MYSQL: execute_mysql,
    Dialect.POSTGRES: execute_postgres,
}


def get_executor(dialect: Dialect) -> DialectExecutor:
    """Single resolution point from Dialect to its executor."""
    try:
        return EXECUTORS[dialect]
    except KeyError:
        raise ValidationError(f"No executor registered for {dialect.value}") from None


def coerce_options(options: Any) -> ExecutionOptions:
    """None, a mapping (snake_case or camelCase keys) or ExecutionOptions."""
    if options is None:
        return ExecutionOptions()
    if isinstance(options, ExecutionOptions):
        return options
    if not isinstance(options, Mapping):
        raise ValidationError("Options must be a mapping")
    try:
        return ExecutionOptions.model_validate(dict(options))
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid execution options: {e}") from e


def execute_sql(
    dialect: Any,
    connection: Any,
    query: Any,
    options: Any = None,
    *,
    logger: logging.Logger | None = None,
) -> ResultEnvelope:
    """
    Run one query against MySQL or PostgreSQL and return a ResultEnvelope.

    Raises ValidationError (or UnsupportedDialectError) before any I/O for bad input;
    ConnectivityError / ExecutionError for driver failures, with execution_time measured
    from entry into this function.
    """
    started = time.monotonic()
    log = logger or _log

    resolved = resolve_dialect(dialect)
    ensure_connection_shape(connection)
    statement = parse_query(query, resolved)
    opts = coerce_options(options)
    validate_connection(connection, resolved, logger=log)

    executor = get_executor(resolved)
    return _run(executor, resolved, connection, statement, opts, started, log)


def _run(
    executor: DialectExecutor,
    dialect: Dialect,
    connection: Any,
    statement: Statement,
    options: ExecutionOptions,
    started: float,
    log: logging.Logger,
) -> ResultEnvelope:
    try:
        return executor(connection, statement, options, started, logger=log)
    except ExecutionError as e:
        log.error(
            "%s query execution failed after %dms: %s",
            dialect.label,
            e.execution_time,
            e.message,
        )
        raise
    except Exception as e:
        err = ExecutionError.from_driver(
            e, dialect=dialect.value, started=started, query=statement.sql
        )
        log.error(
            "%s query execution failed after %dms: %s",
            dialect.label,
            err.execution_time,
            err.message,
            exc_info=True,
        )
        raise err from e
