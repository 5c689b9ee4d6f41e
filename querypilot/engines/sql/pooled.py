"""
Pool facade: create a long-lived ConnectionPool and run queries through it.

Same validation and ResultEnvelope contract as execute_sql, but connections come from
(and go back to) a caller-owned pool. The pool itself is never disposed here.
"""

import logging
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from querypilot.core.config import settings
from querypilot.core.db.pool import ConnectionPool
from querypilot.core.db.validate import resolve_dialect, validate_connection
from querypilot.errors import (
    ConnectivityError,
    ExecutionError,
    PoolClosedError,
    ValidationError,
    elapsed_ms,
)
from querypilot.models import (
    Dialect,
    PoolOptions,
    QueryOutcome,
    ResultEnvelope,
    get_field,
)

from . import mysql, postgres
from .parser import parse_query

_log = logging.getLogger(__name__)

QUERY_RUNNERS: dict[Dialect, Callable[[Any, Any], QueryOutcome]] = {
    Dialect.MYSQL: mysql.run_query,
    Dialect.POSTGRES: postgres.run_query,
}


def coerce_pool_options(pool_options: Any) -> PoolOptions:
    if pool_options is None:
        return PoolOptions()
    if isinstance(pool_options, PoolOptions):
        return pool_options
    if not isinstance(pool_options, Mapping):
        raise ValidationError("Pool options must be a mapping")
    try:
        return PoolOptions.model_validate(dict(pool_options))
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid pool options: {e}") from e


def create_connection_pool(
    dialect: Any,
    connection: Any,
    pool_options: Any = None,
    *,
    logger: logging.Logger | None = None,
) -> ConnectionPool:
    """
    Validate ``connection`` and build a pool for ``dialect``. No connection is opened yet.

    Raises ValidationError / UnsupportedDialectError; no pool is created on failure.
    """
    log = logger or _log
    resolved = resolve_dialect(dialect)
    validate_connection(connection, resolved, logger=log)
    opts = coerce_pool_options(pool_options)
    pool = ConnectionPool(resolved, connection, opts, logger=log)
    log.info(
        "Created %s pool for %s (max=%d, idle_timeout=%dms, connection_timeout=%dms)",
        resolved.label,
        _target(connection),
        opts.max,
        opts.idle_timeout_ms,
        opts.connection_timeout_ms,
    )
    return pool


def execute_with_pool(
    pool: ConnectionPool,
    dialect: Any,
    query: Any,
    *,
    logger: logging.Logger | None = None,
) -> ResultEnvelope:
    """
    Run one query on a pooled connection and return a ResultEnvelope.

    The connection is released back to ``pool`` on every exit path. Raises
    ValidationError for bad input or a dialect that does not match the pool,
    PoolClosedError for a disposed pool, ConnectivityError when no connection can be
    acquired, ExecutionError when the statement fails.
    """
    started = time.monotonic()
    log = logger or _log

    if not isinstance(pool, ConnectionPool):
        raise ValidationError("A ConnectionPool is required")
    resolved = resolve_dialect(dialect)
    if resolved != pool.dialect:
        raise ValidationError(
            f"Dialect {resolved.value} does not match pool dialect {pool.dialect.value}"
        )
    statement = parse_query(query, resolved)
    runner = QUERY_RUNNERS[resolved]

    try:
        conn = pool.acquire()
    except PoolClosedError as e:
        raise PoolClosedError.from_driver(
            e, dialect=resolved.value, started=started, query=statement.sql
        ) from e
    except Exception as e:
        err = ConnectivityError.from_driver(
            e, dialect=resolved.value, started=started, query=statement.sql
        )
        log.error(
            "Pool query failed (%s) after %dms: %s",
            resolved.value,
            err.execution_time,
            err.message,
        )
        raise err from e

    try:
        outcome = runner(conn, statement)
    except Exception as e:
        err = ExecutionError.from_driver(
            e, dialect=resolved.value, started=started, query=statement.sql
        )
        log.error(
            "Pool query failed (%s) after %dms: %s",
            resolved.value,
            err.execution_time,
            err.message,
        )
        raise err from e
    finally:
        pool.release(conn)

    execution_time = elapsed_ms(started)
    log.info("%s pool query executed in %dms", resolved.label, execution_time)
    return ResultEnvelope(
        data=outcome.data,
        fields=outcome.fields,
        row_count=outcome.row_count,
        execution_time=execution_time,
        dialect=resolved.value,
    )


def _target(connection: Any) -> str:
    return f"{get_field(connection, 'database')}@{get_field(connection, 'host')}"


# ---------------------------------------------------------------------------
# Default pools for the environment-configured connections (see Settings)
# ---------------------------------------------------------------------------

_default_pools: dict[Dialect, ConnectionPool] = {}
_default_pools_lock = threading.Lock()


def get_default_pool(dialect: Dialect) -> ConnectionPool | None:
    """Return the process-wide pool for ``dialect``'s env connection (None if not configured)."""
    pool = _default_pools.get(dialect)
    if pool is not None and not pool.closed:
        return pool
    connection = settings.default_connection(dialect.value)
    if connection is None:
        return None
    with _default_pools_lock:
        pool = _default_pools.get(dialect)
        if pool is None or pool.closed:
            pool = create_connection_pool(dialect, connection)
            _default_pools[dialect] = pool
    return pool


def dispose_default_pools() -> None:
    """Dispose every default pool (application shutdown)."""
    with _default_pools_lock:
        pools = list(_default_pools.values())
        _default_pools.clear()
    for pool in pools:
        pool.dispose()
