"""
SQL execution endpoints: dialects, execute, test-connection.

Errors from the execution layer are turned into JSON by the exception handlers in
querypilot.main (400 validation/execution, 502 connectivity).
"""

import logging
from typing import Any

from fastapi import APIRouter

from querypilot.core.config import settings
from querypilot.core.db import check_connection, resolve_dialect, validate_connection
from querypilot.engines.sql import execute_sql, execute_with_pool
from querypilot.engines.sql.executor import coerce_options
from querypilot.engines.sql.pooled import get_default_pool
from querypilot.errors import ValidationError
from querypilot.models import Dialect, ResultEnvelope
from querypilot.schemas import ConnectionTestIn, ConnectionTestResult, ExecuteSQLIn

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/sql", tags=["sql"])


@router.get("/dialects", response_model=list[str])
def get_dialects() -> Any:
    """List supported dialects (mysql, postgresql)."""
    return [d.value for d in Dialect]


@router.post("/execute", response_model=ResultEnvelope)
def execute(body: ExecuteSQLIn) -> Any:
    """
    Run one SQL statement and return the result envelope.

    Uses ``connection`` from the body when given; otherwise the default connection for
    the dialect from settings. With DB_USE_POOL set, a request without ``options`` runs
    on the default pool; one with ``options`` opens its own connection so that the
    timeout and SSL settings apply.
    """
    query: Any = body.query if body.params is None else [body.query, body.params]

    if body.connection is not None:
        return execute_sql(body.dialect, body.connection, query, body.options)

    dialect = resolve_dialect(body.dialect)
    if settings.DB_USE_POOL and body.options is None:
        pool = get_default_pool(dialect)
        if pool is not None:
            return execute_with_pool(pool, dialect, query)

    connection = settings.default_connection(dialect.value)
    if connection is None:
        raise ValidationError(
            f"No connection given and no default {dialect.label} connection configured"
        )
    return execute_sql(dialect, connection, query, body.options)


@router.post("/test-connection", response_model=ConnectionTestResult)
def test_connection(body: ConnectionTestIn) -> Any:
    """Connect, run SELECT 1, close."""
    dialect = resolve_dialect(body.dialect)
    validate_connection(body.connection, dialect)
    ok, message = check_connection(body.connection, dialect, coerce_options(body.options))
    return ConnectionTestResult(success=ok, message=message)
