"""
querypilot: run SQL produced from natural-language prompts against MySQL or PostgreSQL.
"""

from querypilot.core.db.pool import ConnectionPool
from querypilot.engines.sql import (
    create_connection_pool,
    execute_sql,
    execute_with_pool,
)
from querypilot.errors import (
    ConnectivityError,
    ExecutionError,
    PoolClosedError,
    QueryPilotError,
    UnsupportedDialectError,
    ValidationError,
)
from querypilot.models import (
    ConnectionDescriptor,
    Dialect,
    ExecutionOptions,
    PoolOptions,
    ResultEnvelope,
)

__all__ = [
    "execute_sql",
    "create_connection_pool",
    "execute_with_pool",
    "ConnectionPool",
    "ConnectionDescriptor",
    "Dialect",
    "ExecutionOptions",
    "PoolOptions",
    "ResultEnvelope",
    "QueryPilotError",
    "ValidationError",
    "UnsupportedDialectError",
    "ConnectivityError",
    "ExecutionError",
    "PoolClosedError",
]
