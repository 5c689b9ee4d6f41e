"""
Engines: SQL execution against MySQL and PostgreSQL.
"""

from querypilot.engines.sql import (
    create_connection_pool,
    execute_sql,
    execute_with_pool,
    parse_query,
)

__all__ = [
    "execute_sql",
    "create_connection_pool",
    "execute_with_pool",
    "parse_query",
]
