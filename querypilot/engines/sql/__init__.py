"""
SQL execution: single-connection facade, per-dialect executors, pool facade.

Exports: execute_sql, create_connection_pool, execute_with_pool, parse_query.
"""

from querypilot.engines.sql.executor import execute_sql
from querypilot.engines.sql.parser import Statement, parse_query
from querypilot.engines.sql.pooled import create_connection_pool, execute_with_pool

__all__ = [
    "execute_sql",
    "create_connection_pool",
    "execute_with_pool",
    "parse_query",
    "Statement",
]
