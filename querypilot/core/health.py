"""
Health-check helpers for liveness and readiness checks.

Liveness:  is the process alive and not deadlocked?  (cheap, no I/O)
Readiness: can it serve traffic?  (each configured default database answers SELECT 1)
"""

import logging

from querypilot.core.config import settings
from querypilot.core.db.health import check_connection
from querypilot.models import Dialect, ExecutionOptions

logger = logging.getLogger(__name__)

# Health checks should not hang for the full query timeout
_CHECK_TIMEOUT_MS = 5000


def check_default_database(dialect: Dialect) -> bool:
    """True if the env connection for ``dialect`` is unset or reachable."""
    connection = settings.default_connection(dialect.value)
    if connection is None:
        return True
    ok, message = check_connection(
        connection,
        dialect,
        ExecutionOptions(timeout_ms=_CHECK_TIMEOUT_MS, ssl=settings.DB_SSL),
    )
    if not ok:
        logger.warning(
            "Readiness: %s default database unavailable: %s", dialect.label, message
        )
    return ok


def liveness_check() -> tuple[bool, list[str]]:
    """Always healthy while the interpreter can answer. Same shape as readiness_check."""
    return (True, [])


def readiness_check() -> tuple[bool, list[str]]:
    """
    Ping every configured default database.
    Returns (ok, list of failing dialects).
    """
    failures = [d.value for d in Dialect if not check_default_database(d)]
    return (len(failures) == 0, failures)
