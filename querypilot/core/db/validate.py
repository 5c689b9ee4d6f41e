"""
Input checks that run before any network I/O: dialect resolution and connection fields.
"""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from querypilot.errors import UnsupportedDialectError, ValidationError
from querypilot.models import DIALECT_ALIASES, Dialect, get_field

_log = logging.getLogger(__name__)

REQUIRED_CONNECTION_FIELDS = ("host", "user", "database")


def resolve_dialect(dialect: Any) -> Dialect:
    """Map a dialect tag (case-insensitive; mysql, postgres, postgresql) to Dialect."""
    if isinstance(dialect, Dialect):
        return dialect
    if not dialect or not isinstance(dialect, str):
        raise ValidationError("Dialect is required and must be a string")
    resolved = DIALECT_ALIASES.get(dialect.strip().lower())
    if resolved is None:
        supported = ", ".join(DIALECT_ALIASES)
        raise UnsupportedDialectError(
            f"Unsupported dialect: {dialect}. Supported: {supported}"
        )
    return resolved


def ensure_connection_shape(connection: Any) -> None:
    """Connection must be a mapping or a model, never None or a scalar."""
    if connection is None or not isinstance(connection, Mapping | BaseModel):
        raise ValidationError(
            "Connection configuration is required and must be a mapping"
        )


def validate_connection(
    connection: Any,
    dialect: Dialect,
    *,
    logger: logging.Logger | None = None,
) -> None:
    """
    Check that host, user and database are present and non-empty.

    Raises ValidationError naming every missing field. A missing password is allowed
    (passwordless auth) but logged as a warning.
    """
    log = logger or _log
    ensure_connection_shape(connection)

    missing = [
        name for name in REQUIRED_CONNECTION_FIELDS if not get_field(connection, name)
    ]
    if missing:
        raise ValidationError(
            f"Missing required connection fields: {', '.join(missing)}"
        )

    port = get_field(connection, "port")
    if port is not None:
        try:
            port_num = int(port)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid port: {port!r}") from None
        if not 1 <= port_num <= 65535:
            raise ValidationError(f"Invalid port: {port!r}")

    if not get_field(connection, "password"):
        log.warning(
            "No password provided for %s connection to %s; ensure the server "
            "supports passwordless authentication",
            dialect.label,
            get_field(connection, "host"),
        )
