"""
Core value types for SQL execution: dialects, connection descriptors, options, results.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel
from sqlmodel import SQLModel

from querypilot.core.config import settings


class Dialect(str, Enum):
    """Supported database dialects (mysql, postgresql)."""

    MYSQL = "mysql"
    POSTGRES = "postgresql"

    @property
    def default_port(self) -> int:
        return _DEFAULT_PORTS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]


_DEFAULT_PORTS: dict[Dialect, int] = {
    Dialect.MYSQL: 3306,
    Dialect.POSTGRES: 5432,
}

_LABELS: dict[Dialect, str] = {
    Dialect.MYSQL: "MySQL",
    Dialect.POSTGRES: "PostgreSQL",
}

# Accepted input spellings (lower-cased) -> Dialect
DIALECT_ALIASES: dict[str, Dialect] = {
    "mysql": Dialect.MYSQL,
    "postgres": Dialect.POSTGRES,
    "postgresql": Dialect.POSTGRES,
}


class ConnectionDescriptor(SQLModel):
    """
    Parameters needed to open one database connection.

    Every field is optional at the type level so that the connection validator can
    report all missing ones at once instead of failing on the first.
    """

    host: str | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)


class ExecutionOptions(BaseModel):
    """Per-call options: timeout (connect + query) and relaxed-trust SSL."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    timeout_ms: int = Field(default_factory=lambda: settings.DB_TIMEOUT_MS, gt=0)
    ssl: bool = Field(default_factory=lambda: settings.DB_SSL)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


class PoolOptions(BaseModel):
    """Pool sizing and timeouts. ``idleTimeout`` / ``connectionTimeout`` accepted as aliases."""

    model_config = ConfigDict(populate_by_name=True)

    max: int = Field(default_factory=lambda: settings.DB_POOL_MAX, gt=0)
    idle_timeout_ms: int = Field(
        default_factory=lambda: settings.DB_POOL_IDLE_TIMEOUT_MS,
        gt=0,
        alias="idleTimeout",
    )
    connection_timeout_ms: int = Field(
        default_factory=lambda: settings.DB_POOL_CONNECTION_TIMEOUT_MS,
        gt=0,
        alias="connectionTimeout",
    )
    ssl: bool = Field(default_factory=lambda: settings.DB_SSL)


class ResultEnvelope(BaseModel):
    """
    Uniform result of every execution path, regardless of dialect.

    - data: list of row dicts; for a MySQL statement without a result set, the
      status header ``{"affected_rows": ..., "insert_id": ...}``.
    - fields: column descriptors in the engine-specific shape (None when no result set).
    - row_count: rows returned (MySQL) or the driver's native count (PostgreSQL).
    - execution_time: milliseconds since the caller started the operation.

    Binary cells (BLOB, BINARY, bytea) serialize to JSON as
    ``{"type": "Buffer", "data": [byte, ...]}``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    data: Any
    fields: list[dict[str, Any]] | None = None
    row_count: int | None = None
    execution_time: int
    dialect: str

    @field_serializer("data", when_used="json")
    def serialize_data(self, data: Any) -> Any:
        return _json_cells(data)


class QueryOutcome(NamedTuple):
    """Raw result of one statement before timing and dialect are attached."""

    data: Any
    fields: list[dict[str, Any]] | None
    row_count: int | None


def get_field(source: Any, key: str) -> Any:
    """Get attribute or mapping key from a dict or a Pydantic model."""
    if isinstance(source, Mapping):
        return source.get(key)
    return getattr(source, key, None)


def _json_cells(value: Any) -> Any:
    if isinstance(value, bytes | bytearray | memoryview):
        return {"type": "Buffer", "data": list(bytes(value))}
    if isinstance(value, Mapping):
        return {k: _json_cells(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_json_cells(v) for v in value]
    return value
