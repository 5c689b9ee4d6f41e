"""
Request/response schemas for the HTTP API.
"""

from typing import Any

from sqlmodel import Field, SQLModel

from querypilot.models import ConnectionDescriptor


class ExecuteSQLIn(SQLModel):
    """Body for POST /sql/execute. Without ``connection`` the env default is used."""

    dialect: str
    connection: ConnectionDescriptor | None = None
    query: str
    params: list[Any] | dict[str, Any] | None = Field(
        default=None,
        description="Bind values for driver placeholders (%s or %(name)s).",
    )
    options: dict[str, Any] | None = Field(
        default=None, description="timeoutMs (int), ssl (bool)."
    )


class ConnectionTestIn(SQLModel):
    """Body for POST /sql/test-connection."""

    dialect: str
    connection: ConnectionDescriptor
    options: dict[str, Any] | None = None


class ConnectionTestResult(SQLModel):
    success: bool
    message: str


class ErrorOut(SQLModel):
    """Standard error envelope { success: false, message, data }."""

    success: bool = False
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
