"""
Error taxonomy for SQL execution.

- ValidationError: malformed input, raised before any I/O (subclass of ValueError).
- ConnectivityError: connection could not be established (network, auth, timeout).
- ExecutionError: the database rejected or failed the statement.
- PoolClosedError: a checkout from a disposed pool (connectivity kind).
- Cleanup failures (closing a connection) are only logged, with ErrorKind.CLEANUP.

ExecutionError values are built once, at the boundary between a dialect executor and
its caller, and are read-only afterwards. The driver error is kept in
``original_error`` and chained as ``__cause__``.
"""

import time
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    CONNECTIVITY = "connectivity"
    EXECUTION = "execution"
    CLEANUP = "cleanup"


class QueryPilotError(Exception):
    """Base class for all errors raised by querypilot."""

    kind: ErrorKind = ErrorKind.EXECUTION


class ValidationError(QueryPilotError, ValueError):
    kind = ErrorKind.VALIDATION


class UnsupportedDialectError(ValidationError):
    pass


class ExecutionError(QueryPilotError):
    kind = ErrorKind.EXECUTION
    _phase = "execution"

    def __init__(
        self,
        message: str,
        *,
        original_error: BaseException | None,
        execution_time: int,
        dialect: str,
        query: str | None = None,
    ) -> None:
        super().__init__(message)
        self._message = message
        self._original_error = original_error
        self._execution_time = execution_time
        self._dialect = dialect
        self._query = query

    @classmethod
    def from_driver(
        cls,
        error: BaseException,
        *,
        dialect: str,
        started: float,
        query: str | None = None,
    ) -> "ExecutionError":
        """Wrap a driver error with the dialect and the time elapsed since ``started``."""
        return cls(
            f"{dialect} {cls._phase} failed: {error}",
            original_error=error,
            execution_time=elapsed_ms(started),
            dialect=dialect,
            query=query,
        )

    @property
    def message(self) -> str:
        return self._message

    @property
    def original_error(self) -> BaseException | None:
        return self._original_error

    @property
    def execution_time(self) -> int:
        return self._execution_time

    @property
    def dialect(self) -> str:
        return self._dialect

    @property
    def query(self) -> str | None:
        return self._query

    def __reduce__(self) -> tuple[Any, ...]:
        fields = {
            "original_error": self._original_error,
            "execution_time": self._execution_time,
            "dialect": self._dialect,
            "query": self._query,
        }
        return _restore, (type(self), self._message, fields)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self._message,
            "dialect": self._dialect,
            "executionTime": self._execution_time,
        }


class ConnectivityError(ExecutionError):
    kind = ErrorKind.CONNECTIVITY
    _phase = "connection"


class PoolClosedError(ExecutionError):
    """The pool was disposed by its owner; nothing was sent to the database."""

    kind = ErrorKind.CONNECTIVITY
    _phase = "pool checkout"


def _restore(
    cls: type[ExecutionError], message: str, fields: dict[str, Any]
) -> ExecutionError:
    return cls(message, **fields)


def elapsed_ms(started: float) -> int:
    """Whole milliseconds since ``started`` (a ``time.monotonic()`` reading)."""
    return max(0, int((time.monotonic() - started) * 1000))
