"""
Bounded connection pool for one dialect and one connection descriptor.

At most ``max`` connections are checked out at once; further callers block (in arrival
order, as far as the semaphore allows) for up to ``connection_timeout_ms``. Released
connections are rolled back and kept idle; idle connections older than
``idle_timeout_ms`` are closed on the next checkout. Connections are opened lazily, so
creating a pool does no I/O. The pool is owned by whoever created it and lives until
``dispose()``.
"""

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, NamedTuple

from querypilot.errors import PoolClosedError
from querypilot.models import Dialect, ExecutionOptions, PoolOptions

from .connection import close_quietly, connect

_log = logging.getLogger(__name__)


class _PoolEntry(NamedTuple):
    conn: Any
    last_used: float  # time.monotonic() when last returned to pool


class ConnectionPool:
    """Shared, reusable connections with a hard cap on concurrent checkouts."""

    def __init__(
        self,
        dialect: Dialect,
        connection: Any,
        options: PoolOptions | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._dialect = dialect
        self._connection = connection
        self._options = options or PoolOptions()
        self._connect_options = ExecutionOptions(
            timeout_ms=self._options.connection_timeout_ms,
            ssl=self._options.ssl,
        )
        self._log = logger or _log
        self._idle: list[_PoolEntry] = []
        self._in_use = 0
        self._closed = False
        self._lock = threading.Lock()
        self._slots = threading.BoundedSemaphore(self._options.max)

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def options(self) -> PoolOptions:
        return self._options

    @property
    def closed(self) -> bool:
        return self._closed

    def acquire(self) -> Any:
        """
        Check out a connection: an idle one if available, else a new one.

        Raises PoolClosedError after dispose(), TimeoutError when no slot frees up within
        connection_timeout_ms, or the driver's error when a new connection fails.
        """
        self._ensure_open()
        wait_sec = self._options.connection_timeout_ms / 1000
        if not self._slots.acquire(timeout=wait_sec):
            raise TimeoutError(
                f"Timed out after {self._options.connection_timeout_ms}ms waiting "
                f"for a pooled {self._dialect.label} connection"
            )
        try:
            conn = self._checkout()
        except BaseException:
            self._slots.release()
            raise
        with self._lock:
            self._in_use += 1
        return conn

    def release(self, conn: Any, *, discard: bool = False) -> None:
        """Return a connection to the pool (or close it if discarded or the pool is closed)."""
        with self._lock:
            self._in_use = max(0, self._in_use - 1)
        try:
            if discard or self._closed:
                close_quietly(conn, self._dialect, logger=self._log)
                return
            try:
                conn.rollback()
            except Exception:
                close_quietly(conn, self._dialect, logger=self._log)
                return
            with self._lock:
                if not self._closed:
                    self._idle.append(_PoolEntry(conn=conn, last_used=time.monotonic()))
                    return
            close_quietly(conn, self._dialect, logger=self._log)
        finally:
            self._slots.release()

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Scoped checkout: the connection goes back to the pool on every exit path."""
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def dispose(self) -> None:
        """Close idle connections and refuse new checkouts. Checked-out ones close on release."""
        with self._lock:
            self._closed = True
            entries = self._idle
            self._idle = []
        for e in entries:
            close_quietly(e.conn, self._dialect, logger=self._log)
        self._log.info(
            "%s pool disposed (%d idle connections closed)",
            self._dialect.label,
            len(entries),
        )

    def stats(self) -> dict[str, int]:
        """Snapshot: configured max, checked-out count, idle count."""
        with self._lock:
            return {
                "max": self._options.max,
                "in_use": self._in_use,
                "idle": len(self._idle),
            }

    def __enter__(self) -> "ConnectionPool":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.dispose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise PoolClosedError(
                f"{self._dialect.label} pool has been disposed",
                original_error=None,
                execution_time=0,
                dialect=self._dialect.value,
            )

    def _checkout(self) -> Any:
        self._ensure_open()
        while True:
            entry = self._pop()
            if entry is None:
                break
            if self._is_idle_expired(entry):
                close_quietly(entry.conn, self._dialect, logger=self._log)
                continue
            return entry.conn
        self._log.debug(
            "Opening new pooled %s connection (%s)", self._dialect.label, self.stats()
        )
        return connect(self._connection, self._dialect, self._connect_options)

    def _pop(self) -> _PoolEntry | None:
        with self._lock:
            if self._idle:
                return self._idle.pop()
        return None

    def _is_idle_expired(self, entry: _PoolEntry) -> bool:
        idle_sec = time.monotonic() - entry.last_used
        return idle_sec > self._options.idle_timeout_ms / 1000
