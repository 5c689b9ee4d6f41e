"""Unit tests for engines.sql.pooled (pool facade)."""

import logging
from unittest.mock import MagicMock, patch

import pymysql
import pytest

from querypilot.core.db.pool import ConnectionPool
from querypilot.engines.sql import pooled
from querypilot.engines.sql.pooled import (
    create_connection_pool,
    dispose_default_pools,
    execute_with_pool,
    get_default_pool,
)
from querypilot.errors import (
    ConnectivityError,
    ExecutionError,
    PoolClosedError,
    UnsupportedDialectError,
    ValidationError,
)
from querypilot.models import Dialect
from tests.utils.fake_driver import FakeDriver


@patch("querypilot.engines.sql.pooled.ConnectionPool")
def test_invalid_descriptor_creates_no_pool(mock_pool_cls: MagicMock) -> None:
    with pytest.raises(ValidationError, match="host"):
        create_connection_pool("mysql", {"user": "app", "database": "shop"})
    mock_pool_cls.assert_not_called()


@patch("querypilot.engines.sql.pooled.ConnectionPool")
def test_unsupported_dialect_creates_no_pool(
    mock_pool_cls: MagicMock, mysql_connection: dict
) -> None:
    with pytest.raises(UnsupportedDialectError):
        create_connection_pool("mssql", mysql_connection)
    mock_pool_cls.assert_not_called()


def test_invalid_pool_options(mysql_connection: dict) -> None:
    with pytest.raises(ValidationError, match="Invalid pool options"):
        create_connection_pool("mysql", mysql_connection, {"max": 0})


def test_create_pool_with_aliased_options(
    pg_driver: FakeDriver, pg_connection: dict
) -> None:
    pool = create_connection_pool(
        "postgres",
        pg_connection,
        {"max": 4, "idleTimeout": 5000, "connectionTimeout": 3000},
    )
    assert pool.dialect is Dialect.POSTGRES
    assert pool.options.max == 4
    assert pool.options.idle_timeout_ms == 5000
    assert pool.options.connection_timeout_ms == 3000
    assert pg_driver.attempts == []


def test_execute_with_pool_success(mysql_driver: FakeDriver, mysql_connection: dict) -> None:
    mysql_driver.columns = ["id"]
    mysql_driver.rows = [(1,), (2,)]
    pool = create_connection_pool("mysql", mysql_connection, {"max": 2})

    first = execute_with_pool(pool, "mysql", "SELECT id FROM t")
    second = execute_with_pool(pool, "MYSQL", ["SELECT id FROM t WHERE id > %s", [0]])

    assert first.data == [{"id": 1}, {"id": 2}]
    assert first.row_count == 2
    assert first.dialect == "mysql"
    assert second.row_count == 2
    # one connection, reused and never closed by the facade
    assert len(mysql_driver.connections) == 1
    assert mysql_driver.last_connection.close_calls == 0
    assert mysql_driver.last_connection.executed[1] == (
        "SELECT id FROM t WHERE id > %s",
        [0],
    )
    assert pool.stats() == {"max": 2, "in_use": 0, "idle": 1}


def test_execute_with_pool_dialect_mismatch(pg_connection: dict) -> None:
    pool = create_connection_pool("postgres", pg_connection)
    with pytest.raises(ValidationError, match="does not match pool dialect"):
        execute_with_pool(pool, "mysql", "SELECT 1")


def test_execute_with_pool_requires_pool() -> None:
    with pytest.raises(ValidationError, match="ConnectionPool is required"):
        execute_with_pool(None, "mysql", "SELECT 1")  # type: ignore[arg-type]


def test_execute_with_pool_validates_query(pg_connection: dict) -> None:
    pool = create_connection_pool("postgres", pg_connection)
    with pytest.raises(ValidationError, match="Valid SQL query is required"):
        execute_with_pool(pool, "postgres", "  ")


def test_execute_with_pool_connect_failure(
    mysql_driver: FakeDriver, mysql_connection: dict
) -> None:
    driver_error = pymysql.err.OperationalError(2003, "Can't connect")
    mysql_driver.connect_error = driver_error
    pool = create_connection_pool("mysql", mysql_connection, {"max": 1})

    with pytest.raises(ConnectivityError) as exc_info:
        execute_with_pool(pool, "mysql", "SELECT 1")

    assert exc_info.value.original_error is driver_error
    assert pool.stats()["in_use"] == 0


def test_execute_with_pool_acquire_timeout(mysql_driver: FakeDriver, mysql_connection: dict) -> None:
    pool = create_connection_pool(
        "mysql", mysql_connection, {"max": 1, "connectionTimeout": 50}
    )
    pool.acquire()

    with pytest.raises(ConnectivityError) as exc_info:
        execute_with_pool(pool, "mysql", "SELECT 1")
    assert isinstance(exc_info.value.original_error, TimeoutError)


def test_execute_with_pool_statement_error_releases(
    pg_driver: FakeDriver, pg_connection: dict
) -> None:
    pg_driver.execute_error = RuntimeError("relation does not exist")
    pool = create_connection_pool("postgres", pg_connection, {"max": 1})
    logger = MagicMock(spec=logging.Logger)

    with pytest.raises(ExecutionError) as exc_info:
        execute_with_pool(pool, "postgres", "SELECT * FROM nope", logger=logger)

    assert not isinstance(exc_info.value, ConnectivityError)
    assert exc_info.value.dialect == "postgresql"
    assert logger.error.called
    assert pool.stats() == {"max": 1, "in_use": 0, "idle": 1}
    assert pg_driver.last_connection.rollback_calls == 1


def test_execute_with_pool_after_dispose(pg_connection: dict) -> None:
    pool = create_connection_pool("postgres", pg_connection)
    pool.dispose()
    with pytest.raises(PoolClosedError) as exc_info:
        execute_with_pool(pool, "postgres", "SELECT 1")

    err = exc_info.value
    assert err.dialect == "postgresql"
    assert err.execution_time >= 0
    assert err.query == "SELECT 1"
    assert err.to_dict()["kind"] == "connectivity"
    assert isinstance(err.original_error, PoolClosedError)
    assert err.__cause__ is err.original_error
    assert err.message == (
        "postgresql pool checkout failed: PostgreSQL pool has been disposed"
    )


# --- default pools ---


@pytest.fixture
def clean_default_pools():
    dispose_default_pools()
    yield
    dispose_default_pools()


@patch("querypilot.engines.sql.pooled.settings")
def test_get_default_pool_not_configured(
    mock_settings: MagicMock, clean_default_pools: None
) -> None:
    mock_settings.default_connection.return_value = None
    assert get_default_pool(Dialect.MYSQL) is None


@patch("querypilot.engines.sql.pooled.settings")
def test_get_default_pool_is_shared(
    mock_settings: MagicMock, clean_default_pools: None, mysql_connection: dict
) -> None:
    mock_settings.default_connection.return_value = mysql_connection

    pool = get_default_pool(Dialect.MYSQL)

    assert isinstance(pool, ConnectionPool)
    assert get_default_pool(Dialect.MYSQL) is pool
    mock_settings.default_connection.assert_called_once_with("mysql")


@patch("querypilot.engines.sql.pooled.settings")
def test_dispose_default_pools(
    mock_settings: MagicMock, clean_default_pools: None, pg_connection: dict
) -> None:
    mock_settings.default_connection.return_value = pg_connection
    pool = get_default_pool(Dialect.POSTGRES)
    assert pool is not None

    dispose_default_pools()

    assert pool.closed is True
    assert pooled._default_pools == {}
    assert get_default_pool(Dialect.POSTGRES) is not pool
