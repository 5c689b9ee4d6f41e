"""Unit tests for core.db.health and core.health (readiness)."""

from unittest.mock import MagicMock, patch

import pymysql

from querypilot.core.db.health import check_connection, health_check
from querypilot.core.health import liveness_check, readiness_check
from querypilot.models import Dialect
from tests.utils.fake_driver import FakeDriver


def test_health_check_ok() -> None:
    driver = FakeDriver(columns=["?column?"], rows=[(1,)])
    conn = driver.connect()
    assert health_check(conn) is True
    assert conn.executed == [("SELECT 1", None)]
    assert conn.cursors[0].close_calls == 1


def test_health_check_failure() -> None:
    conn = MagicMock()
    conn.cursor.return_value.execute.side_effect = RuntimeError("gone")
    assert health_check(conn) is False


def test_check_connection_success(mysql_driver: FakeDriver, mysql_connection: dict) -> None:
    mysql_driver.columns = ["1"]
    mysql_driver.rows = [(1,)]
    assert check_connection(mysql_connection, Dialect.MYSQL) == (True, "Connection successful")
    assert mysql_driver.last_connection.close_calls == 1


def test_check_connection_connect_error(mysql_driver: FakeDriver, mysql_connection: dict) -> None:
    mysql_driver.connect_error = pymysql.err.OperationalError(1045, "Access denied")
    ok, message = check_connection(mysql_connection, Dialect.MYSQL)
    assert ok is False
    assert "Access denied" in message


def test_check_connection_select_fails(pg_driver: FakeDriver, pg_connection: dict) -> None:
    pg_driver.execute_error = RuntimeError("read-only standby")
    ok, message = check_connection(pg_connection, Dialect.POSTGRES)
    assert ok is False
    assert message == "Connected, but SELECT 1 failed"
    assert pg_driver.last_connection.close_calls == 1


def test_liveness_check() -> None:
    assert liveness_check() == (True, [])


@patch("querypilot.core.health.settings")
def test_readiness_no_defaults_configured(mock_settings: MagicMock) -> None:
    mock_settings.default_connection.return_value = None
    assert readiness_check() == (True, [])


@patch("querypilot.core.health.check_connection")
@patch("querypilot.core.health.settings")
def test_readiness_reports_failing_dialect(
    mock_settings: MagicMock, mock_check: MagicMock
) -> None:
    mock_settings.DB_SSL = False
    mock_settings.default_connection.side_effect = lambda d: (
        {"host": "pg.local", "user": "u", "database": "d"} if d == "postgresql" else None
    )
    mock_check.return_value = (False, "connection refused")

    assert readiness_check() == (False, ["postgresql"])
    args = mock_check.call_args.args
    assert args[1] is Dialect.POSTGRES
    assert args[2].timeout_ms == 5000
