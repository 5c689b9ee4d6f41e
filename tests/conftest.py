from collections.abc import Generator
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from querypilot.main import app
from tests.utils.fake_driver import FakeDriver


@pytest.fixture(scope="module")
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def mysql_driver() -> Generator[FakeDriver, None, None]:
    """Fake pymysql: every pymysql.connect goes to this driver."""
    driver = FakeDriver()
    with patch("querypilot.core.db.connection.pymysql.connect", side_effect=driver.connect):
        yield driver


@pytest.fixture
def pg_driver() -> Generator[FakeDriver, None, None]:
    """Fake psycopg: every psycopg.connect goes to this driver."""
    driver = FakeDriver()
    with patch("querypilot.core.db.connection.psycopg.connect", side_effect=driver.connect):
        yield driver


@pytest.fixture
def mysql_connection() -> dict:
    return {"host": "db.local", "user": "app", "password": "secret", "database": "shop"}


@pytest.fixture
def pg_connection() -> dict:
    return {
        "host": "pg.local",
        "user": "postgres",
        "password": "secret",
        "database": "analytics",
    }
