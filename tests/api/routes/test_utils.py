"""Tests for /api/v1/utils routes (liveness, health-check)."""

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from querypilot.core.config import settings


def test_liveness(client: TestClient) -> None:
    r = client.get(f"{settings.API_V1_STR}/utils/liveness/")
    assert r.status_code == 200
    assert r.json() is True


@patch("querypilot.core.health.settings")
def test_health_check_returns_200_when_no_defaults(
    mock_settings: MagicMock, client: TestClient
) -> None:
    """GET /health-check/ returns 200 with true when no default databases are configured."""
    mock_settings.default_connection.return_value = None
    r = client.get(f"{settings.API_V1_STR}/utils/health-check/")
    assert r.status_code == 200
    assert r.json() is True


def test_health_check_returns_503_when_readiness_fails(client: TestClient) -> None:
    """GET /health-check/ returns 503 with envelope when readiness_check fails."""
    with patch(
        "querypilot.api.routes.utils.readiness_check",
        return_value=(False, ["postgresql"]),
    ):
        r = client.get(f"{settings.API_V1_STR}/utils/health-check/")
    assert r.status_code == 503
    data = r.json()
    assert data.get("success") is False
    assert "postgresql" in data["data"]
