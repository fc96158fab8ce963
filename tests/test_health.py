# tests/test_health.py

from unittest.mock import patch

from fastapi.testclient import TestClient


def test_health_app(client: TestClient):
    response = client.get("/health/app")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@patch("routers.health.ping_supabase")
def test_health_db_reports_degraded_tables(mock_ping, client: TestClient):
    mock_ping.return_value = {
        "service": "Supabase",
        "status": "degraded",
        "tables": {"properties": {"status": "ok", "rows_found": 1}, "invoices": {"status": "error"}},
    }

    response = client.get("/health/db")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["details"]["tables"]["invoices"]["status"] == "error"


def test_health_db_without_supabase(client: TestClient):
    with patch("core.supabase_client.get_supabase_client", return_value=None):
        response = client.get("/health/db")

    assert response.json()["status"] == "not_configured"
