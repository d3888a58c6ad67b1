from sqlalchemy.exc import OperationalError

from backoffice.db.database import Database


def test_health_endpoint(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {"status": "ok", "database": "connected"}
    assert body["meta"]["request_id"]


def test_health_reports_unreachable_database(client, monkeypatch):
    def broken_ping(self):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(Database, "ping", broken_ping)
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["data"] == {"status": "degraded", "database": "not connected"}


def test_server_status_endpoint(client):
    response = client.get("/api/v1/server-status")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["app_env"] == "test"
    assert data["currentTime"] >= data["serverStartTime"]
    assert data["uptime"] == data["currentTime"] - data["serverStartTime"]


def test_responses_carry_request_id_and_security_headers(client):
    response = client.get("/api/v1/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.json()["meta"]["request_id"] == "req-123"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Cache-Control"] == "no-store"


def test_oversized_body_is_rejected(client, auth_headers):
    response = client.post(
        "/api/v1/campaigns",
        content=b"x" * 2_000_001,
        headers={**auth_headers(), "Content-Type": "application/json"},
    )
    assert response.status_code == 413
    assert response.json()["code"] == "payload_too_large"
