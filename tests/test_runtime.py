import logging

from fastapi.testclient import TestClient

from frontdesk.config import settings
from frontdesk.logging_config import setup_logging
from frontdesk.main import create_app


def test_security_headers_are_present(client, monkeypatch):
    monkeypatch.setattr(settings, "SECURITY_HEADERS_ENABLED", True)
    response = client.get("/ping")
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert response.headers.get("X-Content-Type-Options") == "nosniff"
    assert response.headers.get("X-Frame-Options") == "DENY"
    assert response.headers.get("Referrer-Policy") == "no-referrer"


def test_security_headers_can_be_disabled(client, monkeypatch):
    monkeypatch.setattr(settings, "SECURITY_HEADERS_ENABLED", False)
    response = client.get("/ping")
    assert "X-Frame-Options" not in response.headers


def test_request_id_is_echoed_or_generated(client):
    echoed = client.get("/ping", headers={"X-Request-ID": "req-123"})
    assert echoed.headers["X-Request-ID"] == "req-123"
    generated = client.get("/ping")
    assert len(generated.headers["X-Request-ID"]) == 36


def test_validation_errors_return_400(client, login, property_id):
    login("agent")
    res = client.post("/api/reports", json={"property_id": property_id, "report_date": "not-a-date"})
    assert res.status_code == 400
    body = res.json()
    assert body["detail"] == "Invalid request data"
    fields = {tuple(err["loc"])[-1] for err in body["errors"]}
    assert {"report_date", "agent_name"} <= fields


def test_missing_resource_returns_404_detail(client, login):
    login("agent")
    res = client.get("/api/reports/does-not-exist")
    assert res.status_code == 404
    assert res.json() == {"detail": "Report not found"}


def test_unhandled_errors_become_500_with_request_id(monkeypatch):
    monkeypatch.setattr(settings, "SCHEDULER_ENABLED", False)
    app = create_app()

    @app.get("/boom")
    def boom():
        raise RuntimeError("kaboom")

    client = TestClient(app)
    res = client.get("/boom", headers={"X-Request-ID": "req-500"})
    assert res.status_code == 500
    assert res.json() == {"detail": "Internal Server Error"}
    assert res.headers["X-Request-ID"] == "req-500"


def test_setup_logging_follows_level_setting(monkeypatch):
    root = logging.getLogger()
    previous = root.level
    monkeypatch.setattr(settings, "LOG_LEVEL", "ERROR")
    monkeypatch.setattr(settings, "LOG_JSON", False)
    try:
        setup_logging(force=True)
        assert root.level == logging.ERROR
        assert logging.getLogger("sqlalchemy.engine").level == logging.ERROR

        monkeypatch.setattr(settings, "LOG_LEVEL", "CHATTY")
        setup_logging(force=True)
        assert root.level == logging.INFO
        assert logging.getLogger("apscheduler").level == logging.WARNING
    finally:
        monkeypatch.setattr(settings, "LOG_LEVEL", "INFO")
        monkeypatch.setattr(settings, "LOG_JSON", True)
        setup_logging(force=True)
        root.setLevel(previous)
