"""
Tests for the FastAPI application factory and the status API.
"""

import pytest
from fastapi.testclient import TestClient

from api.status_api import init_status_api
from core.server import create_base_app


@pytest.fixture
def client(app_context, fresh_registry, fresh_sync_manager, mock_module):
    fresh_registry.register(mock_module)
    app = create_base_app(app_context, fresh_registry)
    app.include_router(init_status_api(app_context, fresh_registry))
    return TestClient(app)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_security_headers(client):
    response = client.get("/health")

    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_status_lists_modules(client):
    body = client.get("/api/status").json()

    assert body["status"] == "stopped"
    assert body["environment"] == "development"
    assert body["modules_loaded"] == ["mock_module"]


def test_module_statuses(client):
    body = client.get("/api/modules").json()

    assert body["modules"]["mock_module"]["status"] == "active"


def test_sync_services_empty(client):
    assert client.get("/api/sync-services").json() == {"services": [], "failing": []}


def test_logs_are_limited(client, app_context):
    for i in range(5):
        app_context.log_event(f"event {i}")

    logs = client.get("/api/logs", params={"limit": 2}).json()["logs"]

    assert len(logs) == 2
    assert logs[-1].endswith("event 4")


def test_logs_limit_is_validated(client):
    assert client.get("/api/logs", params={"limit": 0}).status_code == 422


def test_health_reports_failing_modules(app_context, fresh_registry, mock_module_factory):
    broken = mock_module_factory("broken")
    broken.get_status = lambda: {"status": "error", "details": {}}
    fresh_registry.register(broken)
    app = create_base_app(app_context, fresh_registry)

    body = TestClient(app).get("/health").json()

    assert body["status"] == "degraded"
    assert body["failing_modules"] == ["broken"]


def test_unhandled_error_returns_json(app_context, fresh_registry):
    app = create_base_app(app_context, fresh_registry)

    @app.get("/explode")
    async def explode():
        raise RuntimeError("kaboom")

    response = TestClient(app, raise_server_exceptions=False).get("/explode")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
    assert any("/explode failed" in line for line in app_context.get_event_log())


def test_allowed_origins(app_context):
    from core.server import DEV_ORIGINS, allowed_origins

    assert allowed_origins(app_context) == ["https://test.example.com", *DEV_ORIGINS]
