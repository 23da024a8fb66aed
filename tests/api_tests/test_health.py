"""
Tests for the health check endpoint and app wiring.
"""

from fastapi.testclient import TestClient

from clearing_ui.api.health import router
from clearing_ui.lambda_handler import handler
from clearing_ui.main import app as main_app
from fastapi import FastAPI

app = FastAPI()
app.include_router(router)
client = TestClient(app)


class TestHealthEndpoint:
    def test_health_returns_200(self):
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_returns_description(self):
        data = client.get("/health").json()

        assert data["description"] == "Service reachable."
        assert data["app"] == "Clearing UI"


class TestAppWiring:
    def test_routes_registered(self):
        paths = {route.path for route in main_app.routes}

        assert {
            "/health",
            "/authenticate",
            "/users/{user_id}",
            "/reuser",
            "/reuser/panel",
            "/reuser/panel/foot",
            "/reuser/osselot/{pkg}/{version}",
            "/reuser/osselot/cache",
        } <= paths

    def test_lambda_handler_wraps_app(self):
        assert handler.app is main_app


class TestLogging:
    def test_configure_logging_is_idempotent(self):
        from clearing_ui.core.log import configure_logging

        first = configure_logging()
        second = configure_logging()

        assert first == second
        assert first.endswith("app.log")
