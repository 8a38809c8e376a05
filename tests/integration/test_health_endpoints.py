"""
Tests for health check endpoints and application wiring.

This module tests:
- GET /health (liveness probe)
- GET /health/ready (readiness probe with database check)
- GET / (API information)
- Middleware applied by create_application()
"""

import pytest

from feedback_admin.core import probes


@pytest.mark.asyncio
class TestHealthEndpoints:

    async def test_liveness(self, make_client):
        async with make_client() as client:
            response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert "timestamp" in response.json()

    async def test_readiness_healthy(self, make_client):
        """The in-memory test database answers SELECT 1."""
        async with make_client() as client:
            response = await client.get("/health/ready")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "ready"
        assert body["checks"]["db"]["healthy"] is True
        assert body["checks"]["db"]["latency_ms"] >= 0

    async def test_readiness_unhealthy(self, make_client, monkeypatch):
        # Arrange
        async def failing_check(timeout_seconds: float = 2.0) -> bool:
            return False

        monkeypatch.setattr(probes, "check_database", failing_check)

        # Act
        async with make_client() as client:
            response = await client.get("/health/ready")

        # Assert
        body = response.json()
        assert response.status_code == 503
        assert body["status"] == "not_ready"
        assert body["checks"]["db"]["error"]


@pytest.mark.asyncio
class TestApplicationWiring:

    async def test_root(self, make_client):
        async with make_client() as client:
            response = await client.get("/")

        assert response.status_code == 200
        assert "version" in response.json()

    async def test_request_id_and_security_headers(self, make_client):
        async with make_client() as client:
            response = await client.get("/health", headers={"X-Request-ID": "probe-1"})

        assert response.headers["X-Request-ID"] == "probe-1"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    async def test_unknown_route_uses_error_envelope(self, make_client):
        async with make_client() as client:
            response = await client.get("/api/nope")

        assert response.status_code == 404
        assert response.json()["success"] is False

    async def test_cors_preflight_for_dashboard_origin(self, make_client, test_settings):
        origin = test_settings.client_url[0]

        async with make_client() as client:
            response = await client.options(
                "/api/auth/login",
                headers={
                    "Origin": origin,
                    "Access-Control-Request-Method": "POST",
                },
            )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == origin


@pytest.mark.asyncio
class TestLifespan:

    async def test_startup_uses_application_settings(self, test_settings, session_maker, monkeypatch):
        """Logging, table creation and seeding follow the settings the app was built with."""
        # Arrange
        from feedback_admin import main
        from feedback_admin.repositories.admin import AdminRepository

        calls = {}

        def record_logging(level, json_format):
            calls["logging"] = (level, json_format)

        async def record_init_db(create_all=None):
            calls["create_all"] = create_all

        async def record_close_db():
            calls["closed"] = True

        monkeypatch.setattr(main, "setup_logging", record_logging)
        monkeypatch.setattr(main, "init_db", record_init_db)
        monkeypatch.setattr(main, "close_db", record_close_db)
        monkeypatch.setattr(main, "async_session_maker", session_maker)

        app_settings = test_settings.model_copy(update={
            "admin_email": "custom-seed@x.com",
            "log_level": "DEBUG",
            "log_json": True,
            "database_create_all": False,
        })
        app = main.create_application(app_settings)

        # Act
        async with app.router.lifespan_context(app):
            pass

        # Assert
        assert calls == {"logging": ("DEBUG", True), "create_all": False, "closed": True}
        async with session_maker() as session:
            repo = AdminRepository(session)
            assert await repo.find_by_email("custom-seed@x.com") is not None
            assert await repo.find_by_email(test_settings.admin_email) is None
