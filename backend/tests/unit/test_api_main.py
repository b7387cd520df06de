"""Tests for the FastAPI application, exception handlers and middleware."""

import logging

import pytest
from httpx import ASGITransport, AsyncClient

from magiclink.core.errors import (
    EmailDeliveryError,
    EmailNotConfiguredError,
    ForbiddenError,
    TokenGenerationError,
    UnauthorizedError,
    ValidationError,
)
from magiclink.main import configure_logging, create_app


@pytest.fixture
def app():
    """Create test application instance."""
    return create_app()


@pytest.fixture
async def client(app):
    """Create async HTTP client for testing."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    async def test_health_returns_healthy_status(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAPIVersioning:
    """Tests for API versioning."""

    async def test_v1_router_mounted(self, client):
        # 404 means router is mounted but route doesn't exist
        response = await client.get("/api/v1/nonexistent")
        assert response.status_code == 404

    async def test_token_routes_are_under_v1(self, app):
        paths = {route.path for route in app.routes}
        assert "/api/v1/oauth/token" in paths
        assert "/api/v1/send-mail" in paths
        assert "/api/v1/admin/settings" in paths


class TestExceptionHandlers:
    """APIError subclasses render the error envelope with their status."""

    @pytest.mark.parametrize(
        ("exc", "status", "code"),
        [
            (ValidationError("Email is required"), 400, "VALIDATION_ERROR"),
            (UnauthorizedError("nope"), 401, "UNAUTHORIZED"),
            (ForbiddenError(), 403, "FORBIDDEN"),
            (TokenGenerationError("gave up"), 500, "TOKEN_GENERATION_FAILED"),
            (EmailDeliveryError(), 502, "EMAIL_DELIVERY_FAILED"),
            (EmailNotConfiguredError(), 503, "EMAIL_NOT_CONFIGURED"),
        ],
    )
    async def test_api_error_envelope(self, app, client, exc, status, code):
        @app.get("/test/api-error")
        async def raise_api_error():
            raise exc

        response = await client.get("/test/api-error")

        assert response.status_code == status
        assert response.json() == {
            "error": {"code": code, "message": exc.message, "details": None}
        }

    async def test_validation_details_are_passed_through(self, app, client):
        @app.get("/test/validation-details")
        async def raise_with_details():
            raise ValidationError("Invalid input", details=[{"field": "email"}])

        response = await client.get("/test/validation-details")

        assert response.json()["error"]["details"] == [{"field": "email"}]

    async def test_request_validation_is_400_without_input_echo(self, client):
        response = await client.post(
            "/api/v1/oauth/token", json={"code": 123456, "secret": "s3cr3t-value"}
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["message"] == "Request validation failed"
        assert {tuple(d["loc"]) for d in error["details"]} >= {("body", "secret")}
        assert "s3cr3t-value" not in response.text

    async def test_unhandled_exception_is_500_without_details(self, app, client):
        @app.get("/test/crash")
        async def crash():
            raise RuntimeError("connection to db-01 refused")

        response = await client.get("/test/crash")

        assert response.status_code == 500
        assert response.json()["error"] == {
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "details": None,
        }
        assert "db-01" not in response.text


class TestSecurityHeaders:
    """SecurityHeadersMiddleware."""

    async def test_headers_on_every_response(self, client):
        response = await client.get("/health")

        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Referrer-Policy"] == "no-referrer"
        assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]

    async def test_api_responses_are_not_cached(self, client):
        response = await client.get("/api/v1/nonexistent")
        assert response.headers["Cache-Control"] == "no-store, max-age=0"

    async def test_non_api_responses_have_no_cache_header(self, client):
        response = await client.get("/health")
        assert "Cache-Control" not in response.headers

    async def test_no_hsts_outside_production(self, client):
        response = await client.get("/health")
        assert "Strict-Transport-Security" not in response.headers


class TestConfigureLogging:
    """configure_logging()."""

    @pytest.fixture(autouse=True)
    def _restore_root_level(self):
        root = logging.getLogger()
        original = root.level
        yield
        root.setLevel(original)

    def test_sets_root_level(self):
        configure_logging("debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        configure_logging("chatty")
        assert logging.getLogger().level == logging.INFO
