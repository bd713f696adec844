"""Unit tests for middleware."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from api.middleware.logging import RequestLoggingMiddleware
from api.middleware.request_id import RequestIDMiddleware
from core.rate_limit import session_or_address


def _create_app_with_middleware() -> FastAPI:
    """Create a minimal FastAPI app with logging and request ID middleware."""
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/test")
    async def _(request: Request):
        return {"request_id": request.state.request_id}

    return app


async def _get(headers: dict[str, str] | None = None):
    transport = ASGITransport(app=_create_app_with_middleware())
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        return await c.get("/test", headers=headers)


class TestRequestIDMiddleware:
    """Tests for RequestIDMiddleware."""

    @pytest.mark.asyncio
    async def test_generates_request_id_when_not_provided(self):
        response = await _get()

        assert len(response.headers["x-request-id"]) == 36
        assert response.json()["request_id"] == response.headers["x-request-id"]

    @pytest.mark.asyncio
    async def test_propagates_existing_request_id(self):
        response = await _get({"X-Request-ID": "custom-req-123"})

        assert response.headers["x-request-id"] == "custom-req-123"

    @pytest.mark.asyncio
    async def test_replaces_malformed_request_id(self):
        response = await _get({"X-Request-ID": "bad id with spaces"})

        assert response.headers["x-request-id"] != "bad id with spaces"
        assert len(response.headers["x-request-id"]) == 36


def _request(headers: dict[str, str]) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": ("203.0.113.9", 5000),
    }
    return Request(scope)


class TestRateLimitKey:
    def test_keys_on_bearer_token(self):
        first = session_or_address(_request({"Authorization": "Bearer token-a"}))
        second = session_or_address(_request({"Authorization": "Bearer token-b"}))

        assert first.startswith("token:")
        assert first != second
        assert "token-a" not in first

    def test_falls_back_to_client_address(self):
        assert session_or_address(_request({})) == "203.0.113.9"
        assert session_or_address(_request({"Authorization": "Basic abc"})) == "203.0.113.9"
