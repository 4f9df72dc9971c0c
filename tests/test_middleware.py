"""Tests for rate limiting and response security headers."""

from __future__ import annotations

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from flexiday.config import Settings
from flexiday.middleware import SECURITY_HEADERS, setup_middleware
from flexiday.rate_limit import SlidingWindowLimiter


def _app(**overrides: object) -> FastAPI:
    application = FastAPI()
    setup_middleware(application, Settings(**overrides))

    @application.get("/ping")
    async def ping() -> dict[str, str]:
        return {"status": "pong"}

    return application


def _client(application: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=application), base_url="http://test")


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


async def test_requests_over_the_limit_get_429() -> None:
    application = _app(rate_limit_requests=2, rate_limit_window_seconds=60)
    async with _client(application) as client:
        first = await client.get("/ping")
        second = await client.get("/ping")
        third = await client.get("/ping")

    assert first.status_code == 200
    assert second.status_code == 200
    assert third.status_code == 429
    body = third.json()
    assert body["error"] == "Too many requests"
    assert 1 <= body["retryAfter"] <= 60
    assert third.headers["Retry-After"] == str(body["retryAfter"])
    assert third.headers["X-Request-ID"]


async def test_reset_reopens_the_window() -> None:
    application = _app(rate_limit_requests=1, rate_limit_window_seconds=60)
    async with _client(application) as client:
        assert (await client.get("/ping")).status_code == 200
        assert (await client.get("/ping")).status_code == 429
        application.state.rate_limiter.reset()
        assert (await client.get("/ping")).status_code == 200


async def test_rate_limit_can_be_disabled() -> None:
    application = _app(rate_limit_enabled=False, rate_limit_requests=1)
    async with _client(application) as client:
        statuses = [(await client.get("/ping")).status_code for _ in range(3)]
    assert statuses == [200, 200, 200]
    assert application.state.rate_limiter is None


async def test_limiter_counts_clients_separately() -> None:
    limiter = SlidingWindowLimiter(limit=1, window_seconds=60)
    assert await limiter.hit("10.0.0.1") == (True, 0)
    assert await limiter.hit("10.0.0.2") == (True, 0)
    allowed, retry_after = await limiter.hit("10.0.0.1")
    assert allowed is False
    assert 1 <= retry_after <= 60


# ---------------------------------------------------------------------------
# Security headers
# ---------------------------------------------------------------------------


async def test_security_headers_present() -> None:
    async with _client(_app()) as client:
        response = await client.get("/ping")
    for name, value in SECURITY_HEADERS.items():
        assert response.headers[name] == value


async def test_security_headers_on_rate_limited_response() -> None:
    async with _client(_app(rate_limit_requests=1)) as client:
        await client.get("/ping")
        response = await client.get("/ping")
    assert response.status_code == 429
    assert response.headers["X-Content-Type-Options"] == "nosniff"


async def test_security_headers_can_be_disabled() -> None:
    async with _client(_app(security_headers_enabled=False)) as client:
        response = await client.get("/ping")
    assert "X-Frame-Options" not in response.headers
