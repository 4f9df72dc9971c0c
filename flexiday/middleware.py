from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from fastapi import status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from flexiday.logging_config import request_id_ctx
from flexiday.rate_limit import SlidingWindowLimiter

if TYPE_CHECKING:
    from fastapi import FastAPI, Request
    from starlette.middleware.base import RequestResponseEndpoint
    from starlette.responses import Response
    from starlette.types import ASGIApp

    from flexiday.config import Settings

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
    "X-Permitted-Cross-Domain-Policies": "none",
}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind the X-Request-ID header to the logging context and echo it back."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_ctx.reset(token)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Answer 429 once a client exceeds its request window."""

    def __init__(self, app: ASGIApp, limiter: SlidingWindowLimiter) -> None:
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        identity = request.client.host if request.client and request.client.host else "unknown"
        allowed, retry_after = await self.limiter.hit(identity)
        if not allowed:
            logger.warning("Rate limit exceeded for %s on %s %s", identity, request.method, request.url.path)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": "Too many requests", "retryAfter": retry_after},
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure application middleware.

    The limiter is kept on ``app.state.rate_limiter`` (None when disabled).
    """
    app.state.rate_limiter = None
    if settings.rate_limit_enabled:
        app.state.rate_limiter = SlidingWindowLimiter(settings.rate_limit_requests, settings.rate_limit_window_seconds)
        app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiter)  # ty: ignore[invalid-argument-type]
    app.add_middleware(RequestContextMiddleware)  # ty: ignore[invalid-argument-type]
    if settings.security_headers_enabled:
        app.add_middleware(SecurityHeadersMiddleware)  # ty: ignore[invalid-argument-type]
    app.add_middleware(
        CORSMiddleware,  # ty: ignore[invalid-argument-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Retry-After", "X-Request-ID"],
    )
