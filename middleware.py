"""
HTTP middleware: request ids, security headers and per-client rate limiting.
"""

import logging
import math
import time
import uuid
from typing import Callable, Dict, Optional, Tuple

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from config import Settings
from logging_config import request_id as request_id_context

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Adds a unique request ID to each incoming request.

    The id is stored in request.state.request_id, attached to log records
    emitted while the request is handled, and echoed back in the
    X-Request-ID response header. An id sent by an upstream proxy is reused.
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.header_name) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_context.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_context.reset(token)

        response.headers[self.header_name] = request_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds common security headers to all responses."""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "0",
        "Referrer-Policy": "no-referrer",
        "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
        "Cross-Origin-Resource-Policy": "same-origin",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in self.HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class FixedWindowLimiter:
    """In-process fixed window counter keyed by client."""

    def __init__(self, limit: int, period: int, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.period = period
        self.clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep = clock()

    def hit(self, key: str) -> Tuple[bool, int, int]:
        """Record one call; returns (allowed, remaining, seconds until reset)."""
        now = self.clock()
        self._sweep(now)

        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.period:
            started, count = now, 0

        count += 1
        self._windows[key] = (started, count)

        reset_in = max(0, math.ceil(started + self.period - now))
        return count <= self.limit, max(0, self.limit - count), reset_in

    def _sweep(self, now: float) -> None:
        # At most once per period, drop windows that have already expired
        if now - self._last_sweep < self.period:
            return
        self._windows = {
            key: window
            for key, window in self._windows.items()
            if now - window[0] < self.period
        }
        self._last_sweep = now

    def __len__(self) -> int:
        return len(self._windows)

    def reset(self) -> None:
        self._windows.clear()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects callers that exceed the configured number of calls per window."""

    def __init__(
        self,
        app: ASGIApp,
        limiter: FixedWindowLimiter,
        trust_forwarded: bool = False,
        exempt_paths: Tuple[str, ...] = ("/health",),
    ):
        super().__init__(app)
        self.limiter = limiter
        self.trust_forwarded = trust_forwarded
        self.exempt_paths = exempt_paths

    def client_key(self, request: Request) -> str:
        if self.trust_forwarded:
            forwarded: Optional[str] = request.headers.get("X-Forwarded-For")
            if forwarded:
                return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        key = self.client_key(request)
        allowed, remaining, reset_in = self.limiter.hit(key)
        headers = {
            "RateLimit-Limit": str(self.limiter.limit),
            "RateLimit-Remaining": str(remaining),
            "RateLimit-Reset": str(reset_in),
        }

        if not allowed:
            logger.warning("Rate limit exceeded for %s on %s", key, request.url.path)
            headers["Retry-After"] = str(reset_in)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": "Too many requests, please try again later."},
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response


def register_middlewares(app: FastAPI, settings: Settings) -> FixedWindowLimiter:
    """
    Register the core middlewares.

    Starlette runs the last one added first, so the request id is assigned
    before the rate limiter and security headers see the request.
    """
    limiter = FixedWindowLimiter(settings.RATE_LIMIT_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS)

    app.add_middleware(RateLimitMiddleware, limiter=limiter, trust_forwarded=settings.TRUSTED_PROXY)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)

    logger.debug("Registered RateLimitMiddleware, SecurityHeadersMiddleware, RequestIDMiddleware")
    return limiter
