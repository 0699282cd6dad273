"""HTTP middleware for the search API.

Provides:
    - API key authentication (X-API-Key header), when a key is configured
    - Audit logging (structured request/response logging) + request metrics
"""

from __future__ import annotations

import logging
import secrets
import time
from typing import Callable, Set

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from .metrics import record_request_metric

audit_logger = logging.getLogger("audit")


# ---------------------------------------------------------------------------
# API Key Authentication
# ---------------------------------------------------------------------------

class APIKeyMiddleware(BaseHTTPMiddleware):
    """Require X-API-Key header on all non-exempt paths."""

    EXEMPT_PATHS: Set[str] = {"/v1/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, api_key: str):
        super().__init__(app)
        self.api_key = api_key

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.api_key or request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        key = request.headers.get("X-API-Key", "")
        if not key or not secrets.compare_digest(key, self.api_key):
            audit_logger.warning(
                "AUTH_FAIL ip=%s path=%s",
                request.client.host if request.client else "unknown",
                request.url.path,
            )
            return JSONResponse(
                status_code=401,
                content={"detail": "Invalid or missing API key"},
            )

        return await call_next(request)


# ---------------------------------------------------------------------------
# Audit Logging
# ---------------------------------------------------------------------------

class AuditLogMiddleware(BaseHTTPMiddleware):
    """Log every request with structured fields and record its latency."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.time()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)
        elapsed = time.time() - start

        # Route template keeps per-map paths from exploding label cardinality
        route = request.scope.get("route")
        path = getattr(route, "path", None) or request.url.path
        record_request_metric(
            method=request.method,
            path=path,
            status=response.status_code,
            duration_seconds=elapsed,
        )

        audit_logger.info(
            "method=%s path=%s status=%d ip=%s elapsed_ms=%.1f",
            request.method,
            request.url.path,
            response.status_code,
            client_ip,
            round(elapsed * 1000, 1),
        )

        return response
