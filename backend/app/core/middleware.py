"""
Request middleware — correlation IDs, timing and one access log line per request.

Provides:
    • X-Request-ID header (taken from the caller or generated)
    • X-Process-Time header
    • Request context for downstream log enrichment, reset after each request
    • Quiet handling of probes and CORS pre-flights (DEBUG only)
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from backend.app.core.logging_config import reset_request_context, set_request_context

logger = logging.getLogger(__name__)

_QUIET_PREFIXES = ("/docs", "/redoc", "/openapi", "/favicon", "/health/live")


def _level_for(method: str, path: str, status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    if method == "OPTIONS" or path.startswith(_QUIET_PREFIXES):
        return logging.DEBUG
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Time every request, tag its logs with a request id, log the outcome."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:16]
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path

        token = set_request_context(
            request_id=request_id,
            client_ip=client_ip,
            endpoint=path,
            method=request.method,
        )
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{(time.perf_counter() - start) * 1000:.1f}ms"
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.log(
                _level_for(request.method, path, status_code),
                "%s %s → %d (%.1fms) [%s]",
                request.method, path, status_code, duration_ms, client_ip,
                extra={
                    "duration_ms": duration_ms,
                    "status_code": status_code,
                    "endpoint": path,
                },
            )
            reset_request_context(token)
