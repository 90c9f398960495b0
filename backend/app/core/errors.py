"""
Centralised error handling — exception hierarchy + FastAPI handlers.

Provides:
    • Domain-specific exception classes
    • Consistent JSON error response format: {"error": <message>, "code": ...}
    • Automatic logging of unhandled errors
    • Request context in error responses (non-production)

Only pre-dispatch failures are raised as exceptions. Once recipients are
resolved, every per-recipient problem is recorded in the delivery report.

Usage:
    from backend.app.core.errors import ConfigurationError

    raise ConfigurationError("DATABASE_URL is not set", missing=["DATABASE_URL"])
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.app.core.config import settings

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Exception Hierarchy
# ═══════════════════════════════════════════════════════════════════════════

class NotifierAPIError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class ConfigurationError(NotifierAPIError):
    """A mandatory dependency is not configured (500)."""

    def __init__(self, message: str, *, missing: Optional[List[str]] = None):
        super().__init__(
            message=message,
            status_code=500,
            error_code="CONFIGURATION_ERROR",
            details={"missing": missing or []},
        )


class ResolutionError(NotifierAPIError):
    """Recipient lookup itself failed, as opposed to finding nobody (500)."""

    def __init__(self, source: str, message: str = "", **details: Any):
        super().__init__(
            message=f"Recipient lookup via {source} failed: {message}",
            status_code=500,
            error_code="RESOLUTION_ERROR",
            details={"source": source, **details},
        )


class ValidationError(NotifierAPIError):
    """Input validation failed (422)."""

    def __init__(self, message: str, *, field: Optional[str] = None, **details: Any):
        d = {**details}
        if field:
            d["field"] = field
        super().__init__(
            message=message,
            status_code=422,
            error_code="VALIDATION_ERROR",
            details=d,
        )


class InvalidTransitionError(RuntimeError):
    """A delivery attempt was moved out of a terminal state."""


# ═══════════════════════════════════════════════════════════════════════════
# Error Response Builder
# ═══════════════════════════════════════════════════════════════════════════

def build_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: Dict[str, Any] = {
        "error": message,
        "code": error_code,
    }

    if details:
        body["details"] = details

    # Include request path in non-production
    if request and not settings.is_production:
        body["path"] = str(request.url.path)
        body["method"] = request.method

    return JSONResponse(status_code=status_code, content=body)


# ═══════════════════════════════════════════════════════════════════════════
# FastAPI Exception Handlers
# ═══════════════════════════════════════════════════════════════════════════

def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app."""

    @app.exception_handler(NotifierAPIError)
    async def handle_notifier_error(request: Request, exc: NotifierAPIError):
        logger.error(
            "API Error [%s]: %s | details=%s",
            exc.error_code, exc.message, exc.details,
        )
        return build_error_response(
            exc.status_code, exc.error_code, exc.message,
            exc.details, request,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        logger.warning("Rejected request body: %s", exc.errors())
        return build_error_response(
            422, "VALIDATION_ERROR", "Invalid request body",
            {"errors": jsonable_errors(exc)}, request,
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.critical(
            "Unhandled exception: %s\n%s",
            exc, traceback.format_exc(),
        )
        message = str(exc) if settings.DEBUG else "Internal server error"
        return build_error_response(
            500, "INTERNAL_ERROR", message, request=request,
        )


def jsonable_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    """Reduce pydantic error entries to JSON-safe location/message pairs."""
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
