"""
Structured logging configuration.

Provides:
    • JSON-formatted logs for production (machine-parseable)
    • Pretty console logs for development (human-readable)
    • Request-scoped context, extended by the notification pass with the
      emergency id and strategy so every send log can be traced to its alert
    • Contact masking so recipient emails and phone numbers stay out of logs

Usage:
    from backend.app.core.logging_config import bind_context, mask_contact

    bind_context(emergency_id="e-1", strategy="role_based")
    logger.info("Sent to %s", mask_contact("+919876543210"))
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from backend.app.core.config import settings

_request_context: ContextVar[Dict[str, Any]] = ContextVar(
    "request_context", default={}
)

# Record attributes passed via ``extra=`` that are worth keeping
_EXTRA_KEYS = (
    "emergency_id", "strategy", "channel", "recipient_count",
    "attempt_count", "delivery", "duration_ms", "status_code", "endpoint",
)


def set_request_context(**kwargs: Any) -> Token:
    """Replace the context for the current request; returns a reset token."""
    return _request_context.set(dict(kwargs))


def reset_request_context(token: Token) -> None:
    _request_context.reset(token)


def bind_context(**kwargs: Any) -> None:
    """Add keys to the current context without dropping existing ones."""
    _request_context.set({**_request_context.get(), **kwargs})


def get_request_context() -> Dict[str, Any]:
    return _request_context.get()


def mask_contact(value: Optional[str]) -> str:
    """'ravi@example.com' → 'r***@example.com', '+919876543210' → '***3210'."""
    if not value:
        return "-"
    if "@" in value:
        local, _, domain = value.partition("@")
        return f"{local[:1]}***@{domain}"
    return f"***{value[-4:]}"


def _record_extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: getattr(record, key) for key in _EXTRA_KEYS if hasattr(record, key)}


# ── JSON Formatter (Production) ──

class JSONFormatter(logging.Formatter):
    """One JSON object per line; context and extras flattened to top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": settings.APP_NAME,
        }
        log_entry.update(get_request_context())
        log_entry.update(_record_extras(record))

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
                "trace": self.formatException(record.exc_info),
            }

        return json.dumps(log_entry, default=str)


# ── Pretty Formatter (Development) ──

class PrettyFormatter(logging.Formatter):
    """Coloured one-line format; shows request and emergency ids when bound."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        ctx = get_request_context()

        tags = []
        if ctx.get("request_id"):
            tags.append(ctx["request_id"][:8])
        emergency_id = getattr(record, "emergency_id", None) or ctx.get("emergency_id")
        if emergency_id:
            tags.append(f"em={emergency_id}")
        tag_str = f" [{' '.join(tags)}]" if tags else ""

        line = (
            f"{color}{self.formatTime(record, '%H:%M:%S')} {record.levelname:8s}{self.RESET}"
            f"{tag_str} {record.name}: {record.getMessage()}"
        )
        if record.exc_info and record.exc_info[1]:
            line += f"\n  {type(record.exc_info[1]).__name__}: {record.exc_info[1]}"
        return line


# ── Setup ──

def _use_json() -> bool:
    fmt = settings.LOG_FORMAT.lower()
    if fmt == "auto":
        return settings.is_production
    return fmt == "json"


def setup_logging() -> None:
    """Configure the root logger once per process."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if _use_json() else PrettyFormatter())
    root.addHandler(handler)

    # Provider calls are logged by the channel clients with masked contacts
    for noisy in ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
