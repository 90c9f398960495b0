"""
Health check aggregation — deep health probe for the notifier's dependencies.

Checks (run concurrently):
    • postgresql         — SELECT 1 through the service's engine
    • identity_provider  — admin credentials present (responder alerts)
    • channels           — per-channel availability with the reason when off

    Component state               Service status
    ───────────────────────────   ──────────────
    any UNHEALTHY                 unhealthy  (readiness → 503)
    any DEGRADED                  degraded   (still ready)
    otherwise                     healthy

A missing database is unhealthy because neither strategy can resolve
recipients without it. Missing channels or identity credentials only
degrade the service: requests still complete with a 200 report.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from backend.app.core.config import settings

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.UNHEALTHY: 2,
}


@dataclass
class ComponentHealth:
    name: str
    status: HealthStatus = HealthStatus.HEALTHY
    latency_ms: float = 0.0
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            d["message"] = self.message
        if self.details:
            d["details"] = self.details
        return d


@dataclass
class HealthReport:
    components: List[ComponentHealth] = field(default_factory=list)
    uptime_seconds: float = 0.0
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def status(self) -> HealthStatus:
        if not self.components:
            return HealthStatus.HEALTHY
        return max((c.status for c in self.components), key=_SEVERITY.__getitem__)

    @property
    def is_ready(self) -> bool:
        return self.status != HealthStatus.UNHEALTHY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "timestamp": self.timestamp,
            "uptime_seconds": round(self.uptime_seconds, 1),
            "components": [c.to_dict() for c in self.components],
        }


_start_time = time.monotonic()


@contextmanager
def _timed(comp: ComponentHealth) -> Iterator[ComponentHealth]:
    start = time.monotonic()
    try:
        yield comp
    finally:
        comp.latency_ms = (time.monotonic() - start) * 1000


async def check_database(service: Optional[Any]) -> ComponentHealth:
    database = getattr(service, "database", None)
    with _timed(ComponentHealth(name="postgresql")) as comp:
        if database is None:
            comp.status = HealthStatus.UNHEALTHY
            comp.message = "DATABASE_URL is not set"
            return comp
        try:
            await database.ping()
            comp.message = "Connection pool available"
        except Exception as e:
            logger.warning("Database health check failed: %s", e)
            comp.status = HealthStatus.UNHEALTHY
            comp.message = str(e)
    return comp


async def check_identity(service: Optional[Any]) -> ComponentHealth:
    with _timed(ComponentHealth(name="identity_provider")) as comp:
        if getattr(service, "identity", None) is None:
            comp.status = HealthStatus.DEGRADED
            comp.message = "Not configured; responder alerts will fail"
        else:
            comp.message = "Admin credentials configured"
    return comp


async def check_channels(service: Optional[Any]) -> ComponentHealth:
    validator = getattr(service, "validator", None)
    with _timed(ComponentHealth(name="channels")) as comp:
        if validator is None:
            comp.status = HealthStatus.DEGRADED
            comp.message = "Notification service not initialised"
            return comp
        capabilities = validator.channel_capabilities()
        comp.details = capabilities.to_dict()
        if not capabilities.available:
            comp.status = HealthStatus.DEGRADED
            comp.message = "No notification channel is configured"
        else:
            comp.message = ", ".join(ch.value for ch in capabilities.available) + " available"
    return comp


async def run_health_check(service: Optional[Any] = None) -> HealthReport:
    """Run every check against *service* (None before startup completes)."""
    components = await asyncio.gather(
        check_database(service),
        check_identity(service),
        check_channels(service),
    )
    return HealthReport(
        components=list(components),
        uptime_seconds=time.monotonic() - _start_time,
    )
