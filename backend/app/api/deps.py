"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from fastapi import Request

from backend.app.core.errors import ConfigurationError
from backend.app.notifications.service import NotificationService


def get_notification_service(request: Request) -> NotificationService:
    """Process-scoped service built in the application lifespan."""
    service = getattr(request.app.state, "notifications", None)
    if service is None:
        raise ConfigurationError("Notification service is not initialised")
    return service
