"""
FastAPI routes: emergency notification fan-out.

Provides endpoints to:
    POST    /api/v1/notify/contacts     — alert the reporter's saved contacts
    POST    /api/v1/notify/responders   — alert every responder and admin
    OPTIONS on both                     — permissive CORS pre-flight

Per-recipient send failures never change the status code: they are
listed in the 200 payload. Only configuration and lookup failures
produce a 500.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Response

from backend.app.api.deps import get_notification_service
from backend.app.api.schemas import (
    ContactsNotifyResponse,
    NotifyRequestBody,
    RespondersNotifyResponse,
)
from backend.app.core.errors import ValidationError
from backend.app.notifications.models import ResolverStrategy
from backend.app.notifications.service import NotificationService

router = APIRouter(prefix="/api/v1/notify", tags=["notifications"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/contacts",
    response_model=ContactsNotifyResponse,
    response_model_exclude_none=True,
    summary="Notify the reporter's emergency contacts",
    description=(
        "Looks up the contacts saved by `user_id` and alerts each one by "
        "email and SMS concurrently."
    ),
)
async def notify_contacts(
    body: NotifyRequestBody,
    service: NotificationService = Depends(get_notification_service),
) -> Dict[str, Any]:
    if not body.user_id:
        raise ValidationError("user_id is required", field="user_id")

    report = await service.notify(body.to_request(), ResolverStrategy.PERSONAL_CONTACTS)
    return report.to_contacts_payload()


@router.post(
    "/responders",
    response_model=RespondersNotifyResponse,
    summary="Notify all responders and admins",
    description=(
        "Alerts every account holding the responder or admin role, using "
        "the email (and phone, when present) on the identity record."
    ),
)
async def notify_responders(
    body: NotifyRequestBody,
    service: NotificationService = Depends(get_notification_service),
) -> Dict[str, Any]:
    report = await service.notify(body.to_request(), ResolverStrategy.ROLE_BASED)
    return report.to_responders_payload()


@router.options("/contacts", include_in_schema=False)
async def contacts_preflight() -> Response:
    return _preflight()


@router.options("/responders", include_in_schema=False)
async def responders_preflight() -> Response:
    return _preflight()
