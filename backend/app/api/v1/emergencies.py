"""
FastAPI route: SOS report submission.

    POST /api/v1/emergencies — store the report, then notify in the background

The report is committed before the response is sent. Contact and
responder notification run afterwards as a background task whose
failures are logged only; the 201 stands regardless.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends

from backend.app.api.deps import get_notification_service
from backend.app.api.schemas import EmergencyCreateRequest, EmergencyCreateResponse
from backend.app.core.errors import ConfigurationError, NotifierAPIError
from backend.app.notifications.handoff import notify_after_report
from backend.app.notifications.messages import DEFAULT_REPORTER_NAME
from backend.app.notifications.models import NotificationRequest
from backend.app.notifications.service import NotificationService
from backend.app.notifications.store import STORE_ERRORS, RecipientStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/emergencies", tags=["emergencies"])


async def _reporter_name(store: RecipientStore, user_id: str, given: Optional[str]) -> str:
    if given:
        return given
    try:
        name = await store.get_profile_name(user_id)
    except STORE_ERRORS as exc:
        logger.warning("Profile lookup failed for %s: %s", user_id, exc)
        name = None
    return name or DEFAULT_REPORTER_NAME


@router.post(
    "",
    status_code=201,
    response_model=EmergencyCreateResponse,
    summary="Submit an SOS report",
)
async def create_emergency(
    body: EmergencyCreateRequest,
    background_tasks: BackgroundTasks,
    service: NotificationService = Depends(get_notification_service),
):
    store = service.store
    if store is None:
        raise ConfigurationError("Recipient store is not configured", missing=["DATABASE_URL"])

    try:
        report_id = await store.create_emergency_report(
            user_id=body.user_id,
            emergency_type=body.emergency_type.value,
            latitude=body.latitude,
            longitude=body.longitude,
            description=body.description,
        )
    except STORE_ERRORS as exc:
        raise NotifierAPIError(
            f"Could not store emergency report: {exc}",
            error_code="PERSISTENCE_ERROR",
        ) from exc

    request = NotificationRequest(
        emergency_id=report_id,
        emergency_type=body.emergency_type.value,
        latitude=body.latitude,
        longitude=body.longitude,
        description=body.description,
        subject_user_id=body.user_id,
        reporter_name=await _reporter_name(store, body.user_id, body.reporter_name),
    )
    background_tasks.add_task(notify_after_report, service, request)

    return EmergencyCreateResponse(id=report_id)
