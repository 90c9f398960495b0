"""
Pydantic schemas for the notification and emergency endpoints.

Separated from the route handlers so they are reusable across
the codebase (background hand-off, tests).

Response field names follow the existing web client (camelCase for the
personal-contacts payload).
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from backend.app.notifications.models import NotificationRequest


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class EmergencyType(str, Enum):
    """Emergency categories offered by the SOS form."""
    MEDICAL  = "medical"
    FIRE     = "fire"
    CRIME    = "crime"
    ACCIDENT = "accident"
    DISASTER = "disaster"
    OTHER    = "other"


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class NotifyRequestBody(BaseModel):
    """Body shared by both notify endpoints."""
    emergency_id: str = Field(..., min_length=1, examples=["8c1d6f0e-4d1f-4d9e-9a7e-3b0c2f1a7d11"])
    emergency_type: str = Field(..., min_length=1, examples=["medical"])
    latitude: float = Field(..., ge=-90.0, le=90.0, examples=[13.0827])
    longitude: float = Field(..., ge=-180.0, le=180.0, examples=[80.2707])
    description: Optional[str] = Field(None, examples=["Fell down the stairs, cannot stand"])
    user_id: Optional[str] = Field(
        None, description="Reporting user; required for the contacts variant",
    )
    reporter_name: Optional[str] = Field(None, examples=["Asha"])

    @field_validator("description", "user_id", "reporter_name")
    @classmethod
    def normalise_optional_text(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)

    def to_request(self) -> NotificationRequest:
        return NotificationRequest(
            emergency_id=self.emergency_id,
            emergency_type=self.emergency_type,
            latitude=self.latitude,
            longitude=self.longitude,
            description=self.description,
            subject_user_id=self.user_id,
            reporter_name=self.reporter_name,
        )


class EmergencyCreateRequest(BaseModel):
    """SOS report submitted by a signed-in user."""
    user_id: str = Field(..., min_length=1)
    emergency_type: EmergencyType = Field(..., examples=["fire"])
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    description: Optional[str] = None
    reporter_name: Optional[str] = None

    @field_validator("description", "reporter_name")
    @classmethod
    def normalise_optional_text(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class ContactsNotifyResponse(BaseModel):
    success: bool = True
    emailsSent: int
    smsSent: int
    totalContacts: int
    failures: Optional[List[str]] = None
    message: Optional[str] = None


class RespondersNotifyResponse(BaseModel):
    message: str
    successful: int
    failed: int
    total: int


class EmergencyCreateResponse(BaseModel):
    id: str
    status: str = "pending"
    notification: str = "scheduled"
