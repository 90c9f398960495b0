"""
models.py — Shared data structures for the notification fan-out.

Defines:
    • Channel            — delivery channel enum (email, SMS)
    • Availability       — per-request capability flag for a channel
    • AttemptOutcome     — per-attempt state machine
    • ResolverStrategy   — which recipient set a request targets
    • NotificationRequest — one emergency event to announce
    • Recipient          — a person reachable over zero or more channels
    • AlertMessage       — rendered content shared by every attempt
    • DeliveryAttempt    — one (recipient, channel) send
    • ChannelCapabilities / ChannelTally / DeliveryReport

═══════════════════════════════════════════════════════════════════════════
ATTEMPT STATE MACHINE
═══════════════════════════════════════════════════════════════════════════

    PENDING ──send succeeds──────────────▶ SENT     (terminal)
       │
       └────send raises / rejects / non-2xx ▶ FAILED (terminal)

No other transitions exist and nothing is retried within a request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from backend.app.core.errors import InvalidTransitionError


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════

class Channel(str, Enum):
    """Available delivery channels, in dispatch order."""
    EMAIL = "email"
    SMS   = "sms"

    @property
    def label(self) -> str:
        """Human label used in failure entries ("Email to Ana")."""
        return _CHANNEL_LABELS[self]


_CHANNEL_LABELS = {
    Channel.EMAIL: "Email",
    Channel.SMS: "SMS",
}


class Availability(str, Enum):
    AVAILABLE   = "available"
    UNAVAILABLE = "unavailable"


class AttemptOutcome(str, Enum):
    """Delivery state per recipient per channel."""
    PENDING = "pending"
    SENT    = "sent"
    FAILED  = "failed"


class ResolverStrategy(str, Enum):
    """Recipient set selected by the caller, never inferred."""
    PERSONAL_CONTACTS = "personal_contacts"   # reporter-initiated alert
    ROLE_BASED        = "role_based"          # system-wide responder alert


# ═══════════════════════════════════════════════════════════════════════════
# Request / Recipient / Message
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class NotificationRequest:
    """
    One emergency event to announce.

    Immutable once received. Two identical requests are two delivery
    waves; nothing is deduplicated.
    """
    emergency_id: str
    emergency_type: str
    latitude: float
    longitude: float
    description: Optional[str] = None
    subject_user_id: Optional[str] = None
    reporter_name: Optional[str] = None

    @property
    def emergency_type_display(self) -> str:
        """'natural_disaster' → 'NATURAL DISASTER'."""
        return self.emergency_type.replace("_", " ").upper()


@dataclass(frozen=True)
class Recipient:
    """
    A person to notify.

    Attributes
    ----------
    recipient_id : str
        Contact row id or account id, depending on the resolver.
    display_name : str
        Used in failure labels and logs.
    email, phone : str | None
        A channel is eligible only when its field is non-blank.
    """
    recipient_id: str
    display_name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    def contact_for(self, channel: Channel) -> Optional[str]:
        value = self.email if channel == Channel.EMAIL else self.phone
        if value is None or not value.strip():
            return None
        return value.strip()

    def has_contact_for(self, channel: Channel) -> bool:
        return self.contact_for(channel) is not None

    @property
    def is_reachable(self) -> bool:
        """False when the recipient has neither email nor phone."""
        return any(self.has_contact_for(ch) for ch in Channel)


@dataclass(frozen=True)
class AlertMessage:
    """Rendered alert content; email uses subject+html, SMS uses text."""
    subject: str
    html: str
    text: str


# ═══════════════════════════════════════════════════════════════════════════
# Capabilities
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ChannelCapabilities:
    """
    Channel availability for the lifetime of one request.

    Set once by the capability validator and read-only afterwards.
    """
    flags: Mapping[Channel, Availability]
    reasons: Mapping[Channel, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "flags", MappingProxyType(dict(self.flags)))
        object.__setattr__(self, "reasons", MappingProxyType(dict(self.reasons)))

    @classmethod
    def all_available(cls) -> "ChannelCapabilities":
        return cls({ch: Availability.AVAILABLE for ch in Channel})

    def is_available(self, channel: Channel) -> bool:
        return self.flags.get(channel) == Availability.AVAILABLE

    @property
    def available(self) -> List[Channel]:
        return [ch for ch in Channel if self.is_available(ch)]

    @property
    def unavailable(self) -> List[Channel]:
        return [ch for ch in Channel if not self.is_available(ch)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            ch.value: {
                "status": self.flags.get(ch, Availability.UNAVAILABLE).value,
                "reason": self.reasons.get(ch),
            }
            for ch in Channel
        }


# ═══════════════════════════════════════════════════════════════════════════
# Attempts & Report
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class DeliveryAttempt:
    """Record of a single send to one recipient via one channel."""
    recipient: Recipient
    channel: Channel
    outcome: AttemptOutcome = AttemptOutcome.PENDING
    error_detail: Optional[str] = None
    provider_message_id: Optional[str] = None
    started_at: datetime = field(default_factory=_now)
    completed_at: Optional[datetime] = None

    @property
    def recipient_id(self) -> str:
        return self.recipient.recipient_id

    @property
    def is_terminal(self) -> bool:
        return self.outcome != AttemptOutcome.PENDING

    @property
    def failure_label(self) -> str:
        return f"{self.channel.label} to {self.recipient.display_name}"

    def _finish(self, outcome: AttemptOutcome) -> None:
        if self.is_terminal:
            raise InvalidTransitionError(
                f"{self.channel.value} attempt for {self.recipient_id} "
                f"is already {self.outcome.value}"
            )
        self.outcome = outcome
        self.completed_at = _now()

    def mark_sent(self, provider_message_id: Optional[str] = None) -> None:
        self._finish(AttemptOutcome.SENT)
        self.provider_message_id = provider_message_id

    def mark_failed(self, detail: str) -> None:
        self._finish(AttemptOutcome.FAILED)
        self.error_detail = detail

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recipient_id": self.recipient_id,
            "channel": self.channel.value,
            "outcome": self.outcome.value,
            "error_detail": self.error_detail,
            "provider_message_id": self.provider_message_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
        }


@dataclass
class ChannelTally:
    sent: int = 0
    failed: int = 0

    @property
    def attempted(self) -> int:
        return self.sent + self.failed


@dataclass
class DeliveryReport:
    """
    Aggregate outcome of one dispatch.

    The only externally observable artifact of a notification pass; it is
    returned to the caller and logged, never persisted.
    """
    tallies: Dict[Channel, ChannelTally] = field(
        default_factory=lambda: {ch: ChannelTally() for ch in Channel}
    )
    failures: List[str] = field(default_factory=list)
    total_recipients: int = 0
    unavailable_channels: List[Channel] = field(default_factory=list)
    message: Optional[str] = None

    def sent(self, channel: Channel) -> int:
        return self.tallies[channel].sent

    def failed(self, channel: Channel) -> int:
        return self.tallies[channel].failed

    @property
    def total_sent(self) -> int:
        return sum(t.sent for t in self.tallies.values())

    @property
    def total_failed(self) -> int:
        return sum(t.failed for t in self.tallies.values())

    @property
    def attempt_count(self) -> int:
        return self.total_sent + self.total_failed

    def to_contacts_payload(self) -> Dict[str, Any]:
        """Response body of the personal-contacts endpoint."""
        body: Dict[str, Any] = {
            "success": True,
            "emailsSent": self.sent(Channel.EMAIL),
            "smsSent": self.sent(Channel.SMS),
            "totalContacts": self.total_recipients,
        }
        if self.failures:
            body["failures"] = list(self.failures)
        if self.message:
            body["message"] = self.message
        return body

    def to_responders_payload(self) -> Dict[str, Any]:
        """Response body of the responder endpoint."""
        return {
            "message": self.message or "Notifications sent",
            "successful": self.total_sent,
            "failed": self.total_failed,
            "total": self.total_recipients,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channels": {
                ch.value: {"sent": t.sent, "failed": t.failed}
                for ch, t in self.tallies.items()
            },
            "failures": list(self.failures),
            "total_recipients": self.total_recipients,
            "attempt_count": self.attempt_count,
            "unavailable_channels": [ch.value for ch in self.unavailable_channels],
            "message": self.message,
        }
