"""
Abstract base class for delivery channel clients.

Every client delivers one rendered ``AlertMessage`` to one ``Recipient``
over its provider and reports the outcome as a ``SendResult``. Clients may
also raise (transport errors, timeouts); the dispatcher turns either form
of failure into a Failed attempt.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from backend.app.notifications.models import AlertMessage, Channel, Recipient

# Provider error bodies are truncated to this length in reports and logs
MAX_DETAIL_CHARS = 300


@dataclass(frozen=True)
class SendResult:
    ok: bool
    provider_message_id: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def from_response(cls, response: httpx.Response, id_field: str) -> "SendResult":
        """Map a provider HTTP response: 2xx → ok, anything else → failure."""
        if response.is_success:
            try:
                message_id = response.json().get(id_field)
            except ValueError:
                message_id = None
            return cls(ok=True, provider_message_id=message_id)
        return cls(
            ok=False,
            detail=f"HTTP {response.status_code}: {response.text[:MAX_DETAIL_CHARS]}",
        )


class ChannelClient(ABC):
    """Base class every channel client implements.

    Attributes:
        channel: The channel this client delivers on.
    """

    channel: Channel

    @abstractmethod
    async def send(self, recipient: Recipient, message: AlertMessage) -> SendResult:
        """Deliver *message* to *recipient*.

        Returns:
            ``SendResult(ok=True)`` when the provider accepted the message.
        """

    async def close(self) -> None:
        """Release any resources held by the client (override if needed)."""
