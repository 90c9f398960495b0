"""
dispatcher.py — Concurrent fan-out of one alert to many (recipient, channel) pairs.

═══════════════════════════════════════════════════════════════════════════
FAN-OUT
═══════════════════════════════════════════════════════════════════════════

    recipients × available channels
        └── keep pairs where the recipient has the channel's contact field
              └── one PENDING DeliveryAttempt per pair (dispatch order:
                  recipient by recipient, Email before SMS)
                    └── asyncio.gather over every attempt  (settle-all)

Each attempt owns its own record, so no locking is needed. A send that
raises, times out, or returns ``ok=False`` fails only its own attempt;
siblings keep running and are reported normally. Nothing is retried.

An optional semaphore bounds how many sends are in flight at once.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Mapping, Optional, Sequence

from backend.app.notifications.channels.base import ChannelClient
from backend.app.notifications.models import (
    AlertMessage,
    Channel,
    ChannelCapabilities,
    DeliveryAttempt,
    Recipient,
)

logger = logging.getLogger(__name__)


def plan_attempts(
    recipients: Sequence[Recipient],
    channels: Sequence[Channel],
) -> List[DeliveryAttempt]:
    """Build every eligible (recipient, channel) attempt up front."""
    ordered = [ch for ch in Channel if ch in channels]
    return [
        DeliveryAttempt(recipient=recipient, channel=channel)
        for recipient in recipients
        for channel in ordered
        if recipient.has_contact_for(channel)
    ]


class FanOutDispatcher:
    """
    Issues every eligible send concurrently and waits for all of them.

    Parameters
    ----------
    clients : mapping of Channel → ChannelClient
        Process-scoped channel clients.
    max_concurrency : int | None
        Upper bound on in-flight sends; None or 0 means unbounded.
    """

    def __init__(
        self,
        clients: Mapping[Channel, ChannelClient],
        *,
        max_concurrency: Optional[int] = None,
    ):
        self.clients = dict(clients)
        self.max_concurrency = max_concurrency or None

    async def _run_attempt(
        self,
        attempt: DeliveryAttempt,
        message: AlertMessage,
        gate: Optional[asyncio.Semaphore],
    ) -> DeliveryAttempt:
        client = self.clients.get(attempt.channel)
        if client is None:
            attempt.mark_failed(f"No client registered for {attempt.channel.value}")
            return attempt

        try:
            if gate is None:
                result = await client.send(attempt.recipient, message)
            else:
                async with gate:
                    result = await client.send(attempt.recipient, message)
        except Exception as exc:
            logger.error(
                "%s to %s raised: %s",
                attempt.channel.label, attempt.recipient_id, exc,
                extra={"channel": attempt.channel.value},
            )
            attempt.mark_failed(str(exc) or type(exc).__name__)
            return attempt

        if result.ok:
            attempt.mark_sent(result.provider_message_id)
        else:
            attempt.mark_failed(result.detail or "Provider rejected the message")
        return attempt

    async def dispatch(
        self,
        recipients: Sequence[Recipient],
        capabilities: ChannelCapabilities,
        message: AlertMessage,
    ) -> List[DeliveryAttempt]:
        """
        Deliver *message* to every eligible pair.

        Returns
        -------
        list of DeliveryAttempt
            All terminal, in dispatch order.
        """
        attempts = plan_attempts(recipients, capabilities.available)
        if not attempts:
            return []

        gate = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        started = time.perf_counter()

        await asyncio.gather(
            *(self._run_attempt(a, message, gate) for a in attempts)
        )

        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Fan-out settled: %d attempt(s) to %d recipient(s) in %.1fms",
            len(attempts), len(recipients), duration_ms,
            extra={"attempt_count": len(attempts), "duration_ms": duration_ms},
        )
        return attempts
