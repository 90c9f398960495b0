"""
aggregator.py — Reduce terminal delivery attempts into a DeliveryReport.

Pure function, no I/O. For every channel:

    sent(channel) + failed(channel) == attempts on that channel

Failure labels ("SMS to Ana") keep the order attempts were dispatched in.
"""

from __future__ import annotations

from typing import Optional, Sequence

from backend.app.notifications.models import (
    AttemptOutcome,
    ChannelCapabilities,
    DeliveryAttempt,
    DeliveryReport,
)

NO_CHANNEL_MESSAGE = "No notification channel is configured"


def aggregate(
    attempts: Sequence[DeliveryAttempt],
    *,
    total_recipients: int,
    capabilities: Optional[ChannelCapabilities] = None,
    message: Optional[str] = None,
) -> DeliveryReport:
    """
    Tally attempts by (channel, outcome).

    Raises
    ------
    ValueError
        If any attempt is still pending.
    """
    report = DeliveryReport(total_recipients=total_recipients, message=message)

    for attempt in attempts:
        tally = report.tallies[attempt.channel]
        if attempt.outcome == AttemptOutcome.SENT:
            tally.sent += 1
        elif attempt.outcome == AttemptOutcome.FAILED:
            tally.failed += 1
            report.failures.append(attempt.failure_label)
        else:
            raise ValueError(
                f"Cannot aggregate pending {attempt.channel.value} attempt "
                f"for {attempt.recipient_id}"
            )

    if capabilities is not None:
        report.unavailable_channels = capabilities.unavailable
        if not capabilities.available and report.message is None:
            report.message = NO_CHANNEL_MESSAGE

    return report
