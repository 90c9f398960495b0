"""
handoff.py — Fire-and-forget notification after an emergency report commits.

The report is the durable artefact; notification is best-effort. The
hand-off runs as a background task after the HTTP response has been
sent, so nothing it does can unwind report creation. The strategy passes
run side by side; a failed pass is logged and stops there.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Sequence

from backend.app.notifications.models import (
    DeliveryReport,
    NotificationRequest,
    ResolverStrategy,
)
from backend.app.notifications.service import NotificationService

logger = logging.getLogger(__name__)

SOS_STRATEGIES = (
    ResolverStrategy.PERSONAL_CONTACTS,
    ResolverStrategy.ROLE_BASED,
)


async def notify_after_report(
    service: NotificationService,
    request: NotificationRequest,
    strategies: Sequence[ResolverStrategy] = SOS_STRATEGIES,
) -> Dict[ResolverStrategy, Optional[DeliveryReport]]:
    """
    Run each strategy's notification pass for a stored report, concurrently.

    Returns the report per strategy, or None where the pass failed.
    """
    results = await asyncio.gather(
        *(service.notify(request, strategy) for strategy in strategies),
        return_exceptions=True,
    )

    outcomes: Dict[ResolverStrategy, Optional[DeliveryReport]] = {}
    for strategy, result in zip(strategies, results):
        if isinstance(result, BaseException):
            logger.error(
                "Notification hand-off failed for emergency %s (%s)",
                request.emergency_id, strategy.value,
                exc_info=result,
                extra={"emergency_id": request.emergency_id, "strategy": strategy.value},
            )
            outcomes[strategy] = None
        else:
            outcomes[strategy] = result
    return outcomes
