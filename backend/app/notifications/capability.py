"""
capability.py — Pre-dispatch configuration check.

Decides, once per request, which channels may be used and whether the
request can run at all.

    Dependency                     Missing →
    ────────────────────────────   ─────────────────────────────────────
    DATABASE_URL                   ConfigurationError (both strategies)
    SUPABASE_URL + SERVICE KEY     ConfigurationError (role-based only)
    RESEND_API_KEY                 Email UNAVAILABLE
    TWILIO_* (sid, token, number)  SMS UNAVAILABLE

Losing every channel is not fatal: the emergency record already exists,
so the request completes with zero attempts.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from backend.app.core.config import Settings
from backend.app.core.errors import ConfigurationError
from backend.app.notifications.models import (
    Availability,
    Channel,
    ChannelCapabilities,
    ResolverStrategy,
)

logger = logging.getLogger(__name__)


class CapabilityValidator:
    """Inspects settings (and registered clients) before dispatch."""

    def __init__(self, settings: Settings, registered: Optional[Iterable[Channel]] = None):
        self.settings = settings
        self.registered = set(registered) if registered is not None else None

    def missing_mandatory(self, strategy: ResolverStrategy) -> List[str]:
        missing = []
        if self.settings.DATABASE_URL is None:
            missing.append("DATABASE_URL")
        if strategy == ResolverStrategy.ROLE_BASED:
            if self.settings.SUPABASE_URL is None:
                missing.append("SUPABASE_URL")
            if self.settings.SUPABASE_SERVICE_ROLE_KEY is None:
                missing.append("SUPABASE_SERVICE_ROLE_KEY")
        return missing

    def _channel_reason(self, channel: Channel) -> Optional[str]:
        """Return why *channel* is unusable, or None when it is usable."""
        if channel == Channel.EMAIL and not self.settings.email_configured:
            return "RESEND_API_KEY is not set"
        if channel == Channel.SMS and not self.settings.sms_configured:
            return "Twilio credentials are incomplete"
        if self.registered is not None and channel not in self.registered:
            return "No client registered"
        return None

    def validate(self, strategy: ResolverStrategy) -> ChannelCapabilities:
        """
        Raises
        ------
        ConfigurationError
            When a mandatory dependency for *strategy* is not configured.
        """
        missing = self.missing_mandatory(strategy)
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}",
                missing=missing,
            )

        capabilities = self.channel_capabilities()
        for channel in capabilities.unavailable:
            logger.warning(
                "Channel %s unavailable: %s", channel.value, capabilities.reasons[channel],
                extra={"channel": channel.value},
            )
        return capabilities

    def channel_capabilities(self) -> ChannelCapabilities:
        """Channel flags alone, without the mandatory-dependency check."""
        flags: Dict[Channel, Availability] = {}
        reasons: Dict[Channel, str] = {}
        for channel in Channel:
            reason = self._channel_reason(channel)
            if reason is None:
                flags[channel] = Availability.AVAILABLE
            else:
                flags[channel] = Availability.UNAVAILABLE
                reasons[channel] = reason
        return ChannelCapabilities(flags, reasons)
