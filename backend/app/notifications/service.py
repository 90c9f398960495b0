"""
service.py — One notification pass per request.

═══════════════════════════════════════════════════════════════════════════
ORCHESTRATION FLOW
═══════════════════════════════════════════════════════════════════════════

    ┌─────────────────────┐
    │  1. Validate        │  ConfigurationError if a mandatory dependency
    │     capabilities    │  is missing; otherwise Email/SMS flags
    └─────────┬───────────┘
              ▼
    ┌─────────────────────┐
    │  2. Resolve         │  personal contacts OR responder accounts
    │     recipients      │  ResolutionError if the lookup itself fails
    └─────────┬───────────┘
              ▼
    ┌─────────────────────┐
    │  3. Dispatch        │  every eligible (recipient, channel) pair
    │     concurrently    │  at once, settle-all
    └─────────┬───────────┘
              ▼
    ┌─────────────────────┐
    │  4. Aggregate       │  counts per channel + failure labels
    └─────────────────────┘

Steps 1–2 may raise. From step 3 on, problems are data in the report.

The service also owns the process-scoped dependencies (database, identity
client, channel clients), built once by ``build_notification_service``
and closed at shutdown.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Mapping, Optional

from backend.app.core.config import Settings
from backend.app.core.database import Database
from backend.app.core.errors import ConfigurationError
from backend.app.core.logging_config import bind_context
from backend.app.notifications.aggregator import aggregate
from backend.app.notifications.capability import CapabilityValidator
from backend.app.notifications.channels import (
    ChannelClient,
    ResendEmailClient,
    TwilioSmsClient,
)
from backend.app.notifications.dispatcher import FanOutDispatcher
from backend.app.notifications.identity import IdentityAdminClient
from backend.app.notifications.messages import build_message
from backend.app.notifications.models import (
    Channel,
    DeliveryReport,
    NotificationRequest,
    ResolverStrategy,
)
from backend.app.notifications.resolvers import (
    PersonalContactsResolver,
    RecipientResolver,
    RoleBasedResolver,
)
from backend.app.notifications.store import RecipientStore, SqlRecipientStore

logger = logging.getLogger(__name__)

EMPTY_RECIPIENT_MESSAGES = {
    ResolverStrategy.PERSONAL_CONTACTS: "No contacts to notify",
    ResolverStrategy.ROLE_BASED: "No responders to notify",
}


class NotificationService:
    """
    Runs Validate → Resolve → Dispatch → Aggregate for one request.

    Usage:
        service = build_notification_service(settings)
        report = await service.notify(request, ResolverStrategy.ROLE_BASED)
        await service.close()
    """

    def __init__(
        self,
        settings: Settings,
        *,
        store: Optional[RecipientStore] = None,
        identity: Optional[IdentityAdminClient] = None,
        clients: Optional[Mapping[Channel, ChannelClient]] = None,
        database: Optional[Database] = None,
    ):
        self.settings = settings
        self.store = store
        self.identity = identity
        self.clients: Dict[Channel, ChannelClient] = dict(clients or {})
        self.database = database
        self.validator = CapabilityValidator(settings, registered=self.clients.keys())
        self.dispatcher = FanOutDispatcher(
            self.clients,
            max_concurrency=settings.DISPATCH_MAX_CONCURRENCY,
        )

    def resolver_for(self, strategy: ResolverStrategy) -> RecipientResolver:
        if self.store is None:
            raise ConfigurationError("Recipient store is not configured", missing=["DATABASE_URL"])

        if strategy == ResolverStrategy.PERSONAL_CONTACTS:
            return PersonalContactsResolver(self.store)

        if self.identity is None:
            raise ConfigurationError(
                "Identity provider is not configured",
                missing=["SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"],
            )
        return RoleBasedResolver(
            self.store, self.identity, roles=self.settings.RESPONDER_ROLES,
        )

    async def notify(
        self,
        request: NotificationRequest,
        strategy: ResolverStrategy,
    ) -> DeliveryReport:
        """
        Notify every recipient of *request* under *strategy*.

        Raises
        ------
        ConfigurationError
            Mandatory dependency missing; nothing was attempted.
        ResolutionError
            Recipient lookup failed; nothing was attempted.
        """
        started = time.perf_counter()
        log_extra = {"emergency_id": request.emergency_id, "strategy": strategy.value}
        bind_context(**log_extra)

        capabilities = self.validator.validate(strategy)
        recipients = await self.resolver_for(strategy).resolve(request)

        reachable = [r for r in recipients if r.is_reachable]
        if len(reachable) < len(recipients):
            logger.info(
                "Dropped %d recipient(s) with no email or phone",
                len(recipients) - len(reachable), extra=log_extra,
            )

        if not reachable:
            logger.info(EMPTY_RECIPIENT_MESSAGES[strategy], extra=log_extra)
            return aggregate(
                [],
                total_recipients=0,
                capabilities=capabilities,
                message=EMPTY_RECIPIENT_MESSAGES[strategy],
            )

        message = build_message(
            request, strategy, maps_base_url=self.settings.MAPS_BASE_URL,
        )
        attempts = await self.dispatcher.dispatch(reachable, capabilities, message)
        report = aggregate(
            attempts,
            total_recipients=len(reachable),
            capabilities=capabilities,
        )

        logger.info(
            "Emergency %s [%s]: %d email, %d SMS sent, %d failed, %d recipient(s) in %.1fms",
            request.emergency_id, strategy.value,
            report.sent(Channel.EMAIL), report.sent(Channel.SMS),
            report.total_failed, report.total_recipients,
            (time.perf_counter() - started) * 1000,
            extra={
                **log_extra,
                "attempt_count": report.attempt_count,
                "delivery": report.to_dict(),
            },
        )
        return report

    async def close(self) -> None:
        for client in self.clients.values():
            await client.close()
        if self.identity is not None:
            await self.identity.close()
        if self.database is not None:
            await self.database.dispose()


def build_channel_clients(settings: Settings) -> Dict[Channel, ChannelClient]:
    """Construct a client for every channel whose credentials are present."""
    clients: Dict[Channel, ChannelClient] = {}
    if settings.email_configured:
        clients[Channel.EMAIL] = ResendEmailClient(
            settings.RESEND_API_KEY,
            from_address=settings.EMAIL_FROM,
            api_url=settings.RESEND_API_URL,
            timeout_seconds=settings.CHANNEL_TIMEOUT_SECONDS,
        )
    if settings.sms_configured:
        clients[Channel.SMS] = TwilioSmsClient(
            settings.TWILIO_ACCOUNT_SID,
            settings.TWILIO_AUTH_TOKEN,
            from_number=settings.TWILIO_PHONE_NUMBER,
            api_base_url=settings.TWILIO_API_BASE_URL,
            timeout_seconds=settings.CHANNEL_TIMEOUT_SECONDS,
        )
    return clients


def build_notification_service(settings: Settings) -> NotificationService:
    """Build the process-scoped service from configuration."""
    database = None
    store = None
    if settings.DATABASE_URL:
        database = Database.from_url(
            settings.DATABASE_URL,
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            echo=settings.DATABASE_ECHO,
        )
        store = SqlRecipientStore(database)
    else:
        logger.error("DATABASE_URL is not set; notification requests will fail")

    identity = None
    if settings.identity_configured:
        identity = IdentityAdminClient(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_ROLE_KEY,
            page_size=settings.IDENTITY_PAGE_SIZE,
            timeout_seconds=settings.IDENTITY_TIMEOUT_SECONDS,
        )

    clients = build_channel_clients(settings)
    logger.info(
        "Notification channels configured: %s",
        [ch.value for ch in clients] or "none",
    )

    return NotificationService(
        settings,
        store=store,
        identity=identity,
        clients=clients,
        database=database,
    )
