"""
resolvers.py — Recipient resolution strategies.

Two interchangeable strategies share ``async resolve(request)``:

    PersonalContactsResolver   the reporter's saved contacts
    RoleBasedResolver          every responder/admin account with an email
                               in the identity provider (phone used too
                               when the account has one)

An empty result is a success. A failed lookup raises ``ResolutionError``
before any delivery attempt exists.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Sequence

import httpx

from backend.app.core.errors import ResolutionError, ValidationError
from backend.app.notifications.identity import IdentityAdminClient
from backend.app.notifications.models import Channel, NotificationRequest, Recipient
from backend.app.notifications.store import STORE_ERRORS, RecipientStore

logger = logging.getLogger(__name__)

DEFAULT_RESPONDER_ROLES = ("responder", "admin")


def unique_recipients(recipients: Iterable[Recipient]) -> List[Recipient]:
    """Drop repeated recipient ids, keeping first-seen order."""
    seen: Dict[str, Recipient] = {}
    for r in recipients:
        seen.setdefault(r.recipient_id, r)
    return list(seen.values())


class RecipientResolver(ABC):
    """Contract shared by both strategies."""

    name: str = "base"

    @abstractmethod
    async def resolve(self, request: NotificationRequest) -> List[Recipient]:
        """Return the unique recipients for *request* (possibly empty)."""


class PersonalContactsResolver(RecipientResolver):
    """Contacts owned by the reporting user."""

    name = "personal_contacts"

    def __init__(self, store: RecipientStore):
        self.store = store

    async def resolve(self, request: NotificationRequest) -> List[Recipient]:
        if not request.subject_user_id:
            raise ValidationError("user_id is required", field="user_id")

        try:
            contacts = await self.store.list_contacts(request.subject_user_id)
        except STORE_ERRORS as exc:
            logger.error("Contact lookup failed for %s: %s", request.subject_user_id, exc)
            raise ResolutionError("data store", str(exc), query="contacts") from exc

        recipients = unique_recipients(contacts)
        logger.info(
            "Resolved %d contact(s) for user %s",
            len(recipients), request.subject_user_id,
            extra={"emergency_id": request.emergency_id, "recipient_count": len(recipients)},
        )
        return recipients


class RoleBasedResolver(RecipientResolver):
    """All accounts holding a responder-type role."""

    name = "role_based"

    def __init__(
        self,
        store: RecipientStore,
        identity: IdentityAdminClient,
        roles: Sequence[str] = DEFAULT_RESPONDER_ROLES,
    ):
        self.store = store
        self.identity = identity
        self.roles = tuple(roles)

    async def resolve(self, request: NotificationRequest) -> List[Recipient]:
        try:
            user_ids = await self.store.list_user_ids_with_roles(self.roles)
        except STORE_ERRORS as exc:
            logger.error("Role lookup failed: %s", exc)
            raise ResolutionError("data store", str(exc), query="user_roles") from exc

        if not user_ids:
            logger.info("No accounts hold roles %s", list(self.roles))
            return []

        try:
            accounts = await self.identity.list_accounts()
        except httpx.HTTPError as exc:
            logger.error("Identity provider listing failed: %s", exc)
            raise ResolutionError("identity provider", str(exc)) from exc

        by_id = {a.account_id: a for a in accounts}
        recipients: List[Recipient] = []
        for user_id in dict.fromkeys(user_ids):
            account = by_id.get(user_id)
            if account is None:
                continue
            recipient = Recipient(
                recipient_id=user_id,
                display_name=account.full_name or account.email or user_id,
                email=account.email,
                phone=account.phone,
            )
            # Accounts without a usable email were never eligible
            if recipient.has_contact_for(Channel.EMAIL):
                recipients.append(recipient)

        logger.info(
            "Resolved %d responder(s) from %d role holder(s)",
            len(recipients), len(user_ids),
            extra={"emergency_id": request.emergency_id, "recipient_count": len(recipients)},
        )
        return recipients
