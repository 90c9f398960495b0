"""
store.py — Relational lookups behind the recipient resolvers.

``RecipientStore`` is the boundary the resolvers and the emergency
hand-off depend on; ``SqlRecipientStore`` implements it with SQLAlchemy.
Tests substitute an in-memory implementation.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from backend.app.core.database import Database
from backend.app.notifications.models import Recipient
from backend.app.notifications.tables import Contact, EmergencyReport, Profile, UserRole

logger = logging.getLogger(__name__)

# asyncpg connect failures (refused, unreachable host) reach callers as raw
# OSError; SQLAlchemy only wraps errors raised once a connection exists.
STORE_ERRORS = (SQLAlchemyError, OSError)


class RecipientStore(Protocol):
    async def list_contacts(self, user_id: str) -> List[Recipient]: ...

    async def list_user_ids_with_roles(self, roles: Sequence[str]) -> List[str]: ...

    async def get_profile_name(self, user_id: str) -> Optional[str]: ...

    async def create_emergency_report(
        self,
        *,
        user_id: str,
        emergency_type: str,
        latitude: float,
        longitude: float,
        description: Optional[str] = None,
    ) -> str: ...


class SqlRecipientStore:
    """SQLAlchemy implementation of ``RecipientStore``."""

    def __init__(self, database: Database):
        self.database = database

    async def list_contacts(self, user_id: str) -> List[Recipient]:
        stmt = (
            select(Contact)
            .where(Contact.user_id == user_id)
            .order_by(Contact.created_at, Contact.id)
        )
        async with self.database.session() as session:
            rows = (await session.execute(stmt)).scalars().all()

        return [
            Recipient(
                recipient_id=row.id,
                display_name=row.name,
                email=row.email,
                phone=row.phone,
            )
            for row in rows
        ]

    async def list_user_ids_with_roles(self, roles: Sequence[str]) -> List[str]:
        stmt = (
            select(UserRole.user_id)
            .where(UserRole.role.in_(list(roles)))
            .order_by(UserRole.user_id)
        )
        async with self.database.session() as session:
            user_ids = (await session.execute(stmt)).scalars().all()

        # One user may hold several roles
        return list(dict.fromkeys(user_ids))

    async def get_profile_name(self, user_id: str) -> Optional[str]:
        async with self.database.session() as session:
            profile = await session.get(Profile, user_id)
        return profile.full_name if profile else None

    async def create_emergency_report(
        self,
        *,
        user_id: str,
        emergency_type: str,
        latitude: float,
        longitude: float,
        description: Optional[str] = None,
    ) -> str:
        report = EmergencyReport(
            user_id=user_id,
            emergency_type=emergency_type,
            description=description,
            latitude=latitude,
            longitude=longitude,
            status="pending",
        )
        async with self.database.session() as session:
            session.add(report)
            await session.flush()
            report_id = report.id

        logger.info("Emergency report %s stored for user %s", report_id, user_id)
        return report_id
