"""
test_store.py — SQL recipient store against a throwaway SQLite database.

Run with:
    pytest tests/test_store.py -v
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine

from backend.app.core.database import Database
from backend.app.notifications.models import Recipient
from backend.app.notifications.store import SqlRecipientStore
from backend.app.notifications.tables import Contact, EmergencyReport, Profile, UserRole

T0 = datetime(2024, 11, 30, 8, 0, tzinfo=timezone.utc)


@asynccontextmanager
async def seeded_store(tmp_path):
    database = Database(create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'notifier.db'}"))
    await database.create_all()
    async with database.session() as session:
        session.add_all([
            # Inserted out of creation order
            Contact(id="c2", user_id="user-1", name="Meena", email="meena@example.com",
                    created_at=T0 + timedelta(minutes=5)),
            Contact(id="c1", user_id="user-1", name="Ravi", email="ravi@example.com",
                    phone="+919876543210", created_at=T0),
            Contact(id="b-tie", user_id="user-2", name="Bala", phone="+15550000002", created_at=T0),
            Contact(id="a-tie", user_id="user-2", name="Anu", phone="+15550000001", created_at=T0),
            UserRole(user_id="resp-2", role="responder"),
            UserRole(user_id="resp-2", role="admin"),
            UserRole(user_id="resp-1", role="responder"),
            UserRole(user_id="citizen-1", role="citizen"),
            Profile(id="user-1", full_name="Asha"),
            Profile(id="user-3", full_name=None),
        ])
    try:
        yield SqlRecipientStore(database)
    finally:
        await database.dispose()


class TestContacts:

    @pytest.mark.asyncio
    async def test_ordered_by_creation(self, tmp_path):
        async with seeded_store(tmp_path) as store:
            contacts = await store.list_contacts("user-1")
        assert contacts == [
            Recipient("c1", "Ravi", "ravi@example.com", "+919876543210"),
            Recipient("c2", "Meena", "meena@example.com", None),
        ]

    @pytest.mark.asyncio
    async def test_same_timestamp_ordered_by_id(self, tmp_path):
        async with seeded_store(tmp_path) as store:
            contacts = await store.list_contacts("user-2")
        assert [c.recipient_id for c in contacts] == ["a-tie", "b-tie"]

    @pytest.mark.asyncio
    async def test_unknown_user_has_none(self, tmp_path):
        async with seeded_store(tmp_path) as store:
            assert await store.list_contacts("nobody") == []


class TestRoles:

    @pytest.mark.asyncio
    async def test_multi_role_holder_listed_once(self, tmp_path):
        async with seeded_store(tmp_path) as store:
            user_ids = await store.list_user_ids_with_roles(["responder", "admin"])
        assert user_ids == ["resp-1", "resp-2"]

    @pytest.mark.asyncio
    async def test_filters_by_role(self, tmp_path):
        async with seeded_store(tmp_path) as store:
            assert await store.list_user_ids_with_roles(["citizen"]) == ["citizen-1"]
            assert await store.list_user_ids_with_roles(["dispatcher"]) == []


class TestProfilesAndReports:

    @pytest.mark.asyncio
    async def test_profile_name(self, tmp_path):
        async with seeded_store(tmp_path) as store:
            assert await store.get_profile_name("user-1") == "Asha"
            assert await store.get_profile_name("user-3") is None
            assert await store.get_profile_name("missing") is None

    @pytest.mark.asyncio
    async def test_create_emergency_report(self, tmp_path):
        async with seeded_store(tmp_path) as store:
            report_id = await store.create_emergency_report(
                user_id="user-1",
                emergency_type="fire",
                latitude=13.0827,
                longitude=80.2707,
                description="Kitchen fire",
            )
            async with store.database.session() as session:
                row = (
                    await session.execute(select(EmergencyReport).where(EmergencyReport.id == report_id))
                ).scalar_one()

        assert report_id
        assert row.status == "pending"
        assert row.emergency_type == "fire"
        assert row.description == "Kitchen fire"
        assert row.created_at is not None
