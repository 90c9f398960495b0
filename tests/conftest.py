"""Shared fixtures for the notifier tests."""

from __future__ import annotations

import os

import pytest

# Keep local credentials out of the test process.
for _key in (
    "DATABASE_URL",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "RESEND_API_KEY",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_PHONE_NUMBER",
):
    os.environ.pop(_key, None)
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fakes import (  # noqa: E402
    FakeIdentity,
    FakeStore,
    make_clients,
    make_recipient,
    make_settings,
)
from backend.app.notifications.identity import IdentityAccount  # noqa: E402
from backend.app.notifications.service import NotificationService  # noqa: E402


@pytest.fixture()
def settings():
    return make_settings()


@pytest.fixture()
def store() -> FakeStore:
    """Reporter ``user-1`` with two contacts; only Ravi has a phone."""
    return FakeStore(
        contacts={
            "user-1": [
                make_recipient("c1", "Ravi", "ravi@example.com", "+919876543210"),
                make_recipient("c2", "Meena", "meena@example.com", None),
            ],
        },
        roles={
            "resp-1": ["responder"],
            "resp-2": ["responder", "admin"],
            "admin-1": ["admin"],
            "citizen-1": ["citizen"],
        },
        profiles={"user-1": "Asha"},
    )


@pytest.fixture()
def identity() -> FakeIdentity:
    return FakeIdentity([
        IdentityAccount("resp-1", email="r1@example.com", phone="+15550000001", full_name="Karthik"),
        IdentityAccount("resp-2", email="r2@example.com", full_name="Divya"),
        IdentityAccount("admin-1", email=None, phone="+15550000003"),
        IdentityAccount("citizen-1", email="c1@example.com"),
    ])


@pytest.fixture()
def clients():
    return make_clients()


@pytest.fixture()
def service(settings, store, identity, clients) -> NotificationService:
    return NotificationService(settings, store=store, identity=identity, clients=clients)
