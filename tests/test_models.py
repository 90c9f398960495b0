"""
test_models.py — Data structures shared across the notification fan-out.

Covers:
    • Recipient channel eligibility (blank / whitespace contact fields)
    • DeliveryAttempt state machine (single terminal transition)
    • ChannelCapabilities immutability and ordering
    • DeliveryReport payload shapes for both endpoints

Run with:
    pytest tests/test_models.py -v
"""

from __future__ import annotations

import pytest

from fakes import make_recipient, make_request
from backend.app.core.errors import InvalidTransitionError
from backend.app.notifications.models import (
    AttemptOutcome,
    Availability,
    Channel,
    ChannelCapabilities,
    ChannelTally,
    DeliveryAttempt,
    DeliveryReport,
)


class TestChannel:

    def test_dispatch_order_email_first(self):
        assert list(Channel) == [Channel.EMAIL, Channel.SMS]

    def test_labels(self):
        assert Channel.EMAIL.label == "Email"
        assert Channel.SMS.label == "SMS"


class TestNotificationRequest:

    def test_type_display(self):
        req = make_request(emergency_type="natural_disaster")
        assert req.emergency_type_display == "NATURAL DISASTER"

    def test_is_immutable(self):
        req = make_request()
        with pytest.raises(AttributeError):
            req.emergency_id = "other"


class TestRecipient:

    def test_contact_stripped(self):
        r = make_recipient(email="  ravi@example.com ")
        assert r.contact_for(Channel.EMAIL) == "ravi@example.com"

    def test_blank_phone_not_eligible(self):
        r = make_recipient(phone="   ")
        assert not r.has_contact_for(Channel.SMS)
        assert r.has_contact_for(Channel.EMAIL)

    def test_unreachable_without_any_contact(self):
        r = make_recipient(email="", phone=None)
        assert not r.is_reachable


class TestDeliveryAttempt:

    def test_starts_pending(self):
        a = DeliveryAttempt(make_recipient(), Channel.EMAIL)
        assert a.outcome == AttemptOutcome.PENDING
        assert not a.is_terminal
        assert a.completed_at is None

    def test_mark_sent(self):
        a = DeliveryAttempt(make_recipient(), Channel.EMAIL)
        a.mark_sent("re_123")
        assert a.outcome == AttemptOutcome.SENT
        assert a.provider_message_id == "re_123"
        assert a.completed_at is not None

    def test_mark_failed_records_detail(self):
        a = DeliveryAttempt(make_recipient(), Channel.SMS)
        a.mark_failed("HTTP 400: invalid number")
        assert a.outcome == AttemptOutcome.FAILED
        assert a.error_detail == "HTTP 400: invalid number"

    def test_terminal_state_is_final(self):
        a = DeliveryAttempt(make_recipient(), Channel.SMS)
        a.mark_sent()
        with pytest.raises(InvalidTransitionError):
            a.mark_failed("late failure")
        assert a.outcome == AttemptOutcome.SENT

    def test_failure_label(self):
        a = DeliveryAttempt(make_recipient(name="Ana"), Channel.SMS)
        assert a.failure_label == "SMS to Ana"

    def test_to_dict(self):
        a = DeliveryAttempt(make_recipient(), Channel.EMAIL)
        a.mark_failed("boom")
        d = a.to_dict()
        assert d["channel"] == "email"
        assert d["outcome"] == "failed"
        assert d["completed_at"] is not None


class TestChannelCapabilities:

    def test_all_available(self):
        caps = ChannelCapabilities.all_available()
        assert caps.available == [Channel.EMAIL, Channel.SMS]
        assert caps.unavailable == []

    def test_flags_read_only(self):
        caps = ChannelCapabilities({Channel.EMAIL: Availability.AVAILABLE})
        with pytest.raises(TypeError):
            caps.flags[Channel.SMS] = Availability.AVAILABLE

    def test_missing_flag_is_unavailable(self):
        caps = ChannelCapabilities({Channel.EMAIL: Availability.AVAILABLE})
        assert not caps.is_available(Channel.SMS)
        assert caps.to_dict()["sms"]["status"] == "unavailable"


class TestDeliveryReport:

    def _report(self, failures=None, message=None) -> DeliveryReport:
        report = DeliveryReport(total_recipients=2, message=message)
        report.tallies[Channel.EMAIL] = ChannelTally(sent=2)
        report.tallies[Channel.SMS] = ChannelTally(sent=0, failed=1)
        report.failures = failures or []
        return report

    def test_totals(self):
        report = self._report(["SMS to Ravi"])
        assert report.total_sent == 2
        assert report.total_failed == 1
        assert report.attempt_count == 3

    def test_contacts_payload(self):
        body = self._report(["SMS to Ravi"]).to_contacts_payload()
        assert body == {
            "success": True,
            "emailsSent": 2,
            "smsSent": 0,
            "totalContacts": 2,
            "failures": ["SMS to Ravi"],
        }

    def test_contacts_payload_omits_empty_failures(self):
        body = self._report().to_contacts_payload()
        assert "failures" not in body

    def test_responders_payload_default_message(self):
        body = self._report().to_responders_payload()
        assert body == {
            "message": "Notifications sent",
            "successful": 2,
            "failed": 1,
            "total": 2,
        }

    def test_responders_payload_custom_message(self):
        body = DeliveryReport(message="No responders to notify").to_responders_payload()
        assert body["message"] == "No responders to notify"
        assert body["total"] == 0
