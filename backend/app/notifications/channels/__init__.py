"""
channels — Per-channel delivery clients.

Each client exposes:
    async send(recipient, message) → SendResult

Clients hold no per-request state; concurrency and outcome recording
live in the dispatcher.
"""

from backend.app.notifications.channels.base import ChannelClient, SendResult
from backend.app.notifications.channels.email_alert import ResendEmailClient
from backend.app.notifications.channels.sms_gateway import TwilioSmsClient

__all__ = [
    "ChannelClient",
    "ResendEmailClient",
    "SendResult",
    "TwilioSmsClient",
]
