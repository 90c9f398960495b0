"""
email_alert.py — Email delivery channel via the Resend HTTP API.

Delivery mechanism:
    POST https://api.resend.com/emails
    Authorization: Bearer <RESEND_API_KEY>
    {"from": ..., "to": [address], "subject": ..., "html": ...}

A 2xx response carries the provider message id; anything else is a
failed attempt with the response body captured for the report.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from backend.app.core.logging_config import mask_contact
from backend.app.notifications.channels.base import ChannelClient, SendResult
from backend.app.notifications.models import AlertMessage, Channel, Recipient

logger = logging.getLogger(__name__)


class ResendEmailClient(ChannelClient):
    """
    Sends alert emails through Resend.

    Usage:
        client = ResendEmailClient(api_key="re_...", from_address="Alerts <a@b.c>")
        result = await client.send(recipient, message)
        await client.close()
    """

    channel = Channel.EMAIL

    def __init__(
        self,
        api_key: str,
        *,
        from_address: str,
        api_url: str = "https://api.resend.com/emails",
        timeout_seconds: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url
        self.from_address = from_address
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    async def send(self, recipient: Recipient, message: AlertMessage) -> SendResult:
        address = recipient.contact_for(Channel.EMAIL)
        if address is None:
            return SendResult(ok=False, detail="No email address on file")

        response = await self._http.post(
            self.api_url,
            headers=self._headers,
            json={
                "from": self.from_address,
                "to": [address],
                "subject": message.subject,
                "html": message.html,
            },
        )
        result = SendResult.from_response(response, "id")

        if result.ok:
            logger.info(
                "[EMAIL] Sent to %s (%s) id=%s",
                mask_contact(address), recipient.display_name, result.provider_message_id,
            )
        else:
            logger.error("[EMAIL] Rejected for %s: %s", mask_contact(address), result.detail)
        return result

    async def close(self) -> None:
        if self._owns_client and not self._http.is_closed:
            await self._http.aclose()
