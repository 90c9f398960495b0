"""
sms_gateway.py — SMS delivery channel via the Twilio REST API.

Delivery mechanism:
    POST {base}/Accounts/{AccountSid}/Messages.json
    Basic auth (AccountSid, AuthToken), form encoded:
        To=<recipient phone>  From=<TWILIO_PHONE_NUMBER>  Body=<text>

Twilio concatenates long bodies itself; anything past its 1600-character
ceiling is truncated here rather than rejected.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from backend.app.core.logging_config import mask_contact
from backend.app.notifications.channels.base import ChannelClient, SendResult
from backend.app.notifications.models import AlertMessage, Channel, Recipient

logger = logging.getLogger(__name__)

SMS_SEGMENT_CHARS = 160
SMS_MAX_BODY = 1600


def _format_sms(text: str) -> str:
    if len(text) <= SMS_MAX_BODY:
        return text
    return text[: SMS_MAX_BODY - 3] + "..."


class TwilioSmsClient(ChannelClient):
    """Sends alert texts through Twilio's Messages resource."""

    channel = Channel.SMS

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        *,
        from_number: str,
        api_base_url: str = "https://api.twilio.com/2010-04-01",
        timeout_seconds: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.from_number = from_number
        self.messages_url = f"{api_base_url}/Accounts/{account_sid}/Messages.json"
        self._auth = httpx.BasicAuth(account_sid, auth_token)
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def send(self, recipient: Recipient, message: AlertMessage) -> SendResult:
        phone = recipient.contact_for(Channel.SMS)
        if phone is None:
            return SendResult(ok=False, detail="No phone number on file")

        body = _format_sms(message.text)
        response = await self._http.post(
            self.messages_url,
            auth=self._auth,
            data={"To": phone, "From": self.from_number, "Body": body},
        )
        result = SendResult.from_response(response, "sid")

        if result.ok:
            logger.info(
                "[SMS] Sent to %s (%s): %d chars, %d segment(s)",
                mask_contact(phone), recipient.display_name, len(body),
                1 + (len(body) - 1) // SMS_SEGMENT_CHARS,
            )
        else:
            logger.error("[SMS] Rejected for %s: %s", mask_contact(phone), result.detail)
        return result

    async def close(self) -> None:
        if self._owns_client and not self._http.is_closed:
            await self._http.aclose()
