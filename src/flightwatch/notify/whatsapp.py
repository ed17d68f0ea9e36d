"""Send WhatsApp messages through the Twilio REST API."""

from __future__ import annotations

import logging
import os

import requests
from pydantic import BaseModel

from flightwatch.errors import NotificationError

logger = logging.getLogger(__name__)

TWILIO_API_URL = "https://api.twilio.com/2010-04-01"


class TwilioConfig(BaseModel):
    """Twilio settings loaded from environment variables."""

    account_sid: str
    auth_token: str
    from_number: str  # "whatsapp:+1..." or bare "+1..."

    @classmethod
    def from_env(cls) -> TwilioConfig:
        """Load from environment variables. Raises ValueError if not configured."""
        sid = os.environ.get("TWILIO_ACCOUNT_SID")
        token = os.environ.get("TWILIO_AUTH_TOKEN")
        from_number = os.environ.get("TWILIO_FROM_NUMBER")
        if not (sid and token and from_number):
            raise ValueError(
                "Twilio not configured. Set TWILIO_ACCOUNT_SID, "
                "TWILIO_AUTH_TOKEN, and TWILIO_FROM_NUMBER."
            )
        return cls(account_sid=sid, auth_token=token, from_number=from_number)


def whatsapp_address(number: str) -> str:
    """``"15551234567"`` -> ``"whatsapp:+15551234567"``."""
    if number.startswith("whatsapp:"):
        return number
    if not number.startswith("+"):
        number = f"+{number}"
    return f"whatsapp:{number}"


class WhatsAppSender:
    """Deliver plain-text chat messages over Twilio's WhatsApp channel."""

    def __init__(
        self,
        config: TwilioConfig,
        base_url: str = TWILIO_API_URL,
        session: requests.Session | None = None,
        timeout: float = 15,
    ):
        self.config = config
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, recipient: str, text: str) -> str:
        """Send ``text`` to a phone number. Returns the Twilio message SID.

        Raises:
            NotificationError: On transport or API failure, so the caller can retry.
        """
        to = whatsapp_address(recipient)
        url = f"{self.base_url}/Accounts/{self.config.account_sid}/Messages.json"
        try:
            resp = self.session.post(
                url,
                data={
                    "From": whatsapp_address(self.config.from_number),
                    "To": to,
                    "Body": text,
                },
                auth=(self.config.account_sid, self.config.auth_token),
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise NotificationError(f"Failed to send WhatsApp message to {to}: {exc}") from exc

        sid = resp.json().get("sid", "")
        logger.info("Sent WhatsApp message to %s (sid %s)", to, sid)
        return sid
