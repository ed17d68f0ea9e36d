"""Send flight notifications as plain-text email via SMTP."""

from __future__ import annotations

import logging
import os
import smtplib
from email.mime.text import MIMEText

from pydantic import BaseModel

from flightwatch.errors import NotificationError

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Flight update"


class SmtpConfig(BaseModel):
    """SMTP settings loaded from environment variables."""

    host: str
    port: int = 587
    user: str
    password: str
    from_address: str
    use_tls: bool = True

    @classmethod
    def from_env(cls) -> SmtpConfig:
        """Load from environment variables. Raises ValueError if not configured."""
        host = os.environ.get("FLIGHTWATCH_SMTP_HOST")
        if not host:
            raise ValueError(
                "SMTP not configured. Set FLIGHTWATCH_SMTP_HOST, "
                "FLIGHTWATCH_SMTP_USER, FLIGHTWATCH_SMTP_PASSWORD, "
                "and FLIGHTWATCH_FROM_EMAIL."
            )
        return cls(
            host=host,
            port=int(os.environ.get("FLIGHTWATCH_SMTP_PORT", "587")),
            user=os.environ.get("FLIGHTWATCH_SMTP_USER", ""),
            password=os.environ.get("FLIGHTWATCH_SMTP_PASSWORD", ""),
            from_address=os.environ.get("FLIGHTWATCH_FROM_EMAIL", ""),
            use_tls=os.environ.get("FLIGHTWATCH_SMTP_TLS", "true").lower() != "false",
        )


def subject_from_text(text: str) -> str:
    """First line of a chat message, without its bold markers."""
    first = text.strip().splitlines()[0] if text.strip() else ""
    return first.strip("* ") or DEFAULT_SUBJECT


class EmailSender:
    """Deliver chat-style messages by email; the recipient is an address."""

    def __init__(self, config: SmtpConfig | None = None):
        self.config = config or SmtpConfig.from_env()

    def send(self, recipient: str, text: str) -> None:
        """Raises NotificationError on SMTP failure."""
        msg = MIMEText(text, "plain", "utf-8")
        msg["Subject"] = subject_from_text(text)
        msg["From"] = self.config.from_address
        msg["To"] = recipient

        logger.info("Sending email to %s via %s:%d", recipient, self.config.host, self.config.port)
        try:
            with smtplib.SMTP(self.config.host, self.config.port) as server:
                if self.config.use_tls:
                    server.starttls()
                if self.config.user:
                    server.login(self.config.user, self.config.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"Failed to email {recipient}: {exc}") from exc
