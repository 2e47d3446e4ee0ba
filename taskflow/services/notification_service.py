"""
Outbound notifications.

Delivery is best effort: callers log failures and carry on, a failed email
never undoes the workflow step that triggered it.
"""
from typing import Optional, Protocol
from email.message import EmailMessage
import asyncio
import smtplib

from ..config import Settings, settings as default_settings
from ..utils.logging import get_logger

logger = get_logger(__name__)


class Notifier(Protocol):
    async def send(self, to: str, subject: str, body: str) -> None:
        ...


class EmailNotifier:
    """Plain-text email over SMTP; only logs the message when no SMTP host is configured"""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    async def send(self, to: str, subject: str, body: str) -> None:
        if not self.config.smtp_host:
            logger.info(f"SMTP not configured, email to {to} not sent: {subject}")
            return

        message = EmailMessage()
        message["From"] = self.config.mail_from
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        await asyncio.to_thread(self._deliver, message)
        logger.info(f"Sent email to {to}: {subject}")

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=10) as smtp:
            if self.config.smtp_use_tls:
                smtp.starttls()
            if self.config.smtp_username:
                smtp.login(self.config.smtp_username, self.config.smtp_password or "")
            smtp.send_message(message)


def get_notifier() -> Notifier:
    return EmailNotifier()
