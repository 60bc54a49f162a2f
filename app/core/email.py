# app/core/email.py

import logging
from email.message import EmailMessage
from typing import Optional

import aiosmtplib

from app.core.config import settings

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """Raised when a message could not be handed to the mail server."""


class SmtpMailSender:
    """
    Sends plain-text email asynchronously over SMTP.
    """

    def __init__(
        self,
        hostname: str,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        start_tls: bool = True,
        sender: str = "",
    ) -> None:
        self.hostname = hostname
        self.port = port
        self.username = username
        self.password = password
        self.start_tls = start_tls
        self.sender = sender

    async def send(self, to_address: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to_address
        message["Subject"] = subject
        message.set_content(body)

        try:
            await aiosmtplib.send(
                message,
                hostname=self.hostname,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.start_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as ex:
            raise DeliveryError(f"Could not deliver mail to {to_address}: {ex}") from ex


class LoggingMailSender:
    """
    Dev/Test transport used when no SMTP host is configured:
    records the envelope in the log instead of sending.
    """

    async def send(self, to_address: str, subject: str, body: str) -> None:
        # never log the body: it carries one-time codes
        logger.info("[EMAIL NOT SENT] To: %s | Subject: %s", to_address, subject)


def build_mail_sender():
    if not settings.SMTP_HOST:
        return LoggingMailSender()
    return SmtpMailSender(
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        start_tls=settings.SMTP_USE_TLS,
        sender=settings.EMAIL_FROM,
    )


mail_sender = build_mail_sender()
