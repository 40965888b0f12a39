"""Delivery channels — push OTP messages out over SMS or email."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from email.message import EmailMessage

import aiosmtplib
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from estato_api.config import Settings

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """Raised when a provider fails to accept a message."""


class DeliveryChannel(ABC):
    """Abstract out-of-band transport for verification codes."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short channel name (used in logs)."""

    @abstractmethod
    async def send(self, identifier: str, message: str) -> None:
        """Deliver *message* to *identifier*.

        Returns normally on success and raises :class:`DeliveryError`
        otherwise.  Provider-specific error bodies are not interpreted.
        """


class SMSDelivery(DeliveryChannel):
    """Sends text messages through the Twilio REST API."""

    def __init__(self, account_sid: str, auth_token: str, from_number: str) -> None:
        self._client = Client(account_sid, auth_token)
        self._from_number = from_number

    @property
    def name(self) -> str:
        return "sms"

    async def send(self, identifier: str, message: str) -> None:
        try:
            # The Twilio SDK is blocking; keep it off the event loop.
            result = await asyncio.to_thread(
                self._client.messages.create,
                body=message,
                from_=self._from_number,
                to=identifier,
            )
        except (TwilioException, OSError) as exc:
            logger.error("SMS delivery to %s failed: %s", identifier, exc)
            raise DeliveryError(f"SMS delivery failed: {exc}") from exc
        logger.info("SMS sent to %s (sid=%s)", identifier, result.sid)


class EmailDelivery(DeliveryChannel):
    """Sends plain-text email using the configured SMTP server."""

    def __init__(
        self,
        hostname: str,
        port: int,
        sender: str,
        subject: str,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        self._hostname = hostname
        self._port = port
        self._sender = sender
        self._subject = subject
        self._username = username
        self._password = password

    @property
    def name(self) -> str:
        return "email"

    async def send(self, identifier: str, message: str) -> None:
        msg = EmailMessage()
        msg["Subject"] = self._subject
        msg["From"] = self._sender
        msg["To"] = identifier
        msg.set_content(message)

        logger.info("Sending verification email to %s", identifier)
        try:
            await aiosmtplib.send(
                msg,
                hostname=self._hostname,
                port=self._port,
                username=self._username,
                password=self._password,
                start_tls=True,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.error("Email delivery to %s failed: %s", identifier, exc)
            raise DeliveryError(f"Email delivery failed: {exc}") from exc
        logger.info("Verification email sent to %s", identifier)


class LoggingDelivery(DeliveryChannel):
    """Development stand-in that writes the message to the log."""

    def __init__(self, channel_name: str) -> None:
        self._channel_name = channel_name

    @property
    def name(self) -> str:
        return f"{self._channel_name} (log only)"

    async def send(self, identifier: str, message: str) -> None:
        logger.warning(
            "No %s provider configured; message for %s: %s",
            self._channel_name,
            identifier,
            message,
        )


def build_sms_channel(settings: Settings) -> DeliveryChannel:
    """Return a Twilio channel, or a log-only one if Twilio isn't configured."""
    if not (
        settings.twilio_account_sid
        and settings.twilio_auth_token
        and settings.twilio_phone_number
    ):
        logger.warning("Twilio credentials not configured — SMS codes will be logged only")
        return LoggingDelivery("sms")
    return SMSDelivery(
        settings.twilio_account_sid,
        settings.twilio_auth_token,
        settings.twilio_phone_number,
    )


def build_email_channel(settings: Settings) -> DeliveryChannel:
    """Return an SMTP channel, or a log-only one if SMTP isn't configured."""
    if not settings.smtp_host:
        logger.warning("SMTP_HOST not set — email codes will be logged only")
        return LoggingDelivery("email")
    return EmailDelivery(
        hostname=settings.smtp_host,
        port=settings.smtp_port,
        sender=settings.email_from,
        subject=f"Your {settings.app_name} verification code",
        username=settings.smtp_username or None,
        password=settings.smtp_password or None,
    )
