"""Tests for the SMS / email delivery channels."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import aiosmtplib
import pytest
from twilio.base.exceptions import TwilioRestException

from estato_api.config import Settings
from estato_api.otp.delivery import (
    DeliveryError,
    EmailDelivery,
    LoggingDelivery,
    SMSDelivery,
    build_email_channel,
    build_sms_channel,
)


@pytest.fixture
def twilio_client():
    with patch("estato_api.otp.delivery.Client") as client_cls:
        client = MagicMock()
        client.messages.create.return_value = MagicMock(sid="SM123")
        client_cls.return_value = client
        yield client


# ──────────────────────────────────────────────────────────
# SMS
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_sms_delivery_calls_twilio(twilio_client):
    channel = SMSDelivery("AC123", "secret", "+15550000000")

    await channel.send("+15551234567", "Your code is 123456")

    twilio_client.messages.create.assert_called_once_with(
        body="Your code is 123456",
        from_="+15550000000",
        to="+15551234567",
    )


@pytest.mark.asyncio
async def test_sms_delivery_wraps_twilio_errors(twilio_client):
    twilio_client.messages.create.side_effect = TwilioRestException(
        500, "/Messages", msg="provider exploded"
    )
    channel = SMSDelivery("AC123", "secret", "+15550000000")

    with pytest.raises(DeliveryError):
        await channel.send("+15551234567", "hi")


@pytest.mark.asyncio
async def test_sms_delivery_wraps_network_errors(twilio_client):
    twilio_client.messages.create.side_effect = ConnectionError("unreachable")
    channel = SMSDelivery("AC123", "secret", "+15550000000")

    with pytest.raises(DeliveryError):
        await channel.send("+15551234567", "hi")


# ──────────────────────────────────────────────────────────
# Email
# ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_email_delivery_sends_message():
    channel = EmailDelivery(
        hostname="smtp.example.com",
        port=587,
        sender="no-reply@estato.app",
        subject="Your Estato API verification code",
        username="mailer",
        password="pw",
    )
    with patch("estato_api.otp.delivery.aiosmtplib.send", new=AsyncMock()) as send:
        await channel.send("alice@example.com", "Your code is 123456")

    send.assert_awaited_once()
    msg = send.await_args.args[0]
    assert msg["To"] == "alice@example.com"
    assert msg["From"] == "no-reply@estato.app"
    assert "123456" in msg.get_content()
    assert send.await_args.kwargs["hostname"] == "smtp.example.com"
    assert send.await_args.kwargs["start_tls"] is True


@pytest.mark.asyncio
async def test_email_delivery_wraps_smtp_errors():
    channel = EmailDelivery("smtp.example.com", 587, "no-reply@estato.app", "Code")
    failing = AsyncMock(side_effect=aiosmtplib.SMTPException("rejected"))
    with patch("estato_api.otp.delivery.aiosmtplib.send", new=failing):
        with pytest.raises(DeliveryError):
            await channel.send("alice@example.com", "hi")


@pytest.mark.asyncio
async def test_logging_delivery_never_fails(caplog):
    channel = LoggingDelivery("email")
    with caplog.at_level("WARNING"):
        await channel.send("alice@example.com", "Your code is 123456")
    assert "alice@example.com" in caplog.text


# ──────────────────────────────────────────────────────────
# Factories
# ──────────────────────────────────────────────────────────
def test_factories_fall_back_to_logging_without_credentials():
    settings = Settings(_env_file=None, twilio_account_sid="", smtp_host="")
    assert isinstance(build_sms_channel(settings), LoggingDelivery)
    assert isinstance(build_email_channel(settings), LoggingDelivery)


def test_factories_build_real_channels(twilio_client):
    settings = Settings(
        _env_file=None,
        twilio_account_sid="AC123",
        twilio_auth_token="secret",
        twilio_phone_number="+15550000000",
        smtp_host="smtp.example.com",
    )
    assert isinstance(build_sms_channel(settings), SMSDelivery)
    assert isinstance(build_email_channel(settings), EmailDelivery)
