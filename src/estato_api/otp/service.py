"""OTP service — ties the store to the delivery channels.

The store is committed before a channel is called, and the channel is
awaited with no lock held, so a slow provider never stalls verification.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from estato_api.config import Settings
from estato_api.otp.delivery import (
    DeliveryChannel,
    DeliveryError,
    build_email_channel,
    build_sms_channel,
)
from estato_api.otp.store import OTPStore, VerificationResult

logger = logging.getLogger(__name__)

FailurePolicy = Literal["rollback", "retain"]
IdentifierKind = Literal["phone", "email"]

MESSAGE_TEMPLATE = "Your Estato verification code is: {code}. Valid for {minutes} minutes."


@dataclass
class IssueResult:
    """Outcome of an issuance request."""

    identifier: str
    delivered: bool
    expires_in_minutes: int
    # Only set when development echo is enabled.
    code: str | None = None


class OTPDeliveryFailed(Exception):
    """Raised when delivery fails and the issued code was rolled back."""

    def __init__(self, identifier: str, channel: str) -> None:
        super().__init__(f"Could not deliver OTP to {identifier} via {channel}")
        self.identifier = identifier
        self.channel = channel


class OTPService:
    """Issue, resend and verify one-time passcodes."""

    def __init__(
        self,
        store: OTPStore,
        *,
        sms_channel: DeliveryChannel,
        email_channel: DeliveryChannel,
        failure_policy: FailurePolicy = "rollback",
        dev_echo: bool = False,
    ) -> None:
        self.store = store
        self._channels: dict[str, DeliveryChannel] = {
            "phone": sms_channel,
            "email": email_channel,
        }
        self._failure_policy = failure_policy
        self._dev_echo = dev_echo

    @property
    def expires_in_minutes(self) -> int:
        return max(1, round(self.store.ttl_seconds / 60))

    def channel_for(self, kind: IdentifierKind) -> DeliveryChannel:
        """Return the channel that serves identifiers of *kind*."""
        return self._channels[kind]

    async def issue(self, identifier: str, channel: DeliveryChannel) -> IssueResult:
        """Issue a new code for *identifier* and send it over *channel*.

        Raises :class:`OTPDeliveryFailed` if the channel fails and the
        failure policy rolls the issuance back.
        """
        code = self.store.issue(identifier)
        message = MESSAGE_TEMPLATE.format(code=code, minutes=self.expires_in_minutes)

        try:
            await channel.send(identifier, message)
        except DeliveryError:
            return self._handle_delivery_failure(identifier, code, channel)

        logger.info("OTP for %s dispatched via %s", identifier, channel.name)
        return IssueResult(
            identifier=identifier,
            delivered=True,
            expires_in_minutes=self.expires_in_minutes,
            code=code if self._dev_echo else None,
        )

    async def resend(self, identifier: str, channel: DeliveryChannel) -> IssueResult:
        """Invalidate any outstanding code for *identifier* and issue a new one."""
        if self.store.discard(identifier):
            logger.info("Previous OTP for %s invalidated on resend", identifier)
        return await self.issue(identifier, channel)

    def verify(self, identifier: str, code: str) -> VerificationResult:
        """Check a submitted *code* for *identifier*."""
        result = self.store.verify(identifier, code)
        if result.verified:
            logger.info("OTP verified for %s", identifier)
        else:
            logger.info(
                "OTP verification failed for %s: %s (remaining=%s)",
                identifier,
                result.outcome.value,
                result.attempts_remaining,
            )
        return result

    # ── Private helpers ──────────────────────────────────

    def _handle_delivery_failure(
        self, identifier: str, code: str, channel: DeliveryChannel
    ) -> IssueResult:
        # An echoed code must stay usable, so dev echo always retains.
        if self._failure_policy == "rollback" and not self._dev_echo:
            self.store.discard(identifier, code=code)
            logger.error("OTP delivery via %s failed for %s; code rolled back", channel.name, identifier)
            raise OTPDeliveryFailed(identifier, channel.name)

        logger.warning("OTP delivery via %s failed for %s; code retained", channel.name, identifier)
        return IssueResult(
            identifier=identifier,
            delivered=False,
            expires_in_minutes=self.expires_in_minutes,
            code=code if self._dev_echo else None,
        )


def build_otp_service(settings: Settings) -> OTPService:
    """Wire a fresh store and delivery channels from *settings*."""
    store = OTPStore(
        ttl_seconds=settings.otp_ttl_seconds,
        max_attempts=settings.otp_max_attempts,
    )
    if settings.otp_dev_echo:
        logger.warning("OTP_DEV_ECHO is enabled — codes are returned in API responses")
    return OTPService(
        store,
        sms_channel=build_sms_channel(settings),
        email_channel=build_email_channel(settings),
        failure_policy=settings.otp_delivery_failure_policy,
        dev_echo=settings.otp_dev_echo,
    )
