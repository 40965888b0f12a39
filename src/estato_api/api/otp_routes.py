"""OTP router — issue, verify and resend one-time passcodes.

Endpoints
---------
POST /api/otp/send     → generate a code and deliver it by SMS or email
POST /api/otp/verify   → check a submitted code
POST /api/otp/resend   → invalidate the outstanding code and send a new one
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status

from estato_api.api.errors import DELIVERY_FAILED, APIError
from estato_api.api.schemas import (
    APIResponse,
    IdentifierRequest,
    OTPSendRequest,
    OTPVerifyRequest,
)
from estato_api.otp.service import IssueResult, OTPDeliveryFailed, OTPService
from estato_api.otp.store import VerifyOutcome

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/otp", tags=["otp"])

_FAILURE_MESSAGES = {
    VerifyOutcome.NOT_FOUND: "OTP not found. Please request a new OTP.",
    VerifyOutcome.EXPIRED: "OTP expired. Please request a new OTP.",
    VerifyOutcome.ATTEMPTS_EXCEEDED: "Too many failed attempts. Please request a new OTP.",
    VerifyOutcome.MISMATCH: "Invalid OTP",
}


def get_otp_service(request: Request) -> OTPService:
    """Return the service instance attached to the app at startup."""
    return request.app.state.otp_service


def _issue_response(result: IssueResult) -> APIResponse:
    data: dict = {"expiresIn": result.expires_in_minutes}
    if result.code is not None:
        data["otp"] = result.code
    if result.delivered:
        message = "OTP sent successfully"
    else:
        data["delivered"] = False
        message = "OTP issued but delivery could not be confirmed"
    return APIResponse(success=True, message=message, data=data)


async def _issue(body: IdentifierRequest, service: OTPService, *, resend: bool) -> APIResponse:
    channel = service.channel_for(body.kind)
    try:
        if resend:
            result = await service.resend(body.identifier, channel)
        else:
            result = await service.issue(body.identifier, channel)
    except OTPDeliveryFailed as exc:
        raise APIError(
            status.HTTP_502_BAD_GATEWAY,
            "Failed to send OTP",
            DELIVERY_FAILED,
        ) from exc
    return _issue_response(result)


# ── Endpoints ────────────────────────────────────────────

@router.post("/send", response_model=APIResponse, response_model_exclude_none=True)
async def send_otp(body: OTPSendRequest, service: OTPService = Depends(get_otp_service)):
    """Generate an OTP for a phone number or email address and deliver it."""
    return await _issue(body, service, resend=False)


@router.post("/verify", response_model=APIResponse)
async def verify_otp(body: OTPVerifyRequest, service: OTPService = Depends(get_otp_service)):
    """Validate a submitted OTP."""
    result = service.verify(body.identifier, body.otp)
    if result.verified:
        return APIResponse(
            success=True,
            message="OTP verified successfully",
            data={"verified": True},
        )

    extra: dict = {"verified": False}
    if result.outcome is VerifyOutcome.MISMATCH:
        extra["attemptsRemaining"] = result.attempts_remaining
    raise APIError(
        status.HTTP_400_BAD_REQUEST,
        _FAILURE_MESSAGES[result.outcome],
        result.outcome.value,
        **extra,
    )


@router.post("/resend", response_model=APIResponse, response_model_exclude_none=True)
async def resend_otp(body: OTPSendRequest, service: OTPService = Depends(get_otp_service)):
    """Discard any outstanding OTP and send a fresh one.

    The body is validated exactly like ``/send``.
    """
    return await _issue(body, service, resend=True)
