"""Request / response models for the OTP endpoints."""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

_PHONE_STRIP = re.compile(r"[\s\-.()]")
_PHONE_PATTERN = re.compile(r"^\+?[1-9][0-9]{7,14}$")


def normalize_phone(value: str) -> str:
    """Strip separators and check the result looks like a mobile number."""
    phone = _PHONE_STRIP.sub("", value)
    if not _PHONE_PATTERN.match(phone):
        raise ValueError("invalid phone number")
    return phone


# ── Requests ─────────────────────────────────────────────

class IdentifierRequest(BaseModel):
    """Body carrying a phone number and/or an email address.

    When both are present the phone number is used.
    """

    phone: str | None = None
    email: EmailStr | None = None

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_phone(value)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str | None) -> str | None:
        return value.lower() if value is not None else None

    @model_validator(mode="after")
    def _require_identifier(self) -> IdentifierRequest:
        if self.phone is None and self.email is None:
            raise ValueError("phone or email required")
        return self

    @property
    def identifier(self) -> str:
        return self.phone or self.email  # type: ignore[return-value]

    @property
    def kind(self) -> str:
        return "phone" if self.phone else "email"


class OTPSendRequest(IdentifierRequest):
    pass


class OTPVerifyRequest(IdentifierRequest):
    otp: str = Field(..., pattern=r"^[0-9]{6}$", description="6-digit code")


# ── Responses ────────────────────────────────────────────

class APIResponse(BaseModel):
    success: bool
    message: str
    data: dict[str, Any] | None = None

