"""Estato API — configuration loaded from environment."""

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, loaded from .env or environment variables."""

    # ── OTP ───────────────────────────────────────────────
    otp_expire_minutes: int = 10
    otp_max_attempts: int = 5
    # Debug affordance: echo generated codes back in API responses.
    otp_dev_echo: bool = False
    otp_delivery_failure_policy: Literal["rollback", "retain"] = "rollback"
    otp_sweep_interval_seconds: float = 60.0

    # ── Twilio (SMS) ──────────────────────────────────────
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""

    # ── SMTP (email) ──────────────────────────────────────
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    email_from: str = "no-reply@estato.app"

    # ── App ───────────────────────────────────────────────
    app_name: str = "Estato API"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def otp_ttl_seconds(self) -> int:
        return self.otp_expire_minutes * 60

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


# Singleton settings instance
settings = Settings()
