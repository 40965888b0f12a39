"""Interactive CLI simulator — exercise the OTP flow without an SMS/email provider."""

import asyncio
import logging

from estato_api.api.schemas import OTPSendRequest
from estato_api.config import settings
from estato_api.otp.delivery import LoggingDelivery
from estato_api.otp.service import OTPService
from estato_api.otp.store import OTPStore, VerifyOutcome

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
BOLD = "\033[1m"
RESET = "\033[0m"


async def main() -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s | %(message)s")

    print(f"\n{BOLD}{'=' * 52}")
    print("  🔐  Estato OTP — Verification Simulator")
    print(f"{'=' * 52}{RESET}\n")
    print(f"{DIM}Codes are printed in the log output below each request{RESET}")
    print(f"{DIM}Type 'resend' for a new code, 'quit' to exit{RESET}\n")

    raw = input(f"{YELLOW}Phone number or email: {RESET}").strip() or "+15551234567"
    if "@" in raw:
        request = OTPSendRequest(email=raw)
    else:
        request = OTPSendRequest(phone=raw)

    # ── Set up the service with log-only delivery ────────
    store = OTPStore(
        ttl_seconds=settings.otp_ttl_seconds,
        max_attempts=settings.otp_max_attempts,
    )
    channel = LoggingDelivery(request.kind)
    service = OTPService(store, sms_channel=channel, email_channel=channel)

    await service.issue(request.identifier, channel)

    while True:
        try:
            user_input = input(f"{BLUE}{BOLD}Code:{RESET} ").strip()
        except (KeyboardInterrupt, EOFError):
            print(f"\n{DIM}Goodbye!{RESET}")
            break

        if not user_input:
            continue
        if user_input.lower() == "quit":
            print(f"{DIM}Goodbye!{RESET}")
            break
        if user_input.lower() == "resend":
            await service.resend(request.identifier, channel)
            continue

        result = service.verify(request.identifier, user_input)
        if result.verified:
            print(f"{GREEN}✅ Verified {request.identifier}{RESET}\n")
            break
        if result.outcome is VerifyOutcome.MISMATCH:
            print(f"{RED}❌ Invalid code — {result.attempts_remaining} attempt(s) left{RESET}")
        else:
            print(f"{RED}⛔ {result.outcome.value} — type 'resend' for a new code{RESET}")


if __name__ == "__main__":
    asyncio.run(main())
