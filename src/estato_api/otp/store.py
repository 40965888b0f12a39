"""In-memory OTP store with expiry and attempt limiting.

Each identifier (a normalized phone number or email address) owns at most
one :class:`OTPEntry`.  Issuing a code overwrites whatever was there before;
verifying consumes the entry on success, expiry or lockout.

All reads and writes for one identifier run under the same stripe lock, so a
burst of parallel guesses is counted one by one.  Nothing in here performs
I/O; delivery of the code is the caller's job and happens after the lock
has been released.
"""

from __future__ import annotations

import enum
import hmac
import logging
import secrets
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600
DEFAULT_MAX_ATTEMPTS = 5
CODE_LENGTH = 6

_LOCK_STRIPES = 64


def generate_code() -> str:
    """Return a uniformly random 6-digit code in ``100000``–``999999``."""
    return str(100000 + secrets.randbelow(900000))


class VerifyOutcome(str, enum.Enum):
    VERIFIED = "VERIFIED"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"
    ATTEMPTS_EXCEEDED = "ATTEMPTS_EXCEEDED"
    MISMATCH = "MISMATCH"


@dataclass
class OTPEntry:
    """State tracked for one issued code."""

    code: str
    expires_at: float
    max_attempts: int
    attempts: int = 0


@dataclass(frozen=True)
class VerificationResult:
    """Verdict returned by :meth:`OTPStore.verify`."""

    outcome: VerifyOutcome
    attempts_remaining: int | None = None

    @property
    def verified(self) -> bool:
        return self.outcome is VerifyOutcome.VERIFIED


class OTPStore:
    """Process-local OTP store.

    Parameters
    ----------
    ttl_seconds:
        Default validity window for issued codes.
    max_attempts:
        Default number of failed submissions before lockout.
    clock:
        Monotonic time source, in seconds.
    code_factory:
        Callable producing new codes.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        *,
        clock: Callable[[], float] = time.monotonic,
        code_factory: Callable[[], str] = generate_code,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_attempts < 1:
            raise ValueError("max_attempts must be a positive integer")
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self._clock = clock
        self._code_factory = code_factory
        self._entries: dict[str, OTPEntry] = {}
        self._locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]

    def _lock_for(self, identifier: str) -> threading.Lock:
        return self._locks[hash(identifier) % _LOCK_STRIPES]

    # ── Issuance ─────────────────────────────────────────

    def issue(
        self,
        identifier: str,
        ttl_seconds: float | None = None,
        max_attempts: int | None = None,
    ) -> str:
        """Create a fresh entry for *identifier* and return its code.

        Any code previously issued for *identifier* stops being valid.
        """
        if not identifier:
            raise ValueError("identifier must be non-empty")
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        limit = self.max_attempts if max_attempts is None else max_attempts
        if ttl <= 0:
            raise ValueError("ttl_seconds must be positive")
        if limit < 1:
            raise ValueError("max_attempts must be a positive integer")

        code = self._code_factory()
        with self._lock_for(identifier):
            self._entries[identifier] = OTPEntry(
                code=code,
                expires_at=self._clock() + ttl,
                max_attempts=limit,
            )
        logger.info("OTP issued for %s (ttl=%ss, max_attempts=%s)", identifier, ttl, limit)
        return code

    def discard(self, identifier: str, code: str | None = None) -> bool:
        """Delete the entry for *identifier*.

        When *code* is given the entry is only removed if it still holds that
        code, so a newer issuance is left alone.  Returns ``True`` if an
        entry was removed.
        """
        with self._lock_for(identifier):
            entry = self._entries.get(identifier)
            if entry is None:
                return False
            if code is not None and entry.code != code:
                return False
            del self._entries[identifier]
        logger.debug("OTP discarded for %s", identifier)
        return True

    # ── Verification ─────────────────────────────────────

    def verify(self, identifier: str, code: str) -> VerificationResult:
        """Check *code* against the entry for *identifier*.

        Expiry and lockout are checked before the code is compared, so a
        correct code never rescues an expired or exhausted entry.
        """
        with self._lock_for(identifier):
            entry = self._entries.get(identifier)
            if entry is None:
                return VerificationResult(VerifyOutcome.NOT_FOUND)

            if self._clock() > entry.expires_at:
                del self._entries[identifier]
                return VerificationResult(VerifyOutcome.EXPIRED)

            if entry.attempts >= entry.max_attempts:
                del self._entries[identifier]
                return VerificationResult(VerifyOutcome.ATTEMPTS_EXCEEDED, 0)

            if not hmac.compare_digest(entry.code.encode(), code.encode()):
                entry.attempts += 1
                assert entry.attempts <= entry.max_attempts
                remaining = entry.max_attempts - entry.attempts
                if remaining == 0:
                    del self._entries[identifier]
                    return VerificationResult(VerifyOutcome.ATTEMPTS_EXCEEDED, 0)
                return VerificationResult(VerifyOutcome.MISMATCH, remaining)

            del self._entries[identifier]
            return VerificationResult(VerifyOutcome.VERIFIED)

    # ── Housekeeping ─────────────────────────────────────

    def purge_expired(self) -> int:
        """Remove every expired entry and return how many were dropped."""
        purged = 0
        for identifier in list(self._entries):
            with self._lock_for(identifier):
                entry = self._entries.get(identifier)
                if entry is not None and self._clock() > entry.expires_at:
                    del self._entries[identifier]
                    purged += 1
        if purged:
            logger.debug("Purged %d expired OTP entries", purged)
        return purged

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries

    def __len__(self) -> int:
        return len(self._entries)
