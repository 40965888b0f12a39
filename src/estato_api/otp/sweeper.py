"""Background task that periodically purges expired OTP entries."""

from __future__ import annotations

import asyncio
import logging

from estato_api.otp.store import OTPStore

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Runs :meth:`OTPStore.purge_expired` every *interval_seconds*.

    Verification already rejects expired entries on its own; the sweep only
    keeps memory from growing with codes nobody came back for.
    """

    def __init__(self, store: OTPStore, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._store = store
        self._interval = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop as a task on the running event loop."""
        if self._task is None:
            self._task = asyncio.create_task(self._loop(), name="otp-expiry-sweeper")
            logger.info("OTP expiry sweeper started (every %ss)", self._interval)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to exit."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            # Only absorb the sweep loop's own cancellation.
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
        logger.info("OTP expiry sweeper stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self._store.purge_expired()
            except Exception:
                logger.exception("OTP expiry sweep failed")
