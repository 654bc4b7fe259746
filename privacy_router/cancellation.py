"""Cooperative cancellation for long-running transfer steps."""

from __future__ import annotations

import asyncio


class CancellationToken:
    """Flag checked at every suspension point of a transfer.

    Setting it never interrupts a call already in flight; the running
    step notices at its next check, and sleeps end early.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def sleep(self, delay: float) -> bool:
        """Sleep up to delay seconds; return True if cancelled meanwhile."""
        if self.cancelled:
            return True
        if delay <= 0:
            await asyncio.sleep(0)
            return self.cancelled
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except TimeoutError:
            return False
        return True
