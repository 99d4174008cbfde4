"""
Fixed-cadence polling with explicit cancellation.

Detector and Watchdog each expose a single ``poll()`` coroutine; ``poll_every``
drives it until it yields a result or the owning controller cancels its token.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")


class CancelToken:
    """Cancellation flag owned by one ConferenceController."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> bool:
        """Cancel once; returns False if already cancelled."""
        if self._event.is_set():
            return False
        self.reason = reason
        self._event.set()
        return True

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True if cancelled meanwhile."""
        if self.cancelled:
            return True
        if seconds <= 0:
            await asyncio.sleep(0)
            return self.cancelled
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        return self.cancelled


async def poll_every(
    interval: float,
    poll: Callable[[], Awaitable[Optional[T]]],
    token: CancelToken,
) -> Optional[T]:
    """
    Call ``poll`` every ``interval`` seconds until it returns something.

    The first call happens immediately. Returns None if the token is
    cancelled first.
    """
    while not token.cancelled:
        result = await poll()
        if result is not None:
            return result
        if await token.sleep(interval):
            break
    return None
