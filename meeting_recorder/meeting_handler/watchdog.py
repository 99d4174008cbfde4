"""
Session supervision.

Re-evaluates liveness, participant count and elapsed time on the Detector's
cadence and reports the first end condition that holds.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from playwright.async_api import Page

from meeting_recorder.config import get_logger
from meeting_recorder.models import EndReason
from .detector import Clock, utc_now
from .polling import CancelToken, poll_every
from .ui_locator import IN_MEETING, MEETING_ENDED, UILocator


logger = get_logger("watchdog")

Sleep = Callable[[float], Awaitable[None]]


class Watchdog:
    """Decides when a supervised session should end."""

    def __init__(
        self,
        locator: UILocator,
        poll_interval: float = 30.0,
        max_duration: timedelta = timedelta(hours=2),
        liveness_recheck: float = 5.0,
        clock: Clock = utc_now,
        sleep: Sleep = asyncio.sleep,
    ):
        self.locator = locator
        self.poll_interval = poll_interval
        self.max_duration = max_duration
        self.liveness_recheck = liveness_recheck
        self.clock = clock
        self.sleep = sleep

        self.checks = 0
        self.last_participant_count: Optional[int] = None

    async def is_live(self, page: Page) -> bool:
        if page.is_closed():
            return False
        if await self.locator.any_match(page, MEETING_ENDED):
            return False
        if await self.locator.any_match(page, IN_MEETING):
            return True

        # Controls can hide briefly during layout changes; look once more
        logger.debug("No in-meeting indicators found, rechecking...")
        await self.sleep(self.liveness_recheck)
        if page.is_closed():
            return False
        return await self.locator.any_match(page, IN_MEETING)

    async def check(self, page: Page, entered_at: datetime) -> Optional[EndReason]:
        """
        One supervision cycle.

        Priority: liveness lost, then bot alone, then duration cap.
        """
        self.checks += 1

        if not await self.is_live(page):
            return EndReason.MEETING_ENDED

        count = await self.locator.count_participants(page)
        if count is not None:
            self.last_participant_count = count
            if count <= 1:
                return EndReason.ALONE

        if self.clock() - entered_at > self.max_duration:
            return EndReason.MAX_DURATION

        return None

    async def supervise(
        self,
        page: Page,
        entered_at: datetime,
        token: CancelToken,
        on_check: Optional[Callable[["Watchdog"], None]] = None,
    ) -> Optional[EndReason]:
        """Run checks until an end condition fires; None if the token is cancelled first."""
        async def cycle() -> Optional[EndReason]:
            # Give the meeting one interval before the first verdict
            if await token.sleep(self.poll_interval):
                return None
            reason = await self.check(page, entered_at)
            if on_check is not None:
                on_check(self)
            return reason

        return await poll_every(0, cycle, token)
