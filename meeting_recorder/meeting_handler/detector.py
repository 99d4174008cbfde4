"""
Meeting readiness detection.

Polls the conference page on a fixed cadence and decides, through the UI
Locator, whether the meeting can be joined yet. The page exposes no event
stream, so polling is the only option.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from playwright.async_api import Page, Error as PlaywrightError

from meeting_recorder.config import get_logger
from meeting_recorder.models import MeetingDescriptor, Readiness
from .polling import CancelToken, poll_every
from .ui_locator import READY_INDICATORS, WAITING_MARKERS, UILocator


logger = get_logger("detector")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Detector:
    """Decides when one meeting is live, or that it never will be."""

    def __init__(
        self,
        locator: UILocator,
        poll_interval: float = 30.0,
        expiry: timedelta = timedelta(minutes=30),
        navigation_timeout_ms: int = 30000,
        clock: Clock = utc_now,
    ):
        self.locator = locator
        self.poll_interval = poll_interval
        self.expiry = expiry
        self.navigation_timeout_ms = navigation_timeout_ms
        self.clock = clock

        self.polls = 0
        self.ready_observed = False
        self.expiry_reported = False
        self.last_error: Optional[str] = None

    def _expiry_anchor(self, meeting: MeetingDescriptor) -> datetime:
        # Without a scheduled start the window runs from acceptance
        return meeting.start_time or meeting.accepted_at

    def is_expired(self, meeting: MeetingDescriptor) -> bool:
        return (
            not self.ready_observed
            and self.clock() - self._expiry_anchor(meeting) > self.expiry
        )

    async def poll(self, page: Page, meeting: MeetingDescriptor) -> Readiness:
        """
        One detection cycle.

        Never reports READY before the scheduled start, and reports EXPIRED
        at most once.
        """
        self.polls += 1
        now = self.clock()

        if meeting.start_time is not None and now < meeting.start_time:
            logger.debug(f"[{meeting.meeting_id}] Poll {self.polls}: scheduled start not reached")
            return Readiness.NOT_READY

        if await self._evaluate(page, meeting):
            self.ready_observed = True
            logger.info(f"[{meeting.meeting_id}] Meeting is live (poll {self.polls})")
            return Readiness.READY

        if self.is_expired(meeting):
            if self.expiry_reported:
                return Readiness.NOT_READY
            self.expiry_reported = True
            logger.info(
                f"[{meeting.meeting_id}] Meeting never became ready within "
                f"{int(self.expiry.total_seconds() // 60)} minutes of its start"
            )
            return Readiness.EXPIRED

        return Readiness.NOT_READY

    async def _evaluate(self, page: Page, meeting: MeetingDescriptor) -> bool:
        try:
            await page.goto(
                meeting.meeting_url,
                wait_until="domcontentloaded",
                timeout=self.navigation_timeout_ms,
            )
        except (PlaywrightError, asyncio.TimeoutError) as e:
            self.last_error = f"Navigation failed: {str(e).splitlines()[0] if str(e) else type(e).__name__}"
            logger.info(f"[{meeting.meeting_id}] {self.last_error}; not ready this cycle")
            return False

        waiting = await self.locator.first_match(page, WAITING_MARKERS)
        if waiting is not None:
            logger.debug(f"[{meeting.meeting_id}] Waiting marker '{waiting.name}' present")
            return False

        indicator = await self.locator.first_match(page, READY_INDICATORS)
        if indicator is None:
            return False
        logger.debug(f"[{meeting.meeting_id}] Ready indicator '{indicator.name}' present")
        return True

    async def wait_until_ready(
        self, page: Page, meeting: MeetingDescriptor, token: CancelToken
    ) -> Optional[Readiness]:
        """Poll until READY or EXPIRED; None if the token is cancelled first."""
        async def cycle() -> Optional[Readiness]:
            result = await self.poll(page, meeting)
            return None if result is Readiness.NOT_READY else result

        return await poll_every(self.poll_interval, cycle, token)
