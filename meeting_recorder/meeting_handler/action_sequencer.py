"""
Join cascade.

Runs the ordered join candidates until one of them produces an entry that is
confirmed by an independent check of the in-meeting indicators.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from playwright.async_api import Page

from meeting_recorder.config import get_logger
from meeting_recorder.models import SequenceResult, StepResult
from .ui_locator import (
    IN_MEETING,
    JOIN_CANDIDATES,
    LOBBY_MARKERS,
    PREPARE,
    UILocator,
)


logger = get_logger("action_sequencer")

Sleep = Callable[[float], Awaitable[None]]


class ActionSequencer:
    """Ordered fallback executor for join interactions."""

    def __init__(
        self,
        locator: UILocator,
        settle_delay: float = 3.0,
        admission_timeout: float = 600.0,
        admission_check_interval: float = 2.0,
        sleep: Sleep = asyncio.sleep,
    ):
        self.locator = locator
        self.settle_delay = settle_delay
        self.admission_timeout = admission_timeout
        self.admission_check_interval = admission_check_interval
        self.sleep = sleep

    async def prepare(self, page: Page) -> None:
        """Best-effort pre-join cleanup: device prompt, guest name, camera and mic off."""
        for rule in self.locator.rules_for(PREPARE):
            result = await self.locator.perform(page, rule)
            if result.ok:
                logger.info(f"Pre-join step '{rule.name}' done")
                await self.sleep(min(self.settle_delay, 1.0))

    async def verify_entry(self, page: Page) -> bool:
        """
        Independent check that we are inside the conference.

        While a lobby marker is showing, keep checking until admitted or the
        admission timeout runs out.
        """
        if await self.locator.any_match(page, IN_MEETING):
            return True
        if not await self.locator.any_match(page, LOBBY_MARKERS):
            return False

        logger.info("Waiting for meeting admission...")
        waited = 0.0
        while waited < self.admission_timeout:
            await self.sleep(self.admission_check_interval)
            waited += self.admission_check_interval
            if await self.locator.any_match(page, IN_MEETING):
                logger.info(f"Admitted after ~{waited:.0f}s in the lobby")
                return True
            if not await self.locator.any_match(page, LOBBY_MARKERS):
                break
        logger.warning("Not admitted to the meeting")
        return False

    async def run(self, page: Page, log: Optional[Callable[[str, str], None]] = None) -> SequenceResult:
        """
        Attempt every join candidate in declared order.

        Args:
            page: Conference page
            log: Optional (level, message) sink for the session debug log

        Returns:
            SequenceResult naming the first candidate with verified entry,
            or an aggregate failure listing every attempt.
        """
        def note(level: str, message: str) -> None:
            getattr(logger, level.lower())(message)
            if log is not None:
                log(level, message)

        await self.prepare(page)

        attempts = []
        for rule in self.locator.rules_for(JOIN_CANDIDATES):
            step = await self.locator.perform(page, rule)
            if not step.ok:
                note("DEBUG", f"Join candidate '{rule.name}' skipped: {step.error}")
                attempts.append(step)
                continue

            note("INFO", f"Join candidate '{rule.name}' acted, verifying entry...")
            await self.sleep(self.settle_delay)

            if await self.verify_entry(page):
                note("INFO", f"Entry verified via '{rule.name}'")
                attempts.append(step)
                return SequenceResult(ok=True, candidate=rule.name, attempts=attempts)

            attempts.append(StepResult.failure(rule.name, "entry not verified"))
            note("WARNING", f"Join candidate '{rule.name}' did not get us in")

        return SequenceResult(ok=False, attempts=attempts)
