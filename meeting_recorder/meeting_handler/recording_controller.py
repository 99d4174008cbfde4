"""
Best-effort recording activation.

Two-stage menu cascade: open "More options", pick the record item, accept the
confirmation dialog if one appears. Failure at any stage is reported, never
raised, and never ends the session.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from playwright.async_api import Page

from meeting_recorder.config import get_logger
from meeting_recorder.core.exceptions import RecordingActivationFailure
from meeting_recorder.models import StepResult
from .ui_locator import (
    MORE_OPTIONS,
    RECORD_ITEM,
    RECORDING_CAPABILITY,
    RECORDING_CONFIRM,
    RECOVERABLE_ERRORS,
    UILocator,
)


logger = get_logger("recording_controller")

Sleep = Callable[[float], Awaitable[None]]

STEP_NAME = "start_recording"


class RecordingController:
    """Locates and activates the recording affordance once per session."""

    def __init__(self, locator: UILocator, settle_delay: float = 3.0, sleep: Sleep = asyncio.sleep):
        self.locator = locator
        self.settle_delay = settle_delay
        self.sleep = sleep

    async def activate(self, page: Page) -> StepResult:
        """
        Try to start recording.

        Returns:
            StepResult; ok=False carries the RecordingActivationFailure message.
        """
        try:
            await self._activate(page)
        except RecordingActivationFailure as e:
            logger.warning(f"Recording not started: {e.message}")
            return StepResult.failure(STEP_NAME, e.message)
        logger.info("Recording started")
        return StepResult.success(STEP_NAME)

    async def _activate(self, page: Page) -> None:
        # Feature detection: skip the menu dance when nothing recording-related exists
        if not await self.locator.any_match(page, RECORDING_CAPABILITY):
            raise RecordingActivationFailure("Recording is not available for this account or meeting")

        menu = await self.locator.perform_first(page, MORE_OPTIONS)
        if not menu.ok:
            raise RecordingActivationFailure(f"Could not open options menu: {menu.error}")
        await self.sleep(self.settle_delay)

        record = await self.locator.perform_first(page, RECORD_ITEM)
        if not record.ok:
            # Leave the menu closed for the watchdog's checks
            await self._dismiss_menu(page)
            raise RecordingActivationFailure(f"Record item not found in menu: {record.error}")
        await self.sleep(self.settle_delay)

        confirm_rule = await self.locator.first_match(page, RECORDING_CONFIRM)
        if confirm_rule is not None:
            confirm = await self.locator.perform(page, confirm_rule, check=False)
            if not confirm.ok:
                raise RecordingActivationFailure(f"Recording confirmation failed: {confirm.error}")
            await self.sleep(self.settle_delay)

    async def _dismiss_menu(self, page: Page) -> None:
        try:
            await page.keyboard.press("Escape")
        except RECOVERABLE_ERRORS as e:
            logger.debug(f"Escape after failed menu navigation: {e}")
