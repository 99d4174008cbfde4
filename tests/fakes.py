"""Test doubles for the Playwright objects the engine touches."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Callable, Dict, Iterable, List, Optional, Set
from unittest.mock import AsyncMock

from playwright.async_api import Error as PlaywrightError

from meeting_recorder.meeting_handler.ui_locator import (
    IN_MEETING,
    JOIN_CANDIDATES,
    LOBBY_MARKERS,
    MEETING_ENDED,
    MORE_OPTIONS,
    PREPARE,
    READY_INDICATORS,
    RECORD_ITEM,
    RECORDING_CAPABILITY,
    RECORDING_CONFIRM,
    WAITING_MARKERS,
    LocatorRule,
    UILocator,
    always,
)
from meeting_recorder.models import MeetingPhase


# Flags each action adds to the page unless a test overrides them
DEFAULT_EFFECTS = {
    "join_now": {"in_meeting"},
    "ask_to_join": {"lobby"},
    "enter_key": set(),
    "camera_off": set(),
    "more_options": {"menu_open"},
    "record_item": {"recording"},
    "confirm": {"recording"},
}


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakePage:
    """Just enough of playwright's Page for the locator rules below."""

    def __init__(
        self,
        flags: Iterable[str] = (),
        url_flags: Optional[Dict[str, Iterable[str]]] = None,
        unreachable: Iterable[str] = (),
        participants: Optional[List[Optional[int]]] = None,
    ):
        self.flags: Set[str] = set(flags)
        self.url_flags = {url: set(f) for url, f in (url_flags or {}).items()}
        self.unreachable = set(unreachable)
        self.participants = list(participants or [])
        self.effects = {name: set(f) for name, f in DEFAULT_EFFECTS.items()}
        self.ready_after: Optional[int] = None
        self.actions: List[str] = []
        self.goto_calls: List[str] = []
        self.closed = False
        self.keyboard = SimpleNamespace(press=AsyncMock())

    def is_closed(self) -> bool:
        return self.closed

    async def goto(self, url: str, **kwargs) -> None:
        self.goto_calls.append(url)
        if url in self.unreachable:
            raise PlaywrightError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        if url in self.url_flags:
            self.flags = set(self.url_flags[url])
        if self.ready_after is not None and len(self.goto_calls) >= self.ready_after:
            self.flags.add("join_visible")

    async def close(self) -> None:
        self.closed = True

    def next_participant_count(self) -> Optional[int]:
        if not self.participants:
            return None
        if len(self.participants) > 1:
            return self.participants.pop(0)
        return self.participants[0]


class FakeContext:
    def __init__(self, page: FakePage, close_error: Optional[Exception] = None):
        self.page = page
        self.close_error = close_error
        self.closed = 0
        self.add_cookies = AsyncMock()

    async def new_page(self) -> FakePage:
        return self.page

    async def close(self) -> None:
        self.closed += 1
        if self.close_error is not None:
            raise self.close_error


class FakeRuntime:
    """Stands in for BrowserRuntime; hands out one FakeContext per session."""

    def __init__(self, page_factory: Callable[[], FakePage], fail: bool = False, delay: float = 0):
        self.page_factory = page_factory
        self.fail = fail
        # Seconds new_context() keeps running after the browser created the context
        self.delay = delay
        self.close_error: Optional[Exception] = None
        self.contexts: List[FakeContext] = []
        self.is_running = True
        self.stop = AsyncMock()

    async def new_context(self) -> FakeContext:
        if self.fail:
            raise PlaywrightError("Target page, context or browser has been closed")
        context = FakeContext(self.page_factory(), close_error=self.close_error)
        self.contexts.append(context)
        if self.delay:
            await asyncio.sleep(self.delay)
        return context


def flag(name: str):
    async def predicate(page: FakePage) -> bool:
        return name in page.flags
    return predicate


def act(name: str):
    async def action(page: FakePage) -> None:
        page.actions.append(name)
        page.flags |= page.effects.get(name, set())
    return action


async def count_from_page(page: FakePage) -> Optional[int]:
    return page.next_participant_count()


def build_locator() -> UILocator:
    """Locator whose rules read and write ``FakePage.flags``."""
    rules = {
        READY_INDICATORS: [
            LocatorRule("in_meeting_indicator", flag("in_meeting")),
            LocatorRule("join_button", flag("join_visible")),
        ],
        WAITING_MARKERS: [LocatorRule("waiting_text", flag("waiting"))],
        PREPARE: [LocatorRule("camera_off", flag("camera_on"), act("camera_off"))],
        JOIN_CANDIDATES: [
            LocatorRule("join_now", flag("join_visible"), act("join_now")),
            LocatorRule("ask_to_join", flag("ask_visible"), act("ask_to_join")),
            LocatorRule("enter_key", always(), act("enter_key")),
        ],
        IN_MEETING: [LocatorRule("call_controls", flag("in_meeting"))],
        LOBBY_MARKERS: [LocatorRule("lobby", flag("lobby"))],
        MEETING_ENDED: [LocatorRule("meeting_ended", flag("ended"))],
        RECORDING_CAPABILITY: [LocatorRule("recording_control", flag("can_record"))],
        MORE_OPTIONS: [LocatorRule("more_options", flag("more_options"), act("more_options"))],
        RECORD_ITEM: [LocatorRule("record_item", flag("menu_open"), act("record_item"))],
        RECORDING_CONFIRM: [LocatorRule("confirm", flag("confirm_dialog"), act("confirm"))],
    }
    return UILocator(rules, [count_from_page])


async def wait_for_phase(controller, phase: MeetingPhase, timeout: float = 2.0) -> None:
    """Block until ``controller`` reaches ``phase``."""
    async def reached() -> None:
        while controller.phase is not phase:
            await asyncio.sleep(0.005)
    await asyncio.wait_for(reached(), timeout=timeout)
