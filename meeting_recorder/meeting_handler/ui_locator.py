"""
UI Locator

A pluggable, ordered set of (predicate, action) rules used to find and
interact with conference UI elements. Detector, ActionSequencer,
RecordingController and Watchdog only ever ask the locator questions by rule
kind, so the Meet-specific knowledge can be replaced without touching the
state machine.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from playwright.async_api import Page, Error as PlaywrightError

from meeting_recorder.config import get_logger
from meeting_recorder.core.exceptions import TransientInteractionError
from meeting_recorder.models import StepResult
from .meet_selectors import WAITING_TEXT_MARKERS, get_selectors_for


logger = get_logger("ui_locator")

Predicate = Callable[[Page], Awaitable[bool]]
Action = Callable[[Page], Awaitable[None]]
Counter = Callable[[Page], Awaitable[Optional[int]]]

# Errors that mean "this element is not usable right now"
RECOVERABLE_ERRORS = (PlaywrightError, TransientInteractionError, asyncio.TimeoutError)


# Rule kinds
READY_INDICATORS = "ready_indicators"
WAITING_MARKERS = "waiting_markers"
PREPARE = "prepare"
JOIN_CANDIDATES = "join_candidates"
IN_MEETING = "in_meeting"
LOBBY_MARKERS = "lobby_markers"
MEETING_ENDED = "meeting_ended"
RECORDING_CAPABILITY = "recording_capability"
MORE_OPTIONS = "more_options"
RECORD_ITEM = "record_item"
RECORDING_CONFIRM = "recording_confirm"


@dataclass(frozen=True)
class LocatorRule:
    """A named predicate, optionally paired with the action it enables."""
    name: str
    predicate: Predicate
    action: Optional[Action] = None


class UILocator:
    """Ordered rule sets keyed by kind, plus participant counters."""

    def __init__(
        self,
        rules: Optional[Mapping[str, Sequence[LocatorRule]]] = None,
        participant_counters: Sequence[Counter] = (),
    ):
        self._rules: Dict[str, List[LocatorRule]] = {
            kind: list(kind_rules) for kind, kind_rules in (rules or {}).items()
        }
        self._counters: List[Counter] = list(participant_counters)

    def rules_for(self, kind: str) -> List[LocatorRule]:
        return list(self._rules.get(kind, []))

    def with_rules(self, **overrides: Sequence[LocatorRule]) -> "UILocator":
        """Return a copy with some rule kinds replaced."""
        merged = dict(self._rules)
        merged.update({kind: list(kind_rules) for kind, kind_rules in overrides.items()})
        return UILocator(merged, self._counters)

    async def matches(self, page: Page, rule: LocatorRule) -> bool:
        try:
            return bool(await rule.predicate(page))
        except RECOVERABLE_ERRORS as e:
            logger.debug(f"Rule '{rule.name}' not evaluable: {e}")
            return False

    async def first_match(self, page: Page, kind: str) -> Optional[LocatorRule]:
        """Return the first rule of ``kind`` whose predicate holds, in declared order."""
        for rule in self._rules.get(kind, []):
            if await self.matches(page, rule):
                return rule
        return None

    async def any_match(self, page: Page, kind: str) -> bool:
        return await self.first_match(page, kind) is not None

    async def perform(self, page: Page, rule: LocatorRule, check: bool = True) -> StepResult:
        """
        Run a rule's action.

        Args:
            page: Page to act on
            rule: Rule to run
            check: Evaluate the predicate first and fail if it doesn't hold

        Returns:
            StepResult, never raises for element-level failures
        """
        if rule.action is None:
            return StepResult.failure(rule.name, "rule has no action")
        if check and not await self.matches(page, rule):
            return StepResult.failure(rule.name, "element not found")
        try:
            await rule.action(page)
        except RECOVERABLE_ERRORS as e:
            return StepResult.failure(rule.name, str(e).splitlines()[0] if str(e) else type(e).__name__)
        return StepResult.success(rule.name)

    async def perform_first(self, page: Page, kind: str) -> StepResult:
        """Run the action of the first matching rule of ``kind``."""
        rule = await self.first_match(page, kind)
        if rule is None:
            return StepResult.failure(kind, "no matching element")
        return await self.perform(page, rule, check=False)

    async def count_participants(self, page: Page) -> Optional[int]:
        """First counter that produces a number wins; None when nobody can tell."""
        for counter in self._counters:
            try:
                count = await counter(page)
            except RECOVERABLE_ERRORS as e:
                logger.debug(f"Participant counter failed: {e}")
                continue
            if count is not None:
                return count
        return None


# =============================================================================
# Predicate / action / counter builders
# =============================================================================

def selector_visible(*selectors: str) -> Predicate:
    async def predicate(page: Page) -> bool:
        for selector in selectors:
            loc = page.locator(selector)
            if await loc.count() > 0 and await loc.first.is_visible():
                return True
        return False
    return predicate


def selector_present(*selectors: str) -> Predicate:
    async def predicate(page: Page) -> bool:
        for selector in selectors:
            if await page.locator(selector).count() > 0:
                return True
        return False
    return predicate


def text_present(markers: Sequence[str]) -> Predicate:
    lowered = [m.lower() for m in markers]

    async def predicate(page: Page) -> bool:
        body = (await page.inner_text("body")).lower()
        return any(marker in body for marker in lowered)
    return predicate


def always() -> Predicate:
    async def predicate(page: Page) -> bool:
        return True
    return predicate


def click_first_visible(*selectors: str) -> Action:
    async def action(page: Page) -> None:
        for selector in selectors:
            btn = page.locator(selector).first
            if await btn.count() > 0 and await btn.is_visible():
                try:
                    await btn.click(timeout=5000)
                except PlaywrightError as e:
                    logger.warning(f"Normal click failed for '{selector}': {e}. Trying force click...")
                    await btn.click(force=True)
                return
        raise TransientInteractionError(f"None of {list(selectors)} is visible")
    return action


def fill_first_visible(value: str, *selectors: str) -> Action:
    async def action(page: Page) -> None:
        for selector in selectors:
            field = page.locator(selector).first
            if await field.count() > 0 and await field.is_visible():
                await field.fill(value)
                return
        raise TransientInteractionError(f"No input among {list(selectors)}")
    return action


def press_key(key: str) -> Action:
    async def action(page: Page) -> None:
        await page.keyboard.press(key)
    return action


def number_in_label(*selectors: str) -> Counter:
    """Read a count such as "Show everyone (3)" from a button label or text."""
    async def counter(page: Page) -> Optional[int]:
        for selector in selectors:
            loc = page.locator(selector)
            if await loc.count() == 0:
                continue
            label = await loc.first.get_attribute("aria-label") or ""
            text = await loc.first.inner_text()
            for source in (label, text):
                match = re.search(r"(\d+)", source)
                if match:
                    return int(match.group(1))
        return None
    return counter


def count_elements(*selectors: str) -> Counter:
    """Count participant tiles; zero means the layout hides them, not an empty room."""
    async def counter(page: Page) -> Optional[int]:
        best = 0
        for selector in selectors:
            best = max(best, await page.locator(selector).count())
        return best or None
    return counter


def _click_rules(element_type: str) -> List[LocatorRule]:
    return [
        LocatorRule(
            name=f"{element_type}:{selector}",
            predicate=selector_visible(selector),
            action=click_first_visible(selector),
        )
        for selector in get_selectors_for(element_type)
    ]


def default_locator(bot_name: str = "Recording Bot") -> UILocator:
    """
    Build the Google Meet rule set.

    Readiness is "no waiting marker in the page text, and either call
    controls or a join affordance is showing".
    """
    join_now = get_selectors_for("join_now")
    ask_to_join = get_selectors_for("ask_to_join")
    in_meeting = get_selectors_for("in_meeting")

    rules = {
        READY_INDICATORS: [
            LocatorRule("in_meeting_indicator", selector_present(*in_meeting)),
            LocatorRule("join_now_button", selector_visible(*join_now)),
            LocatorRule("ask_to_join_button", selector_visible(*ask_to_join)),
        ],
        WAITING_MARKERS: [
            LocatorRule("waiting_text", text_present(WAITING_TEXT_MARKERS)),
        ],
        PREPARE: [
            LocatorRule(
                "continue_without_devices",
                selector_visible(*get_selectors_for("continue_without_devices")),
                click_first_visible(*get_selectors_for("continue_without_devices")),
            ),
            LocatorRule(
                "guest_name",
                selector_visible(*get_selectors_for("name_input")),
                fill_first_visible(bot_name, *get_selectors_for("name_input")),
            ),
            LocatorRule(
                "camera_off",
                selector_visible(*get_selectors_for("camera_on_indicator")),
                click_first_visible(*get_selectors_for("camera_on_indicator")),
            ),
            LocatorRule(
                "microphone_off",
                selector_visible(*get_selectors_for("mic_on_indicator")),
                click_first_visible(*get_selectors_for("mic_on_indicator")),
            ),
        ],
        JOIN_CANDIDATES: [
            LocatorRule("join_now", selector_visible(*join_now), click_first_visible(*join_now)),
            LocatorRule("ask_to_join", selector_visible(*ask_to_join), click_first_visible(*ask_to_join)),
            LocatorRule("enter_key", always(), press_key("Enter")),
        ],
        IN_MEETING: [
            LocatorRule("call_controls", selector_present(*in_meeting)),
        ],
        LOBBY_MARKERS: [
            LocatorRule("lobby", selector_visible(*get_selectors_for("lobby"))),
        ],
        MEETING_ENDED: [
            LocatorRule("meeting_ended", selector_visible(*get_selectors_for("meeting_ended"))),
        ],
        RECORDING_CAPABILITY: [
            LocatorRule("recording_control", selector_present(*get_selectors_for("recording_capability"))),
        ],
        MORE_OPTIONS: _click_rules("more_options"),
        RECORD_ITEM: _click_rules("record_item"),
        RECORDING_CONFIRM: _click_rules("recording_confirm"),
    }

    counters = [
        number_in_label(*get_selectors_for("people_button")),
        count_elements(*get_selectors_for("participant_tile")),
    ]
    return UILocator(rules, counters)
