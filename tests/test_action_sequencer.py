"""Unit tests for the join cascade."""

from __future__ import annotations

import pytest

from meeting_recorder.meeting_handler.action_sequencer import ActionSequencer

from tests.fakes import FakePage


async def _no_sleep(seconds):
    return None


@pytest.fixture
def sequencer(locator):
    return ActionSequencer(
        locator, settle_delay=0, admission_timeout=3, admission_check_interval=1, sleep=_no_sleep
    )


@pytest.mark.asyncio
async def test_first_candidate_wins(sequencer):
    page = FakePage(flags={"join_visible"})

    result = await sequencer.run(page)

    assert result.ok
    assert result.candidate == "join_now"
    assert page.actions == ["join_now"]


@pytest.mark.asyncio
async def test_unverified_action_falls_through_to_next_candidate(sequencer):
    page = FakePage(flags={"join_visible"})
    page.effects["join_now"] = set()
    page.effects["enter_key"] = {"in_meeting"}

    result = await sequencer.run(page)

    assert result.ok
    assert result.candidate == "enter_key"
    assert page.actions == ["join_now", "enter_key"]
    assert [(a.name, a.ok, a.error) for a in result.attempts] == [
        ("join_now", False, "entry not verified"),
        ("ask_to_join", False, "element not found"),
        ("enter_key", True, None),
    ]


@pytest.mark.asyncio
async def test_all_candidates_fail(sequencer):
    page = FakePage()

    result = await sequencer.run(page)

    assert not result.ok
    assert result.candidate is None
    assert [a.name for a in result.attempts] == ["join_now", "ask_to_join", "enter_key"]
    assert "enter_key (entry not verified)" in result.summary


@pytest.mark.asyncio
async def test_lobby_admission(locator):
    page = FakePage(flags={"ask_visible"})
    checks = []

    async def admitting_sleep(seconds):
        checks.append(seconds)
        if len(checks) == 3:
            page.flags.discard("lobby")
            page.flags.add("in_meeting")

    sequencer = ActionSequencer(
        locator, settle_delay=0, admission_timeout=10, admission_check_interval=1, sleep=admitting_sleep
    )

    result = await sequencer.run(page)

    assert result.ok
    assert result.candidate == "ask_to_join"
    assert page.actions == ["ask_to_join"]


@pytest.mark.asyncio
async def test_lobby_timeout(sequencer):
    page = FakePage(flags={"ask_visible"})

    assert not await sequencer.verify_entry(page)
    page.flags.add("lobby")
    assert not await sequencer.verify_entry(page)


@pytest.mark.asyncio
async def test_prepare_turns_camera_off(sequencer):
    page = FakePage(flags={"camera_on", "join_visible"})

    await sequencer.run(page)

    assert page.actions[0] == "camera_off"


@pytest.mark.asyncio
async def test_log_sink_receives_progress(sequencer):
    page = FakePage(flags={"join_visible"})
    lines = []

    await sequencer.run(page, log=lambda level, message: lines.append((level, message)))

    assert ("INFO", "Entry verified via 'join_now'") in lines
