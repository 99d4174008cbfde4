"""Lifecycle tests for ConferenceController.

Covers:
- Expiry of a meeting that never becomes reachable
- Join and recording invoked exactly once after readiness
- Ending on "alone" ahead of the duration cap
- Recording failure kept non-fatal, join exhaustion and auth failures fatal
- External stop requests in every phase, and release on every exit path
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from meeting_recorder.meeting_handler.conference_controller import ConferenceController
from meeting_recorder.meeting_handler.resource_manager import ResourceManager
from meeting_recorder.models import (
    CredentialBundle,
    EndReason,
    MeetingPhase,
    SequenceResult,
    StepResult,
)

from tests.fakes import FakePage, FakeRuntime, wait_for_phase


@pytest.fixture
def make_controller(locator, fast_settings, clock, meeting):
    """Factory for a controller wired to a FakeRuntime serving ``page``."""
    def factory(page: FakePage, **kwargs):
        runtime = FakeRuntime(lambda: page)
        controller = ConferenceController(
            meeting,
            ResourceManager(runtime, meeting.meeting_id),
            locator,
            session_settings=fast_settings,
            clock=clock,
            **kwargs,
        )
        controller.runtime = runtime
        return controller
    return factory


def _phases(controller):
    return [
        entry.message.split(" -> ")[1]
        for entry in controller.logs
        if entry.message.startswith("Phase ")
    ]


@pytest.mark.asyncio
async def test_unreachable_meeting_expires(make_controller, meeting, clock):
    clock.advance(minutes=40)
    page = FakePage(unreachable={meeting.meeting_url})
    controller = make_controller(page)

    phase = await controller.run()

    assert phase is MeetingPhase.FAILED
    assert "did not become ready within 30 minutes" in controller.error
    assert controller.detector.polls == 1
    assert controller.resources.is_released
    assert controller.runtime.contexts[0].closed == 1
    assert _phases(controller) == ["monitoring", "failed"]
    assert meeting.status == "failed"
    assert controller.to_dict()["detector_error"].startswith("Navigation failed")


@pytest.mark.asyncio
async def test_join_and_recording_run_once_after_readiness(make_controller, meeting):
    page = FakePage()
    page.ready_after = 3
    sequencer = MagicMock()
    sequencer.run = AsyncMock(return_value=SequenceResult(ok=True, candidate="join_now"))
    recorder = MagicMock()
    recorder.activate = AsyncMock(return_value=StepResult.failure("start_recording", "no access"))
    watchdog = MagicMock()
    watchdog.supervise = AsyncMock(return_value=EndReason.MEETING_ENDED)

    controller = make_controller(page, sequencer=sequencer, recorder=recorder, watchdog=watchdog)
    phase = await controller.run()

    assert controller.detector.polls == 3
    sequencer.run.assert_awaited_once()
    recorder.activate.assert_awaited_once_with(page)
    watchdog.supervise.assert_awaited_once()
    assert _phases(controller) == [
        "monitoring", "joining", "recording", "supervising", "terminating", "closed",
    ]
    assert phase is MeetingPhase.CLOSED
    assert controller.join_candidate == "join_now"
    assert not controller.is_recording
    assert "joined_at" in meeting.extra


@pytest.mark.asyncio
async def test_alone_ends_session_before_duration_cap(make_controller):
    page = FakePage(flags={"join_visible", "can_record", "more_options"}, participants=[3, 1])

    controller = make_controller(page)
    phase = await controller.run()

    assert phase is MeetingPhase.CLOSED
    assert controller.end_reason is EndReason.ALONE
    assert controller.watchdog.checks == 2
    assert controller.participant_count == 1
    assert controller.is_recording
    assert page.closed


@pytest.mark.asyncio
async def test_recording_failure_is_not_fatal(make_controller):
    page = FakePage(flags={"join_visible"}, participants=[1])

    controller = make_controller(page)
    phase = await controller.run()

    assert phase is MeetingPhase.CLOSED
    assert not controller.is_recording
    assert controller.end_reason is EndReason.ALONE
    assert any("Continuing without recording" in e.message for e in controller.logs)


@pytest.mark.asyncio
async def test_recorder_crash_is_not_fatal(make_controller):
    page = FakePage(flags={"join_visible"}, participants=[1])
    recorder = MagicMock()
    recorder.activate = AsyncMock(side_effect=RuntimeError("menu exploded"))

    phase = await make_controller(page, recorder=recorder).run()

    assert phase is MeetingPhase.CLOSED


@pytest.mark.asyncio
async def test_join_exhaustion_fails_session(make_controller):
    page = FakePage(flags={"join_visible"})
    page.effects["join_now"] = set()

    controller = make_controller(page)
    phase = await controller.run()

    assert phase is MeetingPhase.FAILED
    assert controller.error.startswith("JoinExhaustionError")
    assert _phases(controller) == ["monitoring", "joining", "failed"]
    assert controller.resources.is_released


@pytest.mark.asyncio
async def test_required_credentials_missing(make_controller):
    page = FakePage(flags={"join_visible"})

    controller = make_controller(page, credentials=AsyncMock(return_value=None), credentials_required=True)
    phase = await controller.run()

    assert phase is MeetingPhase.FAILED
    assert controller.error.startswith("AuthenticationError")
    assert page.goto_calls == []
    assert controller.resources.is_released


@pytest.mark.asyncio
async def test_credentials_applied_to_context(make_controller, meeting):
    page = FakePage(flags={"join_visible"}, participants=[1])
    cookies = [{"name": "SID", "value": "abc", "url": "https://meet.google.com"}]
    provider = AsyncMock(return_value=CredentialBundle(cookies=cookies))

    controller = make_controller(page, credentials=provider)
    await controller.run()

    provider.assert_awaited_once_with(meeting)
    controller.runtime.contexts[0].add_cookies.assert_awaited_once_with(cookies)


@pytest.mark.asyncio
async def test_resource_acquisition_failure(make_controller):
    controller = make_controller(FakePage())
    controller.runtime.fail = True

    phase = await controller.run()

    assert phase is MeetingPhase.FAILED
    assert controller.error.startswith("ResourceAcquisitionError")


@pytest.mark.asyncio
async def test_stop_while_monitoring(make_controller, meeting):
    page = FakePage(url_flags={meeting.meeting_url: {"waiting"}})
    controller = make_controller(page)

    task = asyncio.ensure_future(controller.run())
    await wait_for_phase(controller, MeetingPhase.MONITORING)
    assert controller.request_stop()

    assert await asyncio.wait_for(task, timeout=2) is MeetingPhase.CLOSED
    assert controller.end_reason is EndReason.STOP_REQUESTED
    assert controller.resources.is_released
    assert _phases(controller) == ["monitoring", "terminating", "closed"]


@pytest.mark.asyncio
async def test_stop_interrupts_lobby_wait(make_controller, fast_settings):
    fast_settings.admission_timeout_seconds = 60
    page = FakePage(flags={"ask_visible"})
    page.ready_after = 1
    page.effects["join_now"] = set()
    controller = make_controller(page)

    task = asyncio.ensure_future(controller.run())
    await wait_for_phase(controller, MeetingPhase.JOINING)
    await asyncio.sleep(0.05)
    controller.request_stop(EndReason.SHUTDOWN)

    assert await asyncio.wait_for(task, timeout=2) is MeetingPhase.CLOSED
    assert controller.end_reason is EndReason.SHUTDOWN


@pytest.mark.asyncio
async def test_stop_during_context_creation_still_releases(locator, fast_settings, clock, meeting):
    runtime = FakeRuntime(lambda: FakePage(), delay=0.2)
    controller = ConferenceController(
        meeting,
        ResourceManager(runtime, meeting.meeting_id),
        locator,
        session_settings=fast_settings,
        clock=clock,
    )

    task = asyncio.ensure_future(controller.run())
    await asyncio.sleep(0.05)
    assert len(runtime.contexts) == 1
    controller.request_stop()

    assert await asyncio.wait_for(task, timeout=2) is MeetingPhase.CLOSED
    assert runtime.contexts[0].closed == 1
    assert _phases(controller) == ["terminating", "closed"]


@pytest.mark.asyncio
async def test_stop_before_launch_skips_acquisition(make_controller):
    controller = make_controller(FakePage())
    controller.request_stop()

    assert await controller.run() is MeetingPhase.CLOSED
    assert controller.runtime.contexts == []
    assert _phases(controller) == ["terminating", "closed"]


@pytest.mark.asyncio
async def test_stop_after_close_is_ignored(make_controller):
    controller = make_controller(FakePage(flags={"join_visible"}, participants=[1]))
    await controller.run()

    assert not controller.request_stop()
    assert controller.phase is MeetingPhase.CLOSED


@pytest.mark.asyncio
async def test_release_error_still_closes(make_controller):
    controller = make_controller(FakePage(flags={"join_visible"}, participants=[1]))
    controller.runtime.close_error = RuntimeError("context already gone")

    assert await controller.run() is MeetingPhase.CLOSED
    assert any(e.message.startswith("TerminationError") for e in controller.logs)


def test_illegal_transition_rejected(make_controller):
    controller = make_controller(FakePage())

    with pytest.raises(ValueError):
        controller._transition(MeetingPhase.SUPERVISING)


def test_terminal_phase_absorbs_transitions(make_controller):
    controller = make_controller(FakePage())
    controller._fail("boom")

    assert not controller._transition(MeetingPhase.MONITORING)
    assert controller.phase is MeetingPhase.FAILED


@pytest.mark.asyncio
async def test_phase_listener_notified_and_errors_contained(make_controller):
    seen = []

    async def listener(snapshot):
        seen.append(snapshot["phase"])
        raise RuntimeError("webhook down")

    controller = make_controller(FakePage(flags={"join_visible"}, participants=[1]), on_phase_change=listener)

    assert await controller.run() is MeetingPhase.CLOSED
    await controller.flush_notifications()
    assert seen == ["monitoring", "joining", "recording", "supervising", "terminating", "closed"]


@pytest.mark.asyncio
async def test_phase_listener_sees_phase_at_transition_time(make_controller, meeting):
    seen = []

    async def slow_listener(snapshot):
        await asyncio.sleep(0.01)
        seen.append((snapshot["phase"], snapshot["end_reason"]))

    page = FakePage(url_flags={meeting.meeting_url: {"waiting"}})
    controller = make_controller(page, on_phase_change=slow_listener)
    task = asyncio.ensure_future(controller.run())
    await wait_for_phase(controller, MeetingPhase.MONITORING)
    controller.request_stop(EndReason.SHUTDOWN)
    await asyncio.wait_for(task, timeout=2)

    await controller.flush_notifications()

    assert seen == [("monitoring", None), ("terminating", "shutdown"), ("closed", "shutdown")]


@pytest.mark.asyncio
async def test_to_dict(make_controller):
    controller = make_controller(FakePage(flags={"join_visible"}, participants=[1]))
    await controller.run()

    data = controller.to_dict()

    assert data["phase"] == "closed"
    assert data["end_reason"] == "alone"
    assert data["join_candidate"] == "join_now"
    assert data["logs"]
    assert "logs" not in controller.to_dict(include_logs=False)
