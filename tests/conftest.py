"""Shared fixtures: fake browser objects, a controllable clock and a flag-driven locator.

Nothing here starts a real browser. Pages expose a set of ``flags`` that the
test locator's predicates read and its actions mutate.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from meeting_recorder.config import SessionSettings
from meeting_recorder.models import MeetingDescriptor

from tests.fakes import FakeClock, FakePage, FakeRuntime, build_locator


START = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """Clock frozen at the meeting's scheduled start."""
    return FakeClock(START)


@pytest.fixture
def page():
    return FakePage()


@pytest.fixture
def runtime(page):
    return FakeRuntime(lambda: page)


@pytest.fixture
def locator():
    return build_locator()


@pytest.fixture
def fast_settings():
    """Session timing shrunk so whole lifecycles finish in milliseconds."""
    return SessionSettings(
        poll_interval_seconds=0.01,
        expiry_minutes=30,
        max_duration_minutes=120,
        settle_delay_seconds=0,
        admission_timeout_seconds=0.05,
        admission_check_seconds=0.01,
        liveness_recheck_seconds=0,
        join_before_start_minutes=1,
    )


@pytest.fixture
def meeting():
    return MeetingDescriptor(
        meeting_id="evt-123",
        meeting_url="https://meet.google.com/abc-defg-hij",
        start_time=START,
        title="Weekly sync",
        accepted_at=START - timedelta(hours=1),
    )
