"""Unit tests for meeting descriptors and result values."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from dateutil import tz

from meeting_recorder.models import (
    CredentialBundle,
    MeetingDescriptor,
    MeetingPhase,
    SequenceResult,
    StepResult,
    parse_start_time,
)


class TestMeetingDescriptor:
    def test_from_calendar_payload(self):
        meeting = MeetingDescriptor.from_payload({
            "eventId": "evt-1",
            "meetingUrl": "https://meet.google.com/abc-defg-hij",
            "startTime": "2026-03-02T15:00:00Z",
            "title": "Weekly sync",
            "organizer": "ana@example.com",
            "status": "confirmed",
        })

        assert meeting.meeting_id == "evt-1"
        assert meeting.meeting_url == "https://meet.google.com/abc-defg-hij"
        assert meeting.start_time == datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)
        assert meeting.title == "Weekly sync"
        assert meeting.extra == {"organizer": "ana@example.com"}
        assert meeting.status == "scheduled"

    def test_snake_case_and_hangout_link(self):
        meeting = MeetingDescriptor.from_payload({
            "meeting_id": 42,
            "hangoutLink": "https://meet.google.com/xyz",
        })

        assert meeting.meeting_id == "42"
        assert meeting.meeting_url == "https://meet.google.com/xyz"
        assert meeting.start_time is None
        assert meeting.display_name == "42"

    def test_missing_identifier(self):
        with pytest.raises(ValueError, match="identifier"):
            MeetingDescriptor.from_payload({"meetingUrl": "https://meet.google.com/x"})

    def test_missing_url(self):
        with pytest.raises(ValueError, match="URL"):
            MeetingDescriptor.from_payload({"eventId": "evt-1", "meetingUrl": ""})

    def test_to_dict_keeps_extra_fields(self):
        meeting = MeetingDescriptor.from_payload({
            "eventId": "evt-1",
            "meetingUrl": "https://meet.google.com/x",
            "calendar": "primary",
        })
        data = meeting.to_dict()

        assert data["eventId"] == "evt-1"
        assert data["meeting_id"] == "evt-1"
        assert data["calendar"] == "primary"
        assert data["start_time"] is None
        assert data["status"] == "scheduled"


class TestParseStartTime:
    def test_naive_value_uses_default_zone(self):
        sao_paulo = tz.gettz("America/Sao_Paulo")
        parsed = parse_start_time("2026-03-02T12:00:00", default_tz=sao_paulo)

        assert parsed.tzinfo is sao_paulo
        assert parsed.astimezone(timezone.utc).hour == 15

    def test_naive_value_defaults_to_utc(self):
        assert parse_start_time("2026-03-02T15:00:00").tzinfo is timezone.utc

    def test_calendar_datetime_object(self):
        parsed = parse_start_time({"dateTime": "2026-03-02T15:00:00+00:00"})
        assert parsed == datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)

    def test_empty(self):
        assert parse_start_time(None) is None
        assert parse_start_time("") is None


def test_terminal_phases():
    assert MeetingPhase.CLOSED.is_terminal
    assert MeetingPhase.FAILED.is_terminal
    assert not MeetingPhase.TERMINATING.is_terminal
    assert not MeetingPhase.SUPERVISING.is_terminal


def test_sequence_result_summary_lists_attempts():
    result = SequenceResult(ok=False, attempts=[
        StepResult.failure("join_now", "element not found"),
        StepResult.failure("enter_key", "entry not verified"),
    ])

    assert result.summary == (
        "no verified entry after: join_now (element not found), enter_key (entry not verified)"
    )
    assert SequenceResult(ok=True, candidate="join_now").summary == "joined via 'join_now'"


def test_credential_bundle_truthiness():
    assert not CredentialBundle()
    assert CredentialBundle(cookies=[{"name": "SID", "value": "x", "url": "https://meet.google.com"}])
