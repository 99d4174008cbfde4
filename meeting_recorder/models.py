"""
Data models for meeting sessions.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from enum import Enum

from dateutil import parser as date_parser


class MeetingPhase(str, Enum):
    """Lifecycle phases of a single conference session."""
    IDLE = "idle"
    MONITORING = "monitoring"
    JOINING = "joining"
    RECORDING = "recording"
    SUPERVISING = "supervising"
    TERMINATING = "terminating"
    CLOSED = "closed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (MeetingPhase.CLOSED, MeetingPhase.FAILED)


class Readiness(str, Enum):
    """Outcome of one Detector poll."""
    READY = "ready"
    NOT_READY = "not_ready"
    EXPIRED = "expired"


class EndReason(str, Enum):
    """Why a supervised session stopped."""
    MEETING_ENDED = "meeting_ended"
    ALONE = "alone"
    MAX_DURATION = "max_duration"
    STOP_REQUESTED = "stop_requested"
    SHUTDOWN = "shutdown"


# Payload keys understood by MeetingDescriptor.from_payload, in priority order
_ID_KEYS = ("meeting_id", "eventId", "event_id", "id")
_URL_KEYS = ("meeting_url", "meetingUrl", "meetLink", "meet_link", "hangoutLink", "url")
_START_KEYS = ("start_time", "startTime", "start")
_TITLE_KEYS = ("title", "summary", "name")


def _pick(payload: Dict[str, Any], keys) -> tuple:
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return key, value
    return None, None


def parse_start_time(value: Any, default_tz=None) -> Optional[datetime]:
    """Parse an ISO-ish timestamp; naive values are placed in default_tz (UTC if unset)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, dict):
        # Google Calendar style {"dateTime": "..."}
        return parse_start_time(value.get("dateTime") or value.get("date"), default_tz)
    else:
        parsed = date_parser.isoparse(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz or timezone.utc)
    return parsed


@dataclass
class MeetingDescriptor:
    """
    One scheduled conference to automate.

    Everything except ``status`` is fixed once the descriptor is accepted.
    Unrecognised payload fields are kept in ``extra`` and otherwise ignored.
    """
    meeting_id: str
    meeting_url: str
    start_time: Optional[datetime] = None
    title: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    status: str = "scheduled"
    accepted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], default_tz=None) -> "MeetingDescriptor":
        """
        Build a descriptor from an inbound scheduling payload.

        Raises:
            ValueError: if the identifier or conference URL is missing.
        """
        id_key, meeting_id = _pick(payload, _ID_KEYS)
        url_key, meeting_url = _pick(payload, _URL_KEYS)
        start_key, start_value = _pick(payload, _START_KEYS)
        title_key, title = _pick(payload, _TITLE_KEYS)

        if meeting_id is None:
            raise ValueError("Meeting payload has no identifier (eventId / meeting_id)")
        if meeting_url is None:
            raise ValueError("Meeting payload has no conference URL (meetingUrl / meeting_url)")

        used = {id_key, url_key, start_key, title_key}
        extra = {k: v for k, v in payload.items() if k not in used and k != "status"}

        return cls(
            meeting_id=str(meeting_id),
            meeting_url=str(meeting_url),
            start_time=parse_start_time(start_value, default_tz),
            title=str(title) if title is not None else None,
            extra=extra,
        )

    @property
    def display_name(self) -> str:
        return self.title or self.meeting_id

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            **self.extra,
            "meeting_id": self.meeting_id,
            "eventId": self.meeting_id,
            "title": self.title,
            "meeting_url": self.meeting_url,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "accepted_at": self.accepted_at.isoformat(),
            "status": self.status,
        }


@dataclass
class LogEntry:
    """One line of a session's debug log."""
    timestamp: datetime
    level: str
    message: str

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level,
            "message": self.message,
        }


@dataclass
class StepResult:
    """Explicit outcome of one UI interaction step."""
    name: str
    ok: bool
    error: Optional[str] = None

    @classmethod
    def success(cls, name: str) -> "StepResult":
        return cls(name=name, ok=True)

    @classmethod
    def failure(cls, name: str, error: str) -> "StepResult":
        return cls(name=name, ok=False, error=error)


@dataclass
class SequenceResult:
    """Aggregate outcome of the join cascade."""
    ok: bool
    candidate: Optional[str] = None
    attempts: List[StepResult] = field(default_factory=list)

    @property
    def summary(self) -> str:
        if self.ok:
            return f"joined via '{self.candidate}'"
        tried = ", ".join(f"{a.name} ({a.error})" for a in self.attempts) or "no candidates"
        return f"no verified entry after: {tried}"


@dataclass
class CredentialBundle:
    """Opaque authentication material applied once per browser context."""
    cookies: List[Dict[str, Any]] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.cookies)
