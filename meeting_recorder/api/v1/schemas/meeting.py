"""
API request/response schemas for meeting operations.
"""

from typing import Any, Optional, List
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


class ScheduleRecordingRequest(BaseModel):
    """
    Request to record a meeting.

    Accepts the calendar-automation payload as-is: unknown fields are kept
    and stored with the meeting.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    event_id: Optional[str] = Field(None, alias="eventId", description="Unique meeting identifier")
    meeting_url: Optional[str] = Field(None, alias="meetingUrl", description="Conference URL")
    start_time: Optional[Any] = Field(None, alias="startTime", description="Scheduled start (ISO 8601)")
    title: Optional[str] = Field(None, description="Display title")

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ScheduleRecordingResponse(BaseModel):
    """Response for a scheduling request."""
    success: bool
    message: str
    eventId: Optional[str] = None
    scheduledTime: Optional[str] = None
    launchAt: Optional[datetime] = None


class MeetingListResponse(BaseModel):
    """Every meeting accepted by this process."""
    total: int
    meetings: List[dict]
    status: str = "ok"


class MeetingStatusResponse(BaseModel):
    """Status of one meeting."""
    found: bool
    active: bool = False
    meeting: Optional[dict] = None
    session: Optional[dict] = None
    message: Optional[str] = None


class StopMeetingResponse(BaseModel):
    """Response for a stop request."""
    success: bool
    message: str


class BotStatusResponse(BaseModel):
    """Overall bot status."""
    running: bool
    scheduled_meetings: int
    active_sessions: List[dict]
    upcoming_jobs: List[dict]
    browser_running: bool


class HealthCheckResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    timestamp: datetime
    version: str
