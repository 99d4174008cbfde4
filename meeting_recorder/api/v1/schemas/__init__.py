"""
API v1 request/response schemas.
"""

from .meeting import (
    ScheduleRecordingRequest,
    ScheduleRecordingResponse,
    MeetingListResponse,
    MeetingStatusResponse,
    StopMeetingResponse,
    BotStatusResponse,
    HealthCheckResponse,
)

__all__ = [
    "ScheduleRecordingRequest",
    "ScheduleRecordingResponse",
    "MeetingListResponse",
    "MeetingStatusResponse",
    "StopMeetingResponse",
    "BotStatusResponse",
    "HealthCheckResponse",
]
