"""
Meeting endpoints: scheduling, listing, status and stop.
"""

from fastapi import APIRouter, Depends
from typing import Dict, Any

from meeting_recorder.api.v1.schemas.meeting import (
    ScheduleRecordingRequest,
    ScheduleRecordingResponse,
    MeetingListResponse,
    MeetingStatusResponse,
    StopMeetingResponse,
)
from meeting_recorder.core.dependencies import get_recording_bot_service
from meeting_recorder.core.exceptions import (
    DuplicateSessionError,
    RegistryClosedError,
    HTTPBadRequest,
    HTTPConflict,
    HTTPInternalServerError,
    HTTPNotFound,
    HTTPServiceUnavailable,
)
from meeting_recorder.core.logging import get_logger

router = APIRouter()
logger = get_logger("api.meetings")


@router.post("/schedule-recording", response_model=ScheduleRecordingResponse)
async def schedule_recording(
    request: ScheduleRecordingRequest,
    bot=Depends(get_recording_bot_service),
) -> Dict[str, Any]:
    """
    Accept a meeting for recording.

    The session launches shortly before the meeting's start time, or
    immediately when no start time is given.
    """
    try:
        accepted = bot.submit(request.to_payload())
    except ValueError as e:
        raise HTTPBadRequest(str(e))
    except DuplicateSessionError as e:
        raise HTTPConflict(e.message)
    except RegistryClosedError as e:
        raise HTTPServiceUnavailable(e.message)
    except Exception as e:
        logger.error(f"Failed to schedule meeting: {e}")
        raise HTTPInternalServerError(str(e))

    meeting = accepted["meeting"]
    logger.info(f"Scheduled recording for {meeting.display_name}")
    return {
        "success": True,
        "message": "Meeting scheduled for recording",
        "eventId": meeting.meeting_id,
        "scheduledTime": meeting.start_time.isoformat() if meeting.start_time else None,
        "launchAt": accepted["launch_at"],
    }


@router.get("/meetings", response_model=MeetingListResponse)
async def list_meetings(bot=Depends(get_recording_bot_service)) -> Dict[str, Any]:
    """List every meeting accepted by this process."""
    meetings = bot.list_meetings()
    return {"total": len(meetings), "meetings": meetings}


@router.get("/status/{event_id}", response_model=MeetingStatusResponse)
async def get_meeting_status(event_id: str, bot=Depends(get_recording_bot_service)) -> Dict[str, Any]:
    """Status and debug log of one meeting."""
    status = bot.get_meeting_status(event_id)
    if status is None:
        return {"found": False, "message": f"No meeting with id {event_id}"}
    return {"found": True, **status}


@router.post("/stop/{event_id}", response_model=StopMeetingResponse)
async def stop_meeting(event_id: str, bot=Depends(get_recording_bot_service)) -> Dict[str, Any]:
    """Ask an active session to leave its meeting and release its browser context."""
    if not await bot.stop_meeting(event_id):
        raise HTTPNotFound(f"No active session for meeting {event_id}")
    return {"success": True, "message": f"Stop requested for {event_id}"}
