"""
Dependency injection for the Meeting Recorder API.
Provides the recording bot service to API endpoints.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from meeting_recorder.bot import RecordingBot

_recording_bot_instance: Optional["RecordingBot"] = None


def set_recording_bot_instance(instance: Optional["RecordingBot"]) -> None:
    """Set the global recording bot instance."""
    global _recording_bot_instance
    _recording_bot_instance = instance


async def get_recording_bot_service() -> "RecordingBot":
    """
    Dependency injection for the RecordingBot service.

    Returns:
        RecordingBot instance

    Raises:
        HTTPException: If service is not initialized
    """
    from meeting_recorder.core.exceptions import HTTPServiceUnavailable

    if _recording_bot_instance is None:
        raise HTTPServiceUnavailable("Recording bot service not initialized")

    return _recording_bot_instance

