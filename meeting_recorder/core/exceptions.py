"""
Custom exceptions for the Meeting Recorder.
"""

from typing import Any, Dict, Optional
from fastapi import HTTPException, status


class MeetingBotException(Exception):
    """Base exception for Meeting Recorder errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class TransientInteractionError(MeetingBotException):
    """An expected UI element was missing or a navigation timed out."""
    pass


class AuthenticationError(MeetingBotException):
    """Raised when the credential bundle is missing, invalid or rejected."""
    pass


class ResourceAcquisitionError(MeetingBotException):
    """Raised when a browser execution context cannot be created."""
    pass


class JoinExhaustionError(MeetingBotException):
    """Raised when no join candidate produced a verified entry."""
    pass


class RecordingActivationFailure(MeetingBotException):
    """Recording could not be started. Never fatal for the session."""
    pass


class TerminationError(MeetingBotException):
    """Releasing a session's browser resources failed."""
    pass


class DuplicateSessionError(MeetingBotException):
    """Raised when a meeting identifier already has an active session."""
    pass


class RegistryClosedError(MeetingBotException):
    """Raised when a session is submitted during shutdown."""
    pass


class ConfigurationError(MeetingBotException):
    """Raised when configuration is invalid."""
    pass


# HTTP Exceptions for API responses
class HTTPBadRequest(HTTPException):
    """400 Bad Request"""
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class HTTPNotFound(HTTPException):
    """404 Not Found"""
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class HTTPConflict(HTTPException):
    """409 Conflict"""
    def __init__(self, detail: str = "Resource conflict"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class HTTPServiceUnavailable(HTTPException):
    """503 Service Unavailable"""
    def __init__(self, detail: str = "Service unavailable"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class HTTPInternalServerError(HTTPException):
    """500 Internal Server Error"""
    def __init__(self, detail: str = "Internal server error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
