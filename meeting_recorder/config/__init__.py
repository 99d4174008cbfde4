"""
Configuration module for the Meeting Recorder.
"""

from .settings import (
    Settings,
    settings,
    BrowserSettings,
    SessionSettings,
    AuthSettings,
    BackendSettings,
    ServerSettings,
)
from meeting_recorder.core.logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "BrowserSettings",
    "SessionSettings",
    "AuthSettings",
    "BackendSettings",
    "ServerSettings",
    "get_logger",
    "setup_logging",
]
