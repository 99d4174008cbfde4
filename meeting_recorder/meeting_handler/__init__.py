"""
Meeting lifecycle engine: browser resources, UI rules, detection, join,
recording, supervision and the per-meeting state machine.
"""

from .action_sequencer import ActionSequencer
from .conference_controller import ConferenceController
from .detector import Detector
from .polling import CancelToken, poll_every
from .recording_controller import RecordingController
from .resource_manager import BrowserRuntime, ResourceManager
from .session_registry import Session, SessionRegistry
from .ui_locator import LocatorRule, UILocator, default_locator
from .watchdog import Watchdog

__all__ = [
    "ActionSequencer",
    "BrowserRuntime",
    "CancelToken",
    "ConferenceController",
    "Detector",
    "LocatorRule",
    "RecordingController",
    "ResourceManager",
    "Session",
    "SessionRegistry",
    "UILocator",
    "Watchdog",
    "default_locator",
    "poll_every",
]
