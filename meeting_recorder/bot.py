"""
Recording Bot service.
Accepts meeting descriptors, launches their sessions on time and reports status.
"""

import asyncio
from typing import Any, Dict, List, Optional, Union

from meeting_recorder.auth import CookieFileStore
from meeting_recorder.config import Settings, settings as default_settings, get_logger
from meeting_recorder.core.exceptions import RegistryClosedError
from meeting_recorder.meeting_handler import (
    BrowserRuntime,
    ConferenceController,
    ResourceManager,
    Session,
    SessionRegistry,
    UILocator,
    default_locator,
)
from meeting_recorder.meeting_handler.detector import Clock, utc_now
from meeting_recorder.models import MeetingDescriptor
from meeting_recorder.notifications import WebhookNotifier
from meeting_recorder.scheduler import MeetingScheduler

logger = get_logger("bot")


class RecordingBot:
    """
    Main Recording Bot orchestrator.

    Coordinates:
    - Session registry and per-meeting controllers
    - Launch scheduling
    - The shared browser runtime
    - Status reporting
    """

    def __init__(
        self,
        app_settings: Optional[Settings] = None,
        runtime: Optional[BrowserRuntime] = None,
        locator: Optional[UILocator] = None,
        credential_store: Optional[CookieFileStore] = None,
        notifier: Optional[WebhookNotifier] = None,
        scheduler: Optional[MeetingScheduler] = None,
        clock: Clock = utc_now,
    ):
        """Initialize the Recording Bot."""
        self.settings = app_settings or default_settings
        self.clock = clock
        self.runtime = runtime or BrowserRuntime(self.settings.browser)
        self.locator = locator or default_locator(bot_name=self.settings.session.bot_name)
        self.credential_store = credential_store or CookieFileStore(self.settings.auth.cookies_file)
        self.notifier = notifier or WebhookNotifier(self.settings.backend)
        self.scheduler = scheduler or MeetingScheduler(self.settings.session.join_before_start_minutes)
        self.registry = SessionRegistry(on_finished=self._on_session_finished)

        # Every descriptor accepted by this process, newest last
        self.meetings: Dict[str, MeetingDescriptor] = {}
        # Last controller of each finished meeting, for status lookups
        self._finished: Dict[str, ConferenceController] = {}

        self.scheduler.set_callback(self.registry.launch)
        self._initialized = False

    async def initialize(self) -> bool:
        """
        Start background services. The browser itself starts with the first session.

        Returns:
            True if initialization was successful.
        """
        if self._initialized:
            return True
        logger.info("Initializing Recording Bot...")

        logger.info(f"Naive start times are read in {self.settings.tz_info!r}")

        if not self.credential_store.exists():
            if self.settings.auth.required:
                logger.warning(
                    f"Cookie file {self.settings.auth.cookies_file} not found; "
                    "sessions will fail until it is provided"
                )
            else:
                logger.info("No cookie file found; joining meetings as a guest")

        self.scheduler.start()
        self._initialized = True
        logger.info("Recording Bot initialized successfully")
        return True

    def submit(self, meeting: Union[MeetingDescriptor, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Accept a meeting and register its session.

        Raises:
            ValueError: payload is missing the identifier or URL.
            DuplicateSessionError: the identifier already has an active session.
            RegistryClosedError: the bot is shutting down.
        """
        if not isinstance(meeting, MeetingDescriptor):
            meeting = MeetingDescriptor.from_payload(meeting, default_tz=self.settings.tz_info)
        if self.registry.closing:
            raise RegistryClosedError("Shutting down; not accepting new meetings")

        resources = ResourceManager(self.runtime, meeting.meeting_id)
        controller = ConferenceController(
            meeting,
            resources,
            self.locator,
            session_settings=self.settings.session,
            navigation_timeout_ms=self.settings.browser.navigation_timeout_ms,
            credentials=self.credential_store.for_meeting,
            credentials_required=self.settings.auth.required,
            on_phase_change=self.notifier.phase_changed if self.notifier.enabled else None,
            clock=self.clock,
        )
        session = Session(controller=controller, resources=resources)
        self.registry.insert(session)
        self.meetings[meeting.meeting_id] = meeting
        self._finished.pop(meeting.meeting_id, None)

        now = self.clock()
        launch_at = self.scheduler.launch_time(meeting, now)
        if launch_at <= now or not self.scheduler.schedule_launch(meeting, session, launch_at):
            launch_at = now
            self.registry.launch(session)

        logger.info(f"📅 Meeting accepted: {meeting.display_name} (launch at {launch_at.isoformat()})")
        return {"meeting": meeting, "launch_at": launch_at}

    async def stop_meeting(self, meeting_id: str) -> bool:
        """
        External stop request for one meeting.

        Returns:
            False if the meeting has no active session.
        """
        self.scheduler.cancel(meeting_id)
        task = self.registry.stop(meeting_id)
        if task is None:
            return False
        logger.info(f"Stop requested for {meeting_id}")
        return True

    def _on_session_finished(self, session: Session) -> None:
        self._finished[session.meeting_id] = session.controller
        self.scheduler.cancel(session.meeting_id)

    def get_controller(self, meeting_id: str) -> Optional[ConferenceController]:
        session = self.registry.get(meeting_id)
        if session is not None:
            return session.controller
        return self._finished.get(meeting_id)

    def get_meeting_status(self, meeting_id: str) -> Optional[Dict[str, Any]]:
        meeting = self.meetings.get(meeting_id)
        if meeting is None:
            return None
        controller = self.get_controller(meeting_id)
        return {
            "meeting": meeting.to_dict(),
            "active": meeting_id in self.registry,
            "session": controller.to_dict() if controller else None,
        }

    def list_meetings(self) -> List[Dict[str, Any]]:
        meetings = []
        for meeting_id, meeting in self.meetings.items():
            data = meeting.to_dict()
            controller = self.get_controller(meeting_id)
            if controller is not None:
                data["session"] = controller.to_dict(include_logs=False)
            meetings.append(data)
        return meetings

    def get_status(self) -> Dict[str, Any]:
        """Get current status."""
        return {
            "running": self._initialized and not self.registry.closing,
            "scheduled_meetings": len(self.meetings),
            "active_sessions": [s.controller.to_dict(include_logs=False) for s in self.registry.sessions()],
            "upcoming_jobs": self.scheduler.get_upcoming_jobs(),
            "browser_running": self.runtime.is_running,
        }

    async def shutdown(self) -> None:
        """Stop every session, wait for their releases, then stop the browser."""
        logger.info("Shutting down Recording Bot...")

        self.scheduler.stop()
        await self.registry.shutdown()

        # Deliver the final phase changes before the client goes away
        controllers = [s.controller for s in self.registry.sessions()] + list(self._finished.values())
        await asyncio.gather(*(c.flush_notifications() for c in controllers))

        await self.runtime.stop()
        await self.notifier.close()

        logger.info("Recording Bot shutdown complete")
