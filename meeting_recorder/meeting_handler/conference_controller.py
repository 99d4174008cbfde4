"""
Conference Controller

State machine for one meeting:

    idle -> monitoring -> joining -> recording -> supervising -> terminating -> closed

with an absorbing ``failed`` phase reachable from any non-terminal phase.
Every exit path, failures included, goes through the same cleanup, which
releases the browser context exactly once.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Deque, Optional

from playwright.async_api import Page

from meeting_recorder.config import SessionSettings, get_logger
from meeting_recorder.core.exceptions import (
    AuthenticationError,
    JoinExhaustionError,
    MeetingBotException,
)
from meeting_recorder.models import (
    CredentialBundle,
    EndReason,
    LogEntry,
    MeetingDescriptor,
    MeetingPhase,
    Readiness,
)
from .action_sequencer import ActionSequencer
from .detector import Clock, Detector, utc_now
from .polling import CancelToken
from .recording_controller import RecordingController
from .resource_manager import ResourceManager
from .ui_locator import UILocator
from .watchdog import Watchdog


logger = get_logger("conference_controller")

CredentialProvider = Callable[[MeetingDescriptor], Awaitable[Optional[CredentialBundle]]]
PhaseListener = Callable[[dict], Awaitable[None]]

MAX_LOG_ENTRIES = 500

TRANSITIONS = {
    MeetingPhase.IDLE: {MeetingPhase.MONITORING, MeetingPhase.TERMINATING, MeetingPhase.FAILED},
    MeetingPhase.MONITORING: {MeetingPhase.JOINING, MeetingPhase.TERMINATING, MeetingPhase.FAILED},
    MeetingPhase.JOINING: {MeetingPhase.RECORDING, MeetingPhase.TERMINATING, MeetingPhase.FAILED},
    MeetingPhase.RECORDING: {MeetingPhase.SUPERVISING, MeetingPhase.TERMINATING, MeetingPhase.FAILED},
    MeetingPhase.SUPERVISING: {MeetingPhase.TERMINATING, MeetingPhase.FAILED},
    MeetingPhase.TERMINATING: {MeetingPhase.CLOSED, MeetingPhase.FAILED},
    MeetingPhase.CLOSED: set(),
    MeetingPhase.FAILED: set(),
}


class ConferenceController:
    """
    Drives one meeting from acceptance to release.

    Only the controller's own coroutine mutates its state; other tasks talk
    to it through ``request_stop()``.
    """

    def __init__(
        self,
        meeting: MeetingDescriptor,
        resources: ResourceManager,
        locator: UILocator,
        session_settings: Optional[SessionSettings] = None,
        navigation_timeout_ms: int = 30000,
        credentials: Optional[CredentialProvider] = None,
        credentials_required: bool = False,
        on_phase_change: Optional[PhaseListener] = None,
        detector: Optional[Detector] = None,
        sequencer: Optional[ActionSequencer] = None,
        recorder: Optional[RecordingController] = None,
        watchdog: Optional[Watchdog] = None,
        clock: Clock = utc_now,
    ):
        cfg = session_settings or SessionSettings()
        self.meeting = meeting
        self.resources = resources
        self.clock = clock
        self.credentials = credentials
        self.credentials_required = credentials_required
        self.on_phase_change = on_phase_change

        self.detector = detector or Detector(
            locator,
            poll_interval=cfg.poll_interval_seconds,
            expiry=timedelta(minutes=cfg.expiry_minutes),
            navigation_timeout_ms=navigation_timeout_ms,
            clock=clock,
        )
        self.sequencer = sequencer or ActionSequencer(
            locator,
            settle_delay=cfg.settle_delay_seconds,
            admission_timeout=cfg.admission_timeout_seconds,
            admission_check_interval=cfg.admission_check_seconds,
        )
        self.recorder = recorder or RecordingController(locator, settle_delay=cfg.settle_delay_seconds)
        self.watchdog = watchdog or Watchdog(
            locator,
            poll_interval=cfg.poll_interval_seconds,
            max_duration=timedelta(minutes=cfg.max_duration_minutes),
            liveness_recheck=cfg.liveness_recheck_seconds,
            clock=clock,
        )

        self.token = CancelToken()
        self.phase = MeetingPhase.IDLE
        self.logs: Deque[LogEntry] = deque(maxlen=MAX_LOG_ENTRIES)

        self.started_at: Optional[datetime] = None
        self.entered_at: Optional[datetime] = None
        self.ended_at: Optional[datetime] = None
        self.participant_count: Optional[int] = None
        self.is_recording = False
        self.join_candidate: Optional[str] = None
        self.end_reason: Optional[EndReason] = None
        self.error: Optional[str] = None

        # Tail of the notification chain; each delivery waits for the one before it
        self._delivery: Optional[asyncio.Task] = None

    @property
    def meeting_id(self) -> str:
        return self.meeting.meeting_id

    @property
    def elapsed_seconds(self) -> Optional[float]:
        """Seconds since entry into the conference."""
        if self.entered_at is None:
            return None
        end = self.ended_at or self.clock()
        return (end - self.entered_at).total_seconds()

    # ------------------------------------------------------------------
    # Debug log and transitions
    # ------------------------------------------------------------------

    def _log(self, level: str, message: str) -> None:
        self.logs.append(LogEntry(self.clock(), level, message))
        logger.log(getattr(logging, level, logging.INFO), f"[{self.meeting_id}] {message}")

    def _transition(self, new_phase: MeetingPhase) -> bool:
        """Move to ``new_phase``. Ignored once the session is terminal."""
        if self.phase.is_terminal:
            return False
        if new_phase not in TRANSITIONS[self.phase]:
            raise ValueError(f"Illegal transition {self.phase.value} -> {new_phase.value}")

        previous = self.phase
        self.phase = new_phase
        self.meeting.status = new_phase.value
        self._log("INFO", f"Phase {previous.value} -> {new_phase.value}")
        self._notify()
        return True

    def _fail(self, message: str, level: str = "ERROR") -> None:
        if self.phase.is_terminal:
            return
        self.error = message
        self._log(level, message)
        self._transition(MeetingPhase.FAILED)

    def _notify(self) -> None:
        if self.on_phase_change is None:
            return
        snapshot = self.to_dict(include_logs=False)
        self._delivery = asyncio.ensure_future(self._deliver(self._delivery, snapshot))

    async def _deliver(self, previous: Optional[asyncio.Task], snapshot: dict) -> None:
        if previous is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await previous
        try:
            await self.on_phase_change(snapshot)
        except Exception as e:
            logger.warning(f"[{self.meeting_id}] Phase listener failed for '{snapshot['phase']}': {e}")

    async def flush_notifications(self) -> None:
        """Wait until every phase change so far has been delivered."""
        while self._delivery is not None and not self._delivery.done():
            await asyncio.wait({self._delivery})

    # ------------------------------------------------------------------
    # External control
    # ------------------------------------------------------------------

    def request_stop(self, reason: EndReason = EndReason.STOP_REQUESTED) -> bool:
        """Ask the session to terminate; safe to call repeatedly or after it ended."""
        if self.phase.is_terminal:
            return False
        if self.token.cancel(reason.value):
            self._log("INFO", f"Stop requested ({reason.value})")
            return True
        return False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> MeetingPhase:
        """
        Run the whole lifecycle. Never raises for session-level failures.

        Returns:
            The terminal phase (closed or failed).
        """
        self.started_at = self.clock()
        self._log("INFO", f"Session started for '{self.meeting.display_name}' ({self.meeting.meeting_url})")
        try:
            if not self.token.cancelled:
                await self._run_until_stopped()
        finally:
            await self._cleanup()
        return self.phase

    async def _run_until_stopped(self) -> None:
        body = asyncio.ensure_future(self._lifecycle())
        stop = asyncio.ensure_future(self.token.wait())
        try:
            await asyncio.wait({body, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop.cancel()
            if not body.done():
                # A stop request interrupts whatever interaction is in flight
                body.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await body

    async def _lifecycle(self) -> None:
        try:
            page = await self._setup()

            readiness = await self.detector.wait_until_ready(page, self.meeting, self.token)
            if readiness is None:
                return
            if readiness is Readiness.EXPIRED:
                minutes = int(self.detector.expiry.total_seconds() // 60)
                self._fail(f"Meeting did not become ready within {minutes} minutes of its start", level="INFO")
                return

            self._transition(MeetingPhase.JOINING)
            await self._join(page)

            self._transition(MeetingPhase.RECORDING)
            await self._start_recording(page)

            self._transition(MeetingPhase.SUPERVISING)
            reason = await self.watchdog.supervise(
                page, self.entered_at, self.token, on_check=self._on_watchdog_check
            )
            if reason is not None:
                self.end_reason = reason
                self._log("INFO", f"End condition: {reason.value}")
                self._transition(MeetingPhase.TERMINATING)

        except MeetingBotException as e:
            self._fail(f"{type(e).__name__}: {e.message}")
        except Exception as e:
            logger.exception(f"[{self.meeting_id}] Unexpected session error")
            self._fail(f"Unexpected error: {e}")

    async def _setup(self) -> Page:
        """Idle -> monitoring: acquire the context and apply credentials."""
        page = await self.resources.acquire()
        self._log("INFO", "Browser context acquired")

        bundle = await self.credentials(self.meeting) if self.credentials else None
        if bundle:
            await self.resources.apply_credentials(bundle)
            self._log("INFO", f"Applied {len(bundle.cookies)} session cookies")
        elif self.credentials_required:
            raise AuthenticationError("No authentication material available")

        self._transition(MeetingPhase.MONITORING)
        return page

    async def _join(self, page: Page) -> None:
        result = await self.sequencer.run(page, log=self._log)
        if not result.ok:
            raise JoinExhaustionError(
                result.summary,
                details={"attempts": [a.name for a in result.attempts]},
            )
        self.join_candidate = result.candidate
        self.entered_at = self.clock()
        self.meeting.extra.setdefault("joined_at", self.entered_at.isoformat())

    async def _start_recording(self, page: Page) -> None:
        try:
            result = await self.recorder.activate(page)
        except Exception as e:
            logger.exception(f"[{self.meeting_id}] Recording controller crashed")
            self._log("WARNING", f"Recording not started: {e}")
            return
        self.is_recording = result.ok
        if result.ok:
            self._log("INFO", "Recording active")
        else:
            self._log("WARNING", f"Continuing without recording: {result.error}")

    def _on_watchdog_check(self, watchdog: Watchdog) -> None:
        if watchdog.last_participant_count != self.participant_count:
            self.participant_count = watchdog.last_participant_count
            self._log("DEBUG", f"Participants: {self.participant_count}")

    async def _cleanup(self) -> None:
        """Terminating -> closed, or failed -> failed; always releases resources."""
        if self.end_reason is None and self.token.cancelled:
            try:
                self.end_reason = EndReason(self.token.reason)
            except ValueError:
                self.end_reason = EndReason.STOP_REQUESTED

        if not self.phase.is_terminal and self.phase is not MeetingPhase.TERMINATING:
            self._transition(MeetingPhase.TERMINATING)

        try:
            await self.resources.release()
        except Exception as e:
            self._log("ERROR", f"TerminationError: {e}")
        if self.resources.release_error is not None:
            self._log("ERROR", f"TerminationError: {self.resources.release_error.message}")

        self.ended_at = self.clock()
        if self.phase is MeetingPhase.TERMINATING:
            self._transition(MeetingPhase.CLOSED)
        self._log("INFO", f"Session finished in phase '{self.phase.value}'")

    def to_dict(self, include_logs: bool = True) -> dict:
        """Status snapshot for the reporting layer."""
        data = {
            "meeting_id": self.meeting_id,
            "title": self.meeting.title,
            "phase": self.phase.value,
            "recording": self.is_recording,
            "participant_count": self.participant_count,
            "error": self.error,
            "end_reason": self.end_reason.value if self.end_reason else None,
            "join_candidate": self.join_candidate,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "entered_at": self.entered_at.isoformat() if self.entered_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "elapsed_seconds": self.elapsed_seconds,
            "detector_polls": self.detector.polls,
            "detector_error": self.detector.last_error,
        }
        if include_logs:
            data["logs"] = [entry.to_dict() for entry in self.logs]
        return data
