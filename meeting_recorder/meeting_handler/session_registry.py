"""
Session Registry

Process-wide mapping from meeting identifier to its live session. Entries are
inserted when a meeting is accepted and removed when its controller finishes.

Every mutating method is synchronous, so under the single event loop each one
runs to completion without interleaving.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from meeting_recorder.config import get_logger
from meeting_recorder.core.exceptions import DuplicateSessionError, RegistryClosedError
from meeting_recorder.models import EndReason
from .conference_controller import ConferenceController
from .resource_manager import ResourceManager


logger = get_logger("session_registry")


@dataclass(eq=False)
class Session:
    """Handles owned by one active meeting."""
    controller: ConferenceController
    resources: ResourceManager
    task: Optional[asyncio.Task] = None

    @property
    def meeting_id(self) -> str:
        return self.controller.meeting_id

    @property
    def is_launched(self) -> bool:
        return self.task is not None


class SessionRegistry:
    """At most one active session per meeting identifier."""

    def __init__(self, on_finished: Optional[Callable[[Session], None]] = None) -> None:
        self._sessions: Dict[str, Session] = {}
        self._closing = False
        self._on_finished = on_finished

    def __contains__(self, meeting_id: str) -> bool:
        return meeting_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def closing(self) -> bool:
        return self._closing

    def insert(self, session: Session) -> None:
        """
        Register a new session.

        Raises:
            DuplicateSessionError: the identifier already has an active session.
            RegistryClosedError: shutdown has started.
        """
        if self._closing:
            raise RegistryClosedError("Shutting down; not accepting new sessions")
        if session.meeting_id in self._sessions:
            raise DuplicateSessionError(
                f"Meeting {session.meeting_id} already has an active session",
                details={"meeting_id": session.meeting_id},
            )
        self._sessions[session.meeting_id] = session
        logger.debug(f"Registered session {session.meeting_id} ({len(self._sessions)} active)")

    def get(self, meeting_id: str) -> Optional[Session]:
        return self._sessions.get(meeting_id)

    def remove(self, meeting_id: str, session: Optional[Session] = None) -> Optional[Session]:
        """Forget a session; with ``session`` given, only if it is still the registered one."""
        current = self._sessions.get(meeting_id)
        if current is None or (session is not None and current is not session):
            return None
        del self._sessions[meeting_id]
        logger.debug(f"Removed session {meeting_id} ({len(self._sessions)} active)")
        return current

    def sessions(self) -> List[Session]:
        return list(self._sessions.values())

    def launch(self, session: Session) -> Optional[asyncio.Task]:
        """Start the session's controller task, once. No-op for stale sessions."""
        if self._sessions.get(session.meeting_id) is not session:
            return None
        if session.task is None:
            session.task = asyncio.ensure_future(self._run(session))
        return session.task

    async def _run(self, session: Session) -> None:
        try:
            await session.controller.run()
        finally:
            if self._on_finished is not None:
                try:
                    self._on_finished(session)
                except Exception as e:
                    logger.error(f"Finished-session hook failed for {session.meeting_id}: {e}")
            self.remove(session.meeting_id, session)

    def stop(self, meeting_id: str, reason: EndReason = EndReason.STOP_REQUESTED) -> Optional[asyncio.Task]:
        """
        Drive one session to terminating.

        A session still waiting for its launch time is launched so it closes
        through the normal cleanup path.
        """
        session = self._sessions.get(meeting_id)
        if session is None:
            return None
        session.controller.request_stop(reason)
        return self.launch(session)

    async def shutdown(self) -> None:
        """Stop every session and wait until all of them released their resources."""
        self._closing = True
        sessions = self.sessions()
        if not sessions:
            return

        logger.info(f"Stopping {len(sessions)} active session(s)...")
        tasks = [self.stop(s.meeting_id, EndReason.SHUTDOWN) for s in sessions]
        results = await asyncio.gather(*[t for t in tasks if t is not None], return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, asyncio.CancelledError):
                logger.error(f"Session task ended with error during shutdown: {result}")
        logger.info("All sessions stopped")
