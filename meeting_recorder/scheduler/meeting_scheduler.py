"""
Meeting scheduler using APScheduler.
Launches accepted sessions shortly before their scheduled start.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.events import (
    EVENT_JOB_EXECUTED,
    EVENT_JOB_ERROR,
    EVENT_JOB_MISSED,
    JobExecutionEvent,
)

from meeting_recorder.config import get_logger
from meeting_recorder.models import MeetingDescriptor

logger = get_logger("scheduler")


class MeetingScheduler:
    """
    Time-based launcher for meeting sessions.
    Uses APScheduler for the launch jobs.
    """

    def __init__(self, join_before_start_minutes: float = 1.0):
        """Initialize the meeting scheduler."""
        self.join_before_start = timedelta(minutes=join_before_start_minutes)
        self._is_running: bool = False

        self._scheduler = AsyncIOScheduler(
            jobstores={'default': MemoryJobStore()},
            timezone=timezone.utc
        )

        self._on_launch: Optional[Callable[[Any], None]] = None
        # Launch targets by job id, until their job runs, misses or is cancelled
        self._targets: Dict[str, Any] = {}

        self._scheduler.add_listener(
            self._on_job_event,
            EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED
        )

    def set_callback(self, on_launch: Callable[[Any], None]) -> None:
        """
        Set the function called when a session's launch time arrives.

        Args:
            on_launch: Receives the object passed to schedule_launch.
        """
        self._on_launch = on_launch

    def start(self) -> None:
        """Start the scheduler."""
        if not self._is_running:
            self._scheduler.start()
            self._is_running = True
            logger.info("Meeting scheduler started")

    def stop(self) -> None:
        """Stop the scheduler."""
        if not self._is_running:
            return

        try:
            # Avoid calling into a closed event loop (e.g. during test teardown)
            loop = getattr(self._scheduler, "_eventloop", None)
            if self._scheduler.running and not (loop and loop.is_closed()):
                self._scheduler.shutdown(wait=False)
            logger.info("Meeting scheduler stopped")
        finally:
            self._is_running = False

    def launch_time(self, meeting: MeetingDescriptor, now: Optional[datetime] = None) -> datetime:
        """When the session for ``meeting`` should start its browser."""
        now = now or datetime.now(timezone.utc)
        if meeting.start_time is None:
            return now
        return max(now, meeting.start_time - self.join_before_start)

    def schedule_launch(self, meeting: MeetingDescriptor, target: Any, run_at: datetime) -> bool:
        """
        Schedule a launch job.

        Args:
            meeting: Meeting being launched (used for job id and name)
            target: Passed to the launch callback
            run_at: Launch time

        Returns:
            True if scheduled successfully.
        """
        if not self._is_running:
            logger.warning(f"Scheduler not running; cannot schedule {meeting.meeting_id}")
            return False

        try:
            self._scheduler.add_job(
                self._launch_job,
                trigger=DateTrigger(run_date=run_at, timezone=timezone.utc),
                args=[target],
                id=self._job_id(meeting.meeting_id),
                name=f"Launch: {meeting.display_name}",
                replace_existing=True,
                misfire_grace_time=300  # 5 minutes grace period
            )
            self._targets[self._job_id(meeting.meeting_id)] = target
        except Exception as e:
            logger.error(f"Failed to schedule meeting {meeting.meeting_id}: {e}")
            return False

        logger.info(f"Scheduled launch of {meeting.display_name} at {run_at.strftime('%Y-%m-%d %H:%M:%S %Z')}")
        return True

    async def _launch_job(self, target: Any) -> None:
        """Launch job that runs at the scheduled time."""
        if self._on_launch:
            try:
                self._on_launch(target)
            except Exception as e:
                logger.error(f"Launch callback error: {e}")

    def cancel(self, meeting_id: str) -> bool:
        """
        Cancel a pending launch.

        Returns:
            True if a job was removed.
        """
        self._targets.pop(self._job_id(meeting_id), None)
        try:
            self._scheduler.remove_job(self._job_id(meeting_id))
        except JobLookupError:
            return False
        logger.info(f"Cancelled launch of {meeting_id}")
        return True

    def get_upcoming_jobs(self) -> List[dict]:
        """
        Get information about upcoming scheduled jobs.

        Returns:
            List of job info dictionaries.
        """
        jobs = []
        for job in self._scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            })
        return jobs

    def _on_job_event(self, event: JobExecutionEvent) -> None:
        target = self._targets.pop(event.job_id, None)
        if event.exception:
            logger.error(f"Job {event.job_id} failed: {event.exception}")
        elif event.code == EVENT_JOB_MISSED:
            # Launch anyway; a session that started too late expires on its own
            logger.warning(f"Job {event.job_id} missed its launch time; launching now")
            if target is not None and self._on_launch:
                try:
                    self._on_launch(target)
                except Exception as e:
                    logger.error(f"Launch callback error: {e}")

    @staticmethod
    def _job_id(meeting_id: str) -> str:
        return f"launch_{meeting_id}"

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._is_running
