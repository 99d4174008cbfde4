"""
Launch-time scheduling for accepted meetings.
"""

from .meeting_scheduler import MeetingScheduler

__all__ = ["MeetingScheduler"]
