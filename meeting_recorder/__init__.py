"""
Meeting Recorder Package.
Unattended meeting join, recording and supervision.
"""

__version__ = "1.0.0"
