"""Scheduling: cron report jobs and debounce timers."""

from .jobs import JobRegistry
from .scheduler import ReportScheduler
from .timers import AsyncioTimerScheduler, ManualTimerScheduler

__all__ = [
    "JobRegistry",
    "ReportScheduler",
    "AsyncioTimerScheduler",
    "ManualTimerScheduler",
]
