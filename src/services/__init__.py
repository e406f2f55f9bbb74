"""Service layer implementations."""

from .dedup import DedupFilter
from .debounce import DebounceAggregator
from .mention_service import MentionResolver
from .notification_builder import NotificationBuilder
from .notification_service import NotificationService
from .report_service import ReportService

__all__ = [
    "DedupFilter",
    "DebounceAggregator",
    "MentionResolver",
    "NotificationBuilder",
    "NotificationService",
    "ReportService",
]
