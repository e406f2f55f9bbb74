"""Domain models and protocols."""

from .models import (
    ActionKind,
    ResourceType,
    ChangeKind,
    TaskSnapshot,
    StorySnapshot,
    ProjectTask,
    TaskEvent,
    StoryEvent,
    SectionEvent,
    AttachmentEvent,
    WebhookEvent,
    CacheEntry,
    DedupEntry,
    PendingAggregate,
    Notification,
)
from .protocols import (
    EntityRepository,
    NotificationSender,
    TimerHandle,
    TimerScheduler,
    WebhookParser,
)

__all__ = [
    "ActionKind",
    "ResourceType",
    "ChangeKind",
    "TaskSnapshot",
    "StorySnapshot",
    "ProjectTask",
    "TaskEvent",
    "StoryEvent",
    "SectionEvent",
    "AttachmentEvent",
    "WebhookEvent",
    "CacheEntry",
    "DedupEntry",
    "PendingAggregate",
    "Notification",
    "EntityRepository",
    "NotificationSender",
    "TimerHandle",
    "TimerScheduler",
    "WebhookParser",
]
