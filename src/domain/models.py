"""Domain models for the Asana notification engine."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Optional, Union


class ActionKind(Enum):
    """Webhook event actions."""

    ADDED = "added"
    CHANGED = "changed"
    DELETED = "deleted"
    REMOVED = "removed"
    UNDELETED = "undeleted"


class ResourceType(Enum):
    """Tracked Asana resource types."""

    TASK = "task"
    STORY = "story"
    SECTION = "section"
    ATTACHMENT = "attachment"


class ChangeKind:
    """Symbolic tags for one category of task mutation."""

    ADDED = "added"
    ASSIGNEE = "assignee"
    DUE_DATE = "due_on"
    DESCRIPTION = "notes"
    NAME = "name"
    CUSTOM_FIELDS = "custom_fields"
    COMPLETED = "completed"

    # Asana field name -> change kind
    FIELD_ALIASES = {
        "assignee": ASSIGNEE,
        "due_on": DUE_DATE,
        "due_at": DUE_DATE,
        "notes": DESCRIPTION,
        "html_notes": DESCRIPTION,
        "name": NAME,
        "custom_fields": CUSTOM_FIELDS,
        "completed": COMPLETED,
    }

    # Fields that never produce a notification on their own
    IGNORED = frozenset({
        "likes",
        "hearts",
        "num_likes",
        "num_hearts",
        "liked",
        "hearted",
        "followers",
        "memberships",
        "modified_at",
        "tags",
        "projects",
        "dependencies",
        "dependents",
    })

    @classmethod
    def from_field(cls, field_name: Optional[str]) -> Optional[str]:
        """Map an Asana ``change.field`` to a change kind.

        Ignored fields return None; unknown fields are passed through so the
        builder can drop them.
        """
        if not field_name:
            return None
        if field_name in cls.IGNORED:
            return None
        return cls.FIELD_ALIASES.get(field_name, field_name)


@dataclass(frozen=True)
class TaskSnapshot:
    """Most recently fetched view of a task."""

    id: str
    name: str
    permalink: str = ""
    assignee: Optional[str] = None
    due_on: Optional[date] = None
    project_name: Optional[str] = None
    parent_id: Optional[str] = None
    parent_name: Optional[str] = None
    notes: Optional[str] = None
    completed: bool = False


@dataclass(frozen=True)
class StorySnapshot:
    """Fetched view of a story (comment or system activity)."""

    id: str
    text: str = ""
    subtype: str = ""
    author_name: Optional[str] = None

    @property
    def is_comment(self) -> bool:
        return self.subtype == "comment_added"


@dataclass(frozen=True)
class ProjectTask:
    """Task row used by the scheduled reports."""

    id: str
    name: str
    due_on: Optional[date] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    assignee: Optional[str] = None
    permalink: str = ""


@dataclass(frozen=True)
class TaskEvent:
    """Task added/changed/deleted."""

    action: ActionKind
    task_id: str
    parent_id: Optional[str] = None
    actor_name: Optional[str] = None
    changed_field: Optional[str] = None
    is_system_generated: bool = False
    resource_name: Optional[str] = None
    snapshot: Optional[TaskSnapshot] = None

    @property
    def change_kind(self) -> Optional[str]:
        """Change kind carried by this event, or None if nothing notable."""
        if self.action == ActionKind.ADDED:
            return ChangeKind.ADDED
        if self.action == ActionKind.CHANGED:
            return ChangeKind.from_field(self.changed_field)
        return None


@dataclass(frozen=True)
class StoryEvent:
    """Story added to a task (comments and system activity)."""

    action: ActionKind
    story_id: str
    parent_task_id: Optional[str] = None
    actor_name: Optional[str] = None


@dataclass(frozen=True)
class SectionEvent:
    """Section added to a project."""

    action: ActionKind
    section_id: str
    name: str = ""


@dataclass(frozen=True)
class AttachmentEvent:
    """File attached to a task."""

    action: ActionKind
    attachment_id: str
    name: str = ""
    parent_task_id: Optional[str] = None


WebhookEvent = Union[TaskEvent, StoryEvent, SectionEvent, AttachmentEvent]


@dataclass
class CacheEntry:
    """Cached value with its expiry on the cache clock."""

    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass
class DedupEntry:
    """Marked notification key."""

    key: str
    expires_at: float


@dataclass
class PendingAggregate:
    """Open coalescing buffer for one entity."""

    entity_id: str
    change_kinds: set[str]
    last_actor: Optional[str]
    deadline: float
    on_fire: Callable[..., Any]
    handle: Any = None


@dataclass
class Notification:
    """Rendered notification to be delivered."""

    text: str
    created_at: datetime
    entity_id: Optional[str] = None
    kind: str = ""
