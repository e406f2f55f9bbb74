"""Asana webhook payload parser."""

import logging
from datetime import date, datetime
from typing import Any, Iterable, Optional

from src.domain.models import (
    ActionKind,
    AttachmentEvent,
    ProjectTask,
    ResourceType,
    SectionEvent,
    StoryEvent,
    StorySnapshot,
    TaskEvent,
    TaskSnapshot,
    WebhookEvent,
)

logger = logging.getLogger(__name__)


def _compact_gid(obj: Any) -> Optional[str]:
    if isinstance(obj, dict):
        gid = obj.get("gid")
        if gid:
            return str(gid)
    return None


def _compact_name(obj: Any) -> Optional[str]:
    if isinstance(obj, dict):
        return obj.get("name") or obj.get("email") or None
    return None


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse an Asana ``YYYY-MM-DD`` date."""
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except (ValueError, TypeError):
        return None


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an Asana ISO timestamp (``Z`` suffix allowed)."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None


def task_from_data(data: Optional[dict]) -> Optional[TaskSnapshot]:
    """Build a TaskSnapshot from an Asana task object."""
    if not isinstance(data, dict) or not data.get("gid"):
        return None

    projects = data.get("projects") or []
    project_name = _compact_name(projects[0]) if projects else None
    parent = data.get("parent")

    return TaskSnapshot(
        id=str(data["gid"]),
        name=data.get("name") or "",
        permalink=data.get("permalink_url") or "",
        assignee=_compact_name(data.get("assignee")),
        due_on=parse_date(data.get("due_on")),
        project_name=project_name,
        parent_id=_compact_gid(parent),
        parent_name=_compact_name(parent),
        notes=data.get("notes") or None,
        completed=bool(data.get("completed", False)),
    )


def story_from_data(data: Optional[dict]) -> Optional[StorySnapshot]:
    """Build a StorySnapshot from an Asana story object."""
    if not isinstance(data, dict) or not data.get("gid"):
        return None
    return StorySnapshot(
        id=str(data["gid"]),
        text=data.get("text") or "",
        subtype=data.get("resource_subtype") or "",
        author_name=_compact_name(data.get("created_by")),
    )


def project_task_from_data(data: Optional[dict]) -> Optional[ProjectTask]:
    """Build a report row from an Asana task object."""
    if not isinstance(data, dict) or not data.get("gid"):
        return None
    return ProjectTask(
        id=str(data["gid"]),
        name=data.get("name") or "",
        due_on=parse_date(data.get("due_on")),
        completed=bool(data.get("completed", False)),
        completed_at=parse_datetime(data.get("completed_at")),
        assignee=_compact_name(data.get("assignee")),
        permalink=data.get("permalink_url") or "",
    )


class AsanaEventParser:
    """Decodes Asana webhook events into typed events.

    Anything that cannot be decoded (missing gid, unknown resource type or
    action) yields None and is dropped without error.
    """

    @property
    def platform(self) -> str:
        return "asana"

    def parse(self, payload: dict) -> Optional[WebhookEvent]:
        """Decode a single webhook event."""
        if not isinstance(payload, dict):
            return None

        resource = payload.get("resource")
        gid = _compact_gid(resource)
        if gid is None:
            logger.debug("Dropping event without resource gid")
            return None

        try:
            action = ActionKind(payload.get("action"))
            resource_type = ResourceType(resource.get("resource_type"))
        except ValueError:
            logger.debug(
                f"Dropping unsupported event {payload.get('action')}/"
                f"{resource.get('resource_type')}"
            )
            return None

        parent = payload.get("parent")
        parent_gid = _compact_gid(parent)
        parent_is_task = isinstance(parent, dict) and parent.get("resource_type") == "task"
        user = payload.get("user")
        actor = _compact_name(user)

        if resource_type == ResourceType.TASK:
            change = payload.get("change")
            field = change.get("field") if isinstance(change, dict) else None
            return TaskEvent(
                action=action,
                task_id=gid,
                parent_id=parent_gid if parent_is_task else None,
                actor_name=actor,
                changed_field=field if isinstance(field, str) else None,
                is_system_generated=not isinstance(user, dict),
                resource_name=resource.get("name"),
                snapshot=task_from_data(payload.get("snapshot")),
            )

        if resource_type == ResourceType.STORY:
            return StoryEvent(
                action=action,
                story_id=gid,
                parent_task_id=parent_gid if parent_is_task else None,
                actor_name=actor,
            )

        if resource_type == ResourceType.SECTION:
            return SectionEvent(
                action=action,
                section_id=gid,
                name=resource.get("name") or "",
            )

        return AttachmentEvent(
            action=action,
            attachment_id=gid,
            name=resource.get("name") or "",
            parent_task_id=parent_gid if parent_is_task else None,
        )

    def parse_many(self, events: Iterable[Any]) -> list[WebhookEvent]:
        """Decode a batch, skipping malformed entries."""
        parsed = []
        for payload in events or []:
            try:
                event = self.parse(payload)
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Dropping malformed event: {e!r}")
                continue
            if event is not None:
                parsed.append(event)
        return parsed
