"""Event consolidation: from webhook events to delivered notifications."""

import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..domain.models import (
    ActionKind,
    AttachmentEvent,
    Notification,
    SectionEvent,
    StoryEvent,
    StorySnapshot,
    TaskEvent,
    TaskSnapshot,
    WebhookEvent,
)
from ..domain.protocols import NotificationSender
from ..repositories.cache import ResourceCache
from .debounce import DebounceAggregator
from .dedup import DedupFilter, aggregate_key
from .notification_builder import NotificationBuilder

logger = logging.getLogger(__name__)


class NotificationService:
    """Turns a stream of webhook events into deduplicated notifications.

    Task additions and edits are coalesced per task by the debounce
    aggregator and rendered from a freshly fetched snapshot when the quiet
    window elapses. Comments, sections, attachments and deletions are
    rendered and delivered immediately.
    """

    def __init__(
        self,
        task_cache: ResourceCache[TaskSnapshot],
        story_cache: ResourceCache[StorySnapshot],
        dedup: DedupFilter,
        aggregator: DebounceAggregator,
        builder: NotificationBuilder,
        senders: Sequence[NotificationSender],
    ):
        """Initialize notification service.

        Args:
            task_cache: Cache of task snapshots keyed by task gid
            story_cache: Cache of story snapshots keyed by story gid
            dedup: Duplicate suppression filter
            aggregator: Per-task debounce aggregator
            builder: Message renderer
            senders: List of notification senders
        """
        self._tasks = task_cache
        self._stories = story_cache
        self._dedup = dedup
        self._aggregator = aggregator
        self._builder = builder
        self._senders = list(senders)
        # Tasks whose latest event delivered a snapshot
        self._primed: set[str] = set()

    @property
    def senders(self) -> list[NotificationSender]:
        """Get list of registered senders."""
        return self._senders

    @property
    def aggregator(self) -> DebounceAggregator:
        return self._aggregator

    def add_sender(self, sender: NotificationSender) -> None:
        """Add a notification sender.

        Args:
            sender: Sender to add
        """
        self._senders.append(sender)

    def remove_sender(self, channel_name: str) -> bool:
        """Remove a sender by channel name.

        Args:
            channel_name: Name of the channel to remove

        Returns:
            True if removed, False if not found
        """
        for i, sender in enumerate(self._senders):
            if sender.channel_name == channel_name:
                del self._senders[i]
                return True
        return False

    async def send_notification(
        self,
        notification: Notification,
        channels: Optional[Sequence[str]] = None,
    ) -> dict[str, bool]:
        """Send notification to specified channels.

        Failed sends are logged and not retried.

        Args:
            notification: Notification to send
            channels: Channel names to send to, or None for all

        Returns:
            Dict mapping channel names to success status
        """
        results = {}

        for sender in self._senders:
            if channels is None or sender.channel_name in channels:
                try:
                    success = await sender.send(notification)
                except Exception as e:
                    logger.warning(f"Sender {sender.channel_name} raised: {e!r}")
                    success = False
                if not success:
                    logger.warning(
                        f"Notification for {notification.entity_id} "
                        f"not delivered to {sender.channel_name}"
                    )
                results[sender.channel_name] = success

        return results

    async def send_text(self, text: str, kind: str = "report") -> dict[str, bool]:
        """Send a pre-rendered message to all channels."""
        notification = Notification(text=text, created_at=datetime.now(), kind=kind)
        return await self.send_notification(notification)

    async def handle_events(self, events: Iterable[WebhookEvent]) -> int:
        """Process a batch of events, each in isolation.

        Returns:
            Number of notifications delivered immediately
        """
        delivered = 0
        for event in events:
            try:
                if await self.handle_event(event) is not None:
                    delivered += 1
            except Exception as e:
                logger.error(f"Failed to process {type(event).__name__}: {e!r}")
        return delivered

    async def handle_event(self, event: WebhookEvent) -> Optional[Notification]:
        """Process one event.

        Returns:
            The notification delivered now, or None if nothing was sent
            (deferred, duplicate, or not notable)
        """
        if isinstance(event, TaskEvent):
            return await self._handle_task(event)
        if isinstance(event, StoryEvent):
            return await self._handle_story(event)
        if isinstance(event, SectionEvent):
            return await self._handle_section(event)
        if isinstance(event, AttachmentEvent):
            return await self._handle_attachment(event)
        return None

    async def flush_task(
        self,
        task_id: str,
        change_kinds: frozenset,
        actor: Optional[str] = None,
    ) -> Optional[Notification]:
        """Render and deliver a fired aggregate.

        Args:
            task_id: Task gid
            change_kinds: Union of the coalesced change kinds
            actor: Last user who changed the task

        Returns:
            Delivered notification, or None
        """
        if self._dedup.check_and_mark(aggregate_key(task_id, change_kinds)):
            logger.debug(f"Duplicate aggregate for task {task_id}")
            return None

        if task_id in self._primed:
            self._primed.discard(task_id)
        else:
            self._tasks.invalidate(task_id)

        snapshot = await self._tasks.get(task_id)
        text = self._builder.build_task_change(snapshot, change_kinds, actor)
        return await self._deliver(text, task_id, "task")

    async def _handle_task(self, event: TaskEvent) -> Optional[Notification]:
        if event.action == ActionKind.DELETED:
            return await self._handle_task_deleted(event)

        if event.action not in (ActionKind.ADDED, ActionKind.CHANGED):
            return None

        if event.snapshot is not None:
            self._tasks.prime(event.task_id, event.snapshot)

        kind = event.change_kind
        if kind is None:
            logger.debug(f"Ignoring change of {event.changed_field} on task {event.task_id}")
            return None

        if event.snapshot is not None:
            self._primed.add(event.task_id)
        else:
            self._primed.discard(event.task_id)
        self._aggregator.schedule(event.task_id, kind, event.actor_name, self.flush_task)
        return None

    async def _handle_task_deleted(self, event: TaskEvent) -> Optional[Notification]:
        self._aggregator.discard(event.task_id)
        self._primed.discard(event.task_id)
        self._tasks.invalidate(event.task_id)

        if self._dedup.check_and_mark(f"task:{event.task_id}:deleted"):
            return None

        name = event.resource_name
        if not name:
            last = self._tasks.last_known(event.task_id)
            name = last.name if last is not None else None

        text = self._builder.build_task_deleted(name, event.actor_name)
        return await self._deliver(text, event.task_id, "task_deleted")

    async def _handle_story(self, event: StoryEvent) -> Optional[Notification]:
        if event.action != ActionKind.ADDED:
            return None
        if self._dedup.check_and_mark(f"story:{event.story_id}"):
            return None

        story = await self._stories.get(event.story_id)
        if story is None or not story.is_comment:
            return None

        task = None
        if event.parent_task_id:
            task = await self._tasks.get(event.parent_task_id)

        text = self._builder.build_comment(story, task)
        return await self._deliver(text, event.story_id, "comment")

    async def _handle_section(self, event: SectionEvent) -> Optional[Notification]:
        if event.action != ActionKind.ADDED:
            return None
        if self._dedup.check_and_mark(f"section:{event.section_id}"):
            return None

        text = self._builder.build_section_added(event.name)
        return await self._deliver(text, event.section_id, "section")

    async def _handle_attachment(self, event: AttachmentEvent) -> Optional[Notification]:
        if event.action != ActionKind.ADDED:
            return None
        if self._dedup.check_and_mark(f"attachment:{event.attachment_id}"):
            return None

        task = None
        if event.parent_task_id:
            task = await self._tasks.get(event.parent_task_id)

        text = self._builder.build_attachment_added(event.name, task)
        return await self._deliver(text, event.attachment_id, "attachment")

    async def _deliver(
        self, text: Optional[str], entity_id: str, kind: str
    ) -> Optional[Notification]:
        if not text:
            return None

        notification = Notification(
            text=text,
            created_at=datetime.now(),
            entity_id=entity_id,
            kind=kind,
        )
        results = await self.send_notification(notification)
        if any(results.values()):
            logger.info(f"Sent {kind} notification for {entity_id}")
        return notification
