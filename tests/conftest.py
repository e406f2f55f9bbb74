"""Shared pytest fixtures."""

import pytest
from datetime import date, datetime
from unittest.mock import AsyncMock

from src.domain.models import Notification, StorySnapshot, TaskSnapshot
from src.repositories.cache import ResourceCache
from src.repositories.memory import InMemoryEntityRepository
from src.scheduler.timers import ManualTimerScheduler
from src.services.debounce import DebounceAggregator
from src.services.dedup import DedupFilter
from src.services.mention_service import MentionResolver
from src.services.notification_builder import NotificationBuilder
from src.services.notification_service import NotificationService


@pytest.fixture
def sample_snapshot() -> TaskSnapshot:
    """Create a sample task snapshot for testing."""
    return TaskSnapshot(
        id="T1",
        name="Prepare release",
        permalink="https://app.asana.com/0/1/T1",
        assignee="Anna",
        due_on=date(2024, 3, 15),
        project_name="Backend",
        notes="Release notes draft",
    )


@pytest.fixture
def sample_comment() -> StorySnapshot:
    """Create a sample comment story."""
    return StorySnapshot(
        id="S1",
        text="Looks good to me",
        subtype="comment_added",
        author_name="Boris",
    )


@pytest.fixture
def sample_notification() -> Notification:
    return Notification(text="<b>Hello</b>", created_at=datetime.now(), entity_id="T1")


@pytest.fixture
def timers() -> ManualTimerScheduler:
    """Virtual clock starting at zero."""
    return ManualTimerScheduler()


@pytest.fixture
def repository() -> InMemoryEntityRepository:
    return InMemoryEntityRepository()


@pytest.fixture
def mock_sender():
    """Sender that accepts everything."""
    sender = AsyncMock()
    sender.channel_name = "telegram"
    sender.send.return_value = True
    return sender


@pytest.fixture
def mentions() -> MentionResolver:
    return MentionResolver({"Anna": "@anna", "boris@example.com": "@boris"})


@pytest.fixture
def builder(mentions) -> NotificationBuilder:
    return NotificationBuilder(mentions, locale="en")


@pytest.fixture
def notification_service(timers, repository, builder, mock_sender) -> NotificationService:
    """Engine wired with a virtual clock, in-memory repository and mock sender."""
    return NotificationService(
        task_cache=ResourceCache(repository.get_task, ttl_seconds=300, clock=timers.now),
        story_cache=ResourceCache(repository.get_story, ttl_seconds=300, clock=timers.now),
        dedup=DedupFilter(10, clock=timers.now),
        aggregator=DebounceAggregator(timers, create_quiet_seconds=5, edit_quiet_seconds=30),
        builder=builder,
        senders=[mock_sender],
    )
