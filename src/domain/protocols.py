"""Protocol definitions for dependency injection."""

from typing import Any, Callable, Optional, Protocol, Sequence, runtime_checkable

from .models import Notification, ProjectTask, StorySnapshot, TaskSnapshot, WebhookEvent


@runtime_checkable
class EntityRepository(Protocol):
    """Protocol for read-only access to the external task system."""

    async def get_task(self, task_id: str) -> Optional[TaskSnapshot]:
        """Fetch a task snapshot, None on any failure."""
        ...

    async def get_story(self, story_id: str) -> Optional[StorySnapshot]:
        """Fetch a story snapshot, None on any failure."""
        ...

    async def list_project_tasks(self, project_id: str) -> Sequence[ProjectTask]:
        """List tasks of a project, empty on failure."""
        ...


@runtime_checkable
class NotificationSender(Protocol):
    """Protocol for sending notifications."""

    async def send(self, notification: Notification) -> bool:
        """Send a notification, return True if successful."""
        ...

    @property
    def channel_name(self) -> str:
        """Return the channel name this sender handles."""
        ...


@runtime_checkable
class TimerHandle(Protocol):
    """Cancellable handle of a scheduled callback."""

    def cancel(self) -> None:
        ...


@runtime_checkable
class TimerScheduler(Protocol):
    """Deferred-callback scheduler with a monotonic clock."""

    def now(self) -> float:
        """Current time in seconds on the scheduler clock."""
        ...

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        """Run callback after delay seconds unless cancelled."""
        ...


@runtime_checkable
class WebhookParser(Protocol):
    """Protocol for decoding incoming webhook events."""

    def parse(self, payload: dict) -> Optional[WebhookEvent]:
        """Decode one event, None if malformed or unsupported."""
        ...

    @property
    def platform(self) -> str:
        """Return the platform name this parser handles."""
        ...
