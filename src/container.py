"""Dependency injection container."""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Callable, Optional, Any

from src.domain.protocols import EntityRepository, NotificationSender, TimerScheduler


T = TypeVar("T")


class Provider(Generic[T]):
    """Lazy provider that creates instance on first access."""

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._instance: Optional[T] = None

    def get(self) -> T:
        """Get the instance, creating it if necessary."""
        if self._instance is None:
            self._instance = self._factory()
        return self._instance

    def reset(self) -> None:
        """Reset the instance (for testing)."""
        self._instance = None

    def override(self, instance: T) -> None:
        """Override with a specific instance (for testing)."""
        self._instance = instance


@dataclass
class Container:
    """Process-wide owner of the engine state.

    Caches, the dedup filter and pending aggregates live as long as the
    container; resetting it discards them.
    """

    _entity_repository: Optional[Provider[EntityRepository]] = None
    _timers: Optional[Provider[TimerScheduler]] = None
    _notification_senders: list[Provider[NotificationSender]] = field(
        default_factory=list
    )

    # Engine singletons, built lazily from the providers above
    _notification_service: Optional[Any] = None
    _report_service: Optional[Any] = None
    _settings: Optional[Any] = None

    @property
    def entity_repository(self) -> EntityRepository:
        """Get the Asana entity repository."""
        if self._entity_repository is None:
            raise RuntimeError("Entity repository not configured")
        return self._entity_repository.get()

    @property
    def timers(self) -> TimerScheduler:
        """Get the timer scheduler used for debounce deadlines."""
        if self._timers is None:
            from src.scheduler.timers import AsyncioTimerScheduler

            self._timers = Provider(AsyncioTimerScheduler)
        return self._timers.get()

    @property
    def notification_senders(self) -> list[NotificationSender]:
        """Get all notification senders."""
        return [p.get() for p in self._notification_senders]

    @property
    def settings(self) -> Any:
        """Get application settings."""
        if self._settings is None:
            from src.config.settings import get_settings

            self._settings = get_settings()
        return self._settings

    @property
    def mention_resolver(self) -> Any:
        """Get MentionResolver built from configuration."""
        from src.services.mention_service import MentionResolver

        return MentionResolver(self.settings.notification.mentions)

    @property
    def notification_service(self) -> Any:
        """Get the NotificationService singleton."""
        if self._notification_service is None:
            self._notification_service = self._build_notification_service()
        return self._notification_service

    @property
    def report_service(self) -> Any:
        """Get the ReportService singleton."""
        if self._report_service is None:
            from src.services.report_service import ReportService

            settings = self.settings
            self._report_service = ReportService(
                repository=self.entity_repository,
                notification_service=self.notification_service,
                project_ids=settings.asana.get_project_gids(),
                mentions=self.mention_resolver,
                locale=settings.notification.language,
                timezone=settings.scheduler.timezone,
            )
        return self._report_service

    def _build_notification_service(self) -> Any:
        from src.repositories.cache import ResourceCache
        from src.services.debounce import DebounceAggregator
        from src.services.dedup import DedupFilter
        from src.services.notification_builder import NotificationBuilder
        from src.services.notification_service import NotificationService

        config = self.settings.notification
        repository = self.entity_repository
        timers = self.timers

        return NotificationService(
            task_cache=ResourceCache(
                repository.get_task,
                ttl_seconds=config.cache_ttl_seconds,
                clock=timers.now,
            ),
            story_cache=ResourceCache(
                repository.get_story,
                ttl_seconds=config.cache_ttl_seconds,
                clock=timers.now,
            ),
            dedup=DedupFilter(config.dedup_window_seconds, clock=timers.now),
            aggregator=DebounceAggregator(
                timers,
                create_quiet_seconds=config.create_quiet_seconds,
                edit_quiet_seconds=config.edit_quiet_seconds,
            ),
            builder=NotificationBuilder(
                self.mention_resolver,
                locale=config.language,
                text_limit=config.text_limit,
            ),
            senders=self.notification_senders,
        )

    def configure_entity_repository(
        self, factory: Callable[[], EntityRepository]
    ) -> "Container":
        """Configure the entity repository."""
        self._entity_repository = Provider(factory)
        return self

    def configure_timers(self, factory: Callable[[], TimerScheduler]) -> "Container":
        """Configure the timer scheduler."""
        self._timers = Provider(factory)
        return self

    def configure_settings(self, settings: Any) -> "Container":
        """Use explicit settings instead of the environment."""
        self._settings = settings
        return self

    def add_notification_sender(
        self, factory: Callable[[], NotificationSender]
    ) -> "Container":
        """Add a notification sender."""
        self._notification_senders.append(Provider(factory))
        return self

    def reset(self) -> None:
        """Reset all providers (for testing)."""
        if self._notification_service is not None:
            self._notification_service.aggregator.cancel_all()
        if self._entity_repository:
            self._entity_repository.reset()
        if self._timers:
            self._timers.reset()
        for sender in self._notification_senders:
            sender.reset()
        self._notification_senders.clear()
        self._notification_service = None
        self._report_service = None
        self._settings = None


# Global container instance
container = Container()


def get_container() -> Container:
    """Get the global container instance."""
    return container


def reset_container() -> None:
    """Reset the global container (for testing)."""
    global container
    container.reset()
    container = Container()


def configure_from_settings(target: Optional[Container] = None) -> Container:
    """Wire the Asana repository and Telegram sender from settings.

    Already configured containers are left untouched.
    """
    from src.notifications.telegram_sender import TelegramNotificationSender
    from src.repositories.asana import AsanaRepository
    from src.repositories.memory import InMemoryEntityRepository

    target = target or get_container()
    if target._entity_repository is not None:
        return target

    settings = target.settings
    asana = settings.asana
    telegram = settings.telegram

    if asana.access_token:
        target.configure_entity_repository(
            lambda: AsanaRepository(
                access_token=asana.access_token.get_secret_value(),
                base_url=asana.api_url,
                timeout=asana.timeout,
            )
        )
    else:
        target.configure_entity_repository(InMemoryEntityRepository)

    if telegram.bot_token and telegram.chat_id:
        target.add_notification_sender(
            lambda: TelegramNotificationSender(
                bot_token=telegram.bot_token.get_secret_value(),
                chat_id=telegram.chat_id,
                api_url=telegram.api_url,
                timeout=telegram.timeout,
            )
        )

    return target
