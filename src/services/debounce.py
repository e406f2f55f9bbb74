"""Per-entity debounce and coalescing of change events."""

import logging
from typing import Any, Callable, Optional

from src.domain.models import ChangeKind, PendingAggregate
from src.domain.protocols import TimerScheduler

logger = logging.getLogger(__name__)

FireCallback = Callable[[str, frozenset, Optional[str]], Any]


class DebounceAggregator:
    """Collapses bursts of field-level events into one fired aggregate.

    Each new event for an entity cancels its deadline timer, unions the
    change kind into the pending set and starts a fresh quiet window. When a
    window elapses undisturbed, the aggregate is removed and ``on_fire`` is
    called exactly once with the union of kinds and the last actor.
    """

    def __init__(
        self,
        timers: TimerScheduler,
        *,
        create_quiet_seconds: float = 5.0,
        edit_quiet_seconds: float = 30.0,
    ):
        """Initialize aggregator.

        Args:
            timers: Scheduler used for deadlines
            create_quiet_seconds: Quiet window after a creation event
            edit_quiet_seconds: Quiet window after an edit event
        """
        self._timers = timers
        self._create_quiet = create_quiet_seconds
        self._edit_quiet = edit_quiet_seconds
        self._pending: dict[str, PendingAggregate] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def pending(self, entity_id: str) -> Optional[PendingAggregate]:
        """Get the open aggregate for an entity."""
        return self._pending.get(entity_id)

    def quiet_period_for(self, change_kind: str) -> float:
        if change_kind == ChangeKind.ADDED:
            return self._create_quiet
        return self._edit_quiet

    def schedule(
        self,
        entity_id: str,
        change_kind: str,
        actor: Optional[str],
        on_fire: FireCallback,
        quiet_seconds: Optional[float] = None,
    ) -> PendingAggregate:
        """Add one change to the entity's aggregate and restart its window.

        Args:
            entity_id: Entity the change belongs to
            change_kind: Change kind tag
            actor: Name of the user who made the change, if known
            on_fire: Callback receiving (entity_id, change_kinds, last_actor)
            quiet_seconds: Override of the quiet window

        Returns:
            The open aggregate
        """
        delay = self.quiet_period_for(change_kind) if quiet_seconds is None else quiet_seconds
        deadline = self._timers.now() + delay

        aggregate = self._pending.get(entity_id)
        if aggregate is None:
            aggregate = PendingAggregate(
                entity_id=entity_id,
                change_kinds={change_kind},
                last_actor=actor or None,
                deadline=deadline,
                on_fire=on_fire,
            )
            self._pending[entity_id] = aggregate
        else:
            if aggregate.handle is not None:
                aggregate.handle.cancel()
            aggregate.change_kinds.add(change_kind)
            if actor:
                aggregate.last_actor = actor
            aggregate.deadline = deadline
            aggregate.on_fire = on_fire

        aggregate.handle = self._timers.call_later(
            delay, lambda: self._fire(entity_id, aggregate)
        )
        logger.debug(
            f"Debounce {entity_id}: {sorted(aggregate.change_kinds)} fires in {delay}s"
        )
        return aggregate

    def discard(self, entity_id: str) -> bool:
        """Drop a pending aggregate without firing it.

        Returns:
            True if an aggregate was discarded
        """
        aggregate = self._pending.pop(entity_id, None)
        if aggregate is None:
            return False
        if aggregate.handle is not None:
            aggregate.handle.cancel()
        logger.debug(f"Discarded pending changes for {entity_id}")
        return True

    def cancel_all(self) -> int:
        """Discard every pending aggregate (shutdown)."""
        count = 0
        for entity_id in list(self._pending):
            if self.discard(entity_id):
                count += 1
        return count

    def _fire(self, entity_id: str, aggregate: PendingAggregate) -> Any:
        # A replaced or discarded aggregate must not fire
        if self._pending.get(entity_id) is not aggregate:
            return None
        del self._pending[entity_id]
        return aggregate.on_fire(
            entity_id, frozenset(aggregate.change_kinds), aggregate.last_actor
        )
