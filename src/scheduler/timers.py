"""Cancellable deferred callbacks for debounce deadlines."""

import asyncio
import heapq
import itertools
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


def _log_task_failure(task: "asyncio.Task[Any]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Deferred callback failed: {exc!r}")


class AsyncioTimerScheduler:
    """Timer scheduler backed by the running asyncio event loop.

    Coroutine results of callbacks are wrapped in tasks so a deadline
    callback may perform I/O.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._tasks: set[asyncio.Task] = set()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def now(self) -> float:
        return self._get_loop().time()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        """Schedule callback after delay seconds."""
        loop = self._get_loop()
        return loop.call_later(max(delay, 0.0), self._run, callback)

    def _run(self, callback: Callable[[], Any]) -> None:
        try:
            result = callback()
        except Exception as e:
            logger.error(f"Deferred callback failed: {e!r}")
            return

        if asyncio.iscoroutine(result):
            task = self._get_loop().create_task(result)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            task.add_done_callback(_log_task_failure)


class _ManualTimer:
    """Handle returned by ManualTimerScheduler."""

    def __init__(self, deadline: float, callback: Callable[[], Any]):
        self.deadline = deadline
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimerScheduler:
    """Virtual-clock scheduler driven explicitly by ``advance``.

    Keeps a min-heap of deadlines; nothing runs until time is advanced.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._heap: list[tuple[float, int, _ManualTimer]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], Any]) -> _ManualTimer:
        timer = _ManualTimer(self._now + max(delay, 0.0), callback)
        heapq.heappush(self._heap, (timer.deadline, next(self._counter), timer))
        return timer

    @property
    def pending_count(self) -> int:
        """Number of scheduled, non-cancelled timers."""
        return sum(1 for _, _, t in self._heap if not t.cancelled)

    async def advance(self, seconds: float) -> int:
        """Move the clock forward, running every timer that comes due.

        Returns:
            Number of callbacks executed
        """
        target = self._now + seconds
        executed = 0

        while self._heap and self._heap[0][0] <= target:
            deadline, _, timer = heapq.heappop(self._heap)
            if timer.cancelled:
                continue
            self._now = max(self._now, deadline)
            result = timer.callback()
            if asyncio.iscoroutine(result):
                await result
            executed += 1

        self._now = target
        return executed
