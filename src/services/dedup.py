"""Time-windowed duplicate suppression."""

import time
from typing import Callable, Optional

from src.domain.models import DedupEntry


class DedupFilter:
    """Answers "have I handled this notification key recently?"."""

    def __init__(
        self,
        window_seconds: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._window = window_seconds
        self._clock = clock
        self._entries: dict[str, DedupEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.expires_at > self._clock()

    def check_and_mark(self, key: str, window_seconds: Optional[float] = None) -> bool:
        """Return True if key was already marked within its window.

        The first call for a key marks it and returns False.

        Args:
            key: Notification key
            window_seconds: Override of the default window for this key

        Returns:
            True if the key is a duplicate
        """
        now = self._clock()
        self._compact(now)

        if key in self._entries:
            return True

        window = self._window if window_seconds is None else window_seconds
        self._entries[key] = DedupEntry(key=key, expires_at=now + window)
        return False

    def _compact(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for key in expired:
            del self._entries[key]


def aggregate_key(entity_id: str, change_kinds) -> str:
    """Dedup key for a coalesced set of task changes."""
    return f"task:{entity_id}:{','.join(sorted(change_kinds))}"
