"""Lookup of Telegram handles for Asana assignees."""

from typing import Mapping, Optional


class MentionResolver:
    """Static, exact-match mapping from assignee identity to a handle."""

    def __init__(self, mapping: Optional[Mapping[str, str]] = None) -> None:
        self._mapping = dict(mapping or {})

    def resolve(self, identity: Optional[str]) -> Optional[str]:
        """Return the mention handle for a name or e-mail, if mapped."""
        if not identity:
            return None
        return self._mapping.get(identity)

    def resolve_all(self, identities) -> list[str]:
        """Resolve many identities, keeping first-seen order without repeats."""
        handles: list[str] = []
        for identity in identities:
            handle = self.resolve(identity)
            if handle and handle not in handles:
                handles.append(handle)
        return handles

    def __len__(self) -> int:
        return len(self._mapping)
