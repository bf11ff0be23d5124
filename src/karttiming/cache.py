"""In-process record of laps already written during this process lifetime."""

from __future__ import annotations

from datetime import date

DedupKey = tuple[date, int, str, int]


class IngestionCache:
    """Set of ``(day, session, kart, lap)`` keys known to be persisted.

    Only a shortcut around repeated upserts; the lap upsert stays correct
    when this cache is empty, e.g. right after a restart.
    """

    def __init__(self) -> None:
        self._keys: set[DedupKey] = set()

    def __len__(self) -> int:
        return len(self._keys)

    def seen(self, key: DedupKey) -> bool:
        return key in self._keys

    def remember(self, key: DedupKey) -> None:
        self._keys.add(key)

    def clear(self) -> None:
        self._keys.clear()
