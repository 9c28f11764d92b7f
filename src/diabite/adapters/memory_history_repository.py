"""Process-local history repository."""

import itertools
import threading
from dataclasses import dataclass, field, replace

from diabite.domain.food import DiabetesType
from diabite.domain.history import HistoryEntry, NewHistoryEntry
from diabite.services.history import HistoryRepository


@dataclass
class InMemoryHistoryRepository(HistoryRepository):
    """Dictionary-backed history repository; each operation holds the lock."""

    rows: dict[int, HistoryEntry] = field(default_factory=dict)
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def find_by_query_and_type(
        self, normalized_query: str, diabetes_type: DiabetesType
    ) -> HistoryEntry | None:
        with self._lock:
            return self._find(normalized_query, diabetes_type)

    def upsert(self, entry: NewHistoryEntry, max_size: int) -> HistoryEntry:
        with self._lock:
            existing = self._find(entry.normalized_query, entry.diabetes_type)
            if existing is not None:
                refreshed = replace(
                    existing,
                    display_name=entry.display_name,
                    created_at=entry.created_at,
                )
                self.rows[existing.id] = refreshed
                return refreshed
            overflow = len(self.rows) - max_size + 1
            if overflow > 0:
                oldest = sorted(self.rows.values(), key=lambda row: row.created_at)
                for row in oldest[:overflow]:
                    del self.rows[row.id]
            row = HistoryEntry(id=next(self._ids), **vars(entry))
            self.rows[row.id] = row
            return row

    def get(self, entry_id: int) -> HistoryEntry | None:
        with self._lock:
            return self.rows.get(entry_id)

    def set_favorite(self, entry_id: int, is_favorite: bool) -> bool:
        with self._lock:
            current = self.rows.get(entry_id)
            if current is None:
                return False
            self.rows[entry_id] = replace(current, is_favorite=is_favorite)
            return True

    def list_all(self) -> list[HistoryEntry]:
        with self._lock:
            by_recency = sorted(
                self.rows.values(), key=lambda row: row.created_at, reverse=True
            )
        return sorted(by_recency, key=lambda row: not row.is_favorite)

    def list_favorites(self) -> list[HistoryEntry]:
        with self._lock:
            favorites = [row for row in self.rows.values() if row.is_favorite]
        return sorted(favorites, key=lambda row: row.created_at, reverse=True)

    def count(self) -> int:
        with self._lock:
            return len(self.rows)

    def clear_all(self) -> None:
        with self._lock:
            self.rows.clear()

    def _find(
        self, normalized_query: str, diabetes_type: DiabetesType
    ) -> HistoryEntry | None:
        for row in self.rows.values():
            if (
                row.normalized_query == normalized_query
                and row.diabetes_type == diabetes_type
            ):
                return row
        return None
