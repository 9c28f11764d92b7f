"""Process-local cache repository."""

import threading
from dataclasses import dataclass, field
from datetime import datetime

from diabite.domain.food import CacheEntry
from diabite.services.food_cache import FoodCacheRepository


@dataclass
class InMemoryFoodCacheRepository(FoodCacheRepository):
    """Dictionary-backed cache repository guarded by a lock."""

    entries: dict[str, CacheEntry] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self.entries.get(key)

    def put(self, entry: CacheEntry, max_entries: int) -> int:
        with self._lock:
            self.entries[entry.key] = entry
            overflow = len(self.entries) - max_entries
            if overflow <= 0:
                return 0
            oldest = sorted(self.entries.values(), key=lambda cached: cached.updated_at)
            for cached in oldest[:overflow]:
                del self.entries[cached.key]
            return overflow

    def count(self) -> int:
        with self._lock:
            return len(self.entries)

    def delete_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            expired = [
                key
                for key, entry in self.entries.items()
                if entry.updated_at <= cutoff
            ]
            for key in expired:
                del self.entries[key]
            return len(expired)
