"""Keyed nutrition-record cache with TTL and size bound."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from diabite.domain.food import CacheEntry, FoodItem

CACHE_TTL = timedelta(days=30)
MAX_CACHE_SIZE = 500

_logger = logging.getLogger(__name__)


class FoodCacheRepository(Protocol):
    """Persistence interface for cached nutrition records."""

    def get(self, key: str) -> CacheEntry | None:
        """Return the entry stored under a key, if present."""

    def put(self, entry: CacheEntry, max_entries: int) -> int:
        """Store an entry and evict the oldest overflow in one step.

        Replaces any entry with the same key, then deletes the entries with
        the oldest updated_at until at most ``max_entries`` remain. Returns the
        number of evicted entries.
        """

    def count(self) -> int:
        """Return the number of stored entries."""

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete entries updated at or before a cutoff and return how many."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class FoodCacheService:
    """Applies TTL and eviction policy on top of a cache repository."""

    repository: FoodCacheRepository
    ttl: timedelta = CACHE_TTL
    max_entries: int = MAX_CACHE_SIZE
    clock: Callable[[], datetime] = field(default=_utcnow)

    def get_valid(self, key: str) -> FoodItem | None:
        """Return the cached item for a key unless it is missing or stale."""
        entry = self.repository.get(key)
        if entry is None:
            return None
        if not self.is_fresh(entry):
            _logger.info("Cache entry expired: key=%s", key)
            return None
        return entry.item

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.updated_at < self.ttl

    def store(self, key: str, item: FoodItem) -> CacheEntry:
        """Write an item under a key and evict the oldest overflow."""
        entry = CacheEntry(key=key, item=item, updated_at=self.clock())
        evicted = self.repository.put(entry, self.max_entries)
        if evicted:
            _logger.info("Evicted %s cache entries", evicted)
        _logger.debug("Cached food item: %s with key: %s", item.name, key)
        return entry

    def purge_expired(self) -> int:
        """Remove every entry older than the TTL."""
        removed = self.repository.delete_older_than(self.clock() - self.ttl)
        if removed:
            _logger.info("Purged %s expired cache entries", removed)
        return removed
