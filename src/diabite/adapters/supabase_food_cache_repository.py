"""Supabase implementation of the nutrition-record cache."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from diabite.domain.food import CacheEntry, FoodItem, FoodSource
from diabite.services.food_cache import FoodCacheRepository

_TABLE = "food_cache"
_PUT_FUNCTION = "diabite_put_cache"


@dataclass
class SupabaseFoodCacheRepository(FoodCacheRepository):
    """Supabase-backed cache keyed by lookup key."""

    client: Client

    def get(self, key: str) -> CacheEntry | None:
        """Return the entry stored under a key, if present."""
        response = (
            self.client.table(_TABLE).select("*").eq("key", key).limit(1).execute()
        )
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def put(self, entry: CacheEntry, max_entries: int) -> int:
        """Upsert the row and evict overflow inside one database transaction."""
        response = self.client.rpc(
            _PUT_FUNCTION,
            {"entry": _serialize_entry(entry), "max_size": max_entries},
        ).execute()
        if response.data is None:
            raise RuntimeError("Failed to cache food entry")
        evicted = response.data
        if isinstance(evicted, list):
            evicted = evicted[0] if evicted else 0
        return int(evicted or 0)

    def count(self) -> int:
        """Return the number of cached rows."""
        response = self.client.table(_TABLE).select("key", count="exact").execute()
        return int(response.count or 0)

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete rows updated at or before the cutoff."""
        response = (
            self.client.table(_TABLE)
            .delete()
            .lte("updated_at", cutoff.isoformat())
            .execute()
        )
        return len(response.data or [])


def _serialize_entry(entry: CacheEntry) -> dict[str, object]:
    item = entry.item
    return {
        "key": entry.key,
        "name": item.name,
        "brand": item.brand,
        "source": item.source.value,
        "carbs_100g": item.carbs_per_100g,
        "sugars_100g": item.sugars_per_100g,
        "fiber_100g": item.fiber_per_100g,
        "energy_kcal_100g": item.energy_kcal_per_100g,
        "country_tags": sorted(item.country_tags),
        "resolved_at": item.resolved_at.isoformat(),
        "updated_at": entry.updated_at.isoformat(),
    }


def _parse_entry(row: dict[str, object]) -> CacheEntry:
    """Parse a cache row into a domain entry."""
    updated_at = datetime.fromisoformat(str(row["updated_at"]))
    resolved_raw = row.get("resolved_at")
    resolved_at = (
        datetime.fromisoformat(resolved_raw)
        if isinstance(resolved_raw, str) and resolved_raw
        else updated_at
    )
    item = FoodItem(
        name=str(row.get("name", "")),
        brand=row.get("brand"),
        source=FoodSource(str(row["source"])),
        carbs_per_100g=row.get("carbs_100g"),
        sugars_per_100g=row.get("sugars_100g"),
        fiber_per_100g=row.get("fiber_100g"),
        energy_kcal_per_100g=row.get("energy_kcal_100g"),
        country_tags=frozenset(row.get("country_tags") or []),
        resolved_at=resolved_at,
    )
    return CacheEntry(key=str(row["key"]), item=item, updated_at=updated_at)
