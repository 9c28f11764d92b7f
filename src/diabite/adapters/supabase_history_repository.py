"""Supabase implementation of the query history."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from diabite.domain.decisions import Suitability
from diabite.domain.food import DiabetesType
from diabite.domain.history import HistoryEntry, NewHistoryEntry
from diabite.services.history import HistoryRepository

_TABLE = "query_history"
_UPSERT_FUNCTION = "diabite_upsert_history"


@dataclass
class SupabaseHistoryRepository(HistoryRepository):
    """Supabase-backed history repository."""

    client: Client

    def find_by_query_and_type(
        self, normalized_query: str, diabetes_type: DiabetesType
    ) -> HistoryEntry | None:
        """Return the row for a (query, type) pair, if present."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("query_text", normalized_query)
            .eq("diabetes_type", diabetes_type.value)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def upsert(self, entry: NewHistoryEntry, max_size: int) -> HistoryEntry:
        """Run the find-or-create as one database transaction."""
        response = self.client.rpc(
            _UPSERT_FUNCTION,
            {"entry": _serialize_entry(entry), "max_size": max_size},
        ).execute()
        if not response.data:
            raise RuntimeError("Failed to upsert history entry")
        row = response.data[0] if isinstance(response.data, list) else response.data
        return _parse_entry(row)

    def get(self, entry_id: int) -> HistoryEntry | None:
        """Return the row with the given id, if present."""
        response = (
            self.client.table(_TABLE).select("*").eq("id", entry_id).limit(1).execute()
        )
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def set_favorite(self, entry_id: int, is_favorite: bool) -> bool:
        """Set the favorite flag of a row; False when no row matched."""
        response = (
            self.client.table(_TABLE)
            .update({"is_favorite": is_favorite})
            .eq("id", entry_id)
            .execute()
        )
        return bool(response.data)

    def list_all(self) -> list[HistoryEntry]:
        """Return favorites first, then newest first."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .order("is_favorite", desc=True)
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_entry(row) for row in response.data or []]

    def list_favorites(self) -> list[HistoryEntry]:
        """Return favorite rows, newest first."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("is_favorite", True)
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_entry(row) for row in response.data or []]

    def count(self) -> int:
        """Return the number of rows."""
        response = self.client.table(_TABLE).select("id", count="exact").execute()
        return int(response.count or 0)

    def clear_all(self) -> None:
        """Delete every row."""
        self.client.table(_TABLE).delete().gte("id", 0).execute()


def _serialize_entry(entry: NewHistoryEntry) -> dict[str, object]:
    return {
        "query_text": entry.normalized_query,
        "display_name": entry.display_name,
        "diabetes_type": entry.diabetes_type.value,
        "matched_key": entry.matched_key,
        "suitability": entry.suitability.value,
        "reason": entry.reason,
        "portion_text": entry.portion_text,
        "alternatives": list(entry.alternatives),
        "sources_used": entry.sources_used,
        "created_at": entry.created_at.isoformat(),
        "is_favorite": entry.is_favorite,
    }


def _parse_entry(row: dict[str, object]) -> HistoryEntry:
    """Parse a history row into a domain model."""
    return HistoryEntry(
        id=int(row["id"]),
        normalized_query=str(row.get("query_text", "")),
        display_name=str(row.get("display_name", "")),
        diabetes_type=DiabetesType(str(row["diabetes_type"])),
        matched_key=row.get("matched_key"),
        suitability=Suitability(str(row.get("suitability", Suitability.UNKNOWN))),
        reason=str(row.get("reason", "")),
        portion_text=str(row.get("portion_text", "")),
        alternatives=tuple(row.get("alternatives") or ()),
        sources_used=str(row.get("sources_used", "")),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        is_favorite=bool(row.get("is_favorite", False)),
    )
