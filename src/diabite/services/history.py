"""Query history: per (query, diabetes type) records of past lookups."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from diabite.domain.decisions import Decision
from diabite.domain.food import DiabetesType, normalize_query
from diabite.domain.history import HistoryEntry, NewHistoryEntry

MAX_HISTORY_SIZE = 300

_logger = logging.getLogger(__name__)


class HistoryRepository(Protocol):
    """Persistence interface for query history."""

    def find_by_query_and_type(
        self, normalized_query: str, diabetes_type: DiabetesType
    ) -> HistoryEntry | None:
        """Return the row for a (query, type) pair, if present."""

    def upsert(self, entry: NewHistoryEntry, max_size: int) -> HistoryEntry:
        """Atomically update the existing (query, type) row or insert a new one.

        An existing row only gets its display name and timestamp refreshed; its
        favorite flag and stored decision are left untouched. A new row evicts
        the oldest rows first so the store holds at most ``max_size`` rows.
        """

    def get(self, entry_id: int) -> HistoryEntry | None:
        """Return the row with the given id, if present."""

    def set_favorite(self, entry_id: int, is_favorite: bool) -> bool:
        """Set the favorite flag of a row; False when no row has that id."""

    def list_all(self) -> list[HistoryEntry]:
        """Return rows with favorites first, then newest first."""

    def list_favorites(self) -> list[HistoryEntry]:
        """Return favorite rows, newest first."""

    def count(self) -> int:
        """Return the number of rows."""

    def clear_all(self) -> None:
        """Delete every row."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class HistoryService:
    """Application service for recording and browsing lookups."""

    repository: HistoryRepository
    max_size: int = MAX_HISTORY_SIZE
    clock: Callable[[], datetime] = field(default=_utcnow)

    def find(self, query: str, diabetes_type: DiabetesType) -> HistoryEntry | None:
        """Return the history row for a raw query, if present."""
        return self.find_normalized(normalize_query(query), diabetes_type)

    def find_normalized(
        self, normalized_query: str, diabetes_type: DiabetesType
    ) -> HistoryEntry | None:
        return self.repository.find_by_query_and_type(normalized_query, diabetes_type)

    def get(self, entry_id: int) -> HistoryEntry | None:
        return self.repository.get(entry_id)

    def record(
        self,
        normalized_query: str,
        display_name: str,
        matched_key: str | None,
        decision: Decision,
    ) -> HistoryEntry:
        """Insert or refresh the row for a resolved lookup."""
        entry = NewHistoryEntry.from_decision(
            normalized_query=normalized_query,
            display_name=display_name,
            diabetes_type=DiabetesType(decision.diabetes_type),
            matched_key=matched_key,
            decision=decision,
            created_at=self.clock(),
        )
        saved = self.repository.upsert(entry, self.max_size)
        _logger.debug(
            "Recorded history: query=%s display=%s favorite=%s",
            normalized_query,
            display_name,
            saved.is_favorite,
        )
        return saved

    def set_favorite(self, entry_id: int, is_favorite: bool) -> bool:
        """Flag or unflag a row; False when the id is unknown."""
        updated = self.repository.set_favorite(entry_id, is_favorite)
        if not updated:
            _logger.info("No history row with id %s", entry_id)
        return updated

    def list_all(self) -> list[HistoryEntry]:
        return self.repository.list_all()

    def list_favorites(self) -> list[HistoryEntry]:
        return self.repository.list_favorites()

    def clear(self) -> None:
        """Delete the whole history."""
        self.repository.clear_all()
        _logger.info("History cleared")

    def age_label(self, entry: HistoryEntry) -> str:
        """Describe how long ago a row was last resolved."""
        days = (self.clock() - entry.created_at).days
        if days <= 0:
            return "Today"
        if days == 1:
            return "1 day ago"
        return f"{days} days ago"
