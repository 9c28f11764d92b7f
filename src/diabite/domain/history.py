"""Domain models for query history."""

from dataclasses import dataclass
from datetime import datetime

from diabite.domain.decisions import Decision, Suitability
from diabite.domain.food import DiabetesType


@dataclass(frozen=True)
class NewHistoryEntry:
    """History row to be inserted, before an id is assigned."""

    normalized_query: str
    display_name: str
    diabetes_type: DiabetesType
    matched_key: str | None
    suitability: Suitability
    reason: str
    portion_text: str
    alternatives: tuple[str, ...]
    sources_used: str
    created_at: datetime
    is_favorite: bool = False

    @classmethod
    def from_decision(  # noqa: PLR0913
        cls,
        *,
        normalized_query: str,
        display_name: str,
        diabetes_type: DiabetesType,
        matched_key: str | None,
        decision: Decision,
        created_at: datetime,
    ) -> "NewHistoryEntry":
        """Denormalize a decision into a history row."""
        return cls(
            normalized_query=normalized_query,
            display_name=display_name,
            diabetes_type=diabetes_type,
            matched_key=matched_key,
            suitability=decision.category,
            reason=decision.reason,
            portion_text=decision.portion_text,
            alternatives=decision.alternatives,
            sources_used=decision.source,
            created_at=created_at,
        )


@dataclass(frozen=True)
class HistoryEntry:
    """Persisted lookup for a (normalized query, diabetes type) pair."""

    id: int
    normalized_query: str
    display_name: str
    diabetes_type: DiabetesType
    matched_key: str | None
    suitability: Suitability
    reason: str
    portion_text: str
    alternatives: tuple[str, ...]
    sources_used: str
    created_at: datetime
    is_favorite: bool = False

    def to_decision(self) -> Decision:
        """Rebuild the decision stored on this row."""
        return Decision(
            category=self.suitability,
            reason=self.reason,
            portion_text=self.portion_text,
            alternatives=self.alternatives,
            source=self.sources_used,
            diabetes_type=self.diabetes_type.value,
        )
