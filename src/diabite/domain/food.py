"""Food domain models and cache key helpers."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


class FoodSource(StrEnum):
    """Where a nutrition record was resolved from."""

    OFF = "OFF"
    USDA = "USDA"
    AI = "AI"
    AI_ESTIMATE = "AI_ESTIMATE"
    LOCAL_DB = "LOCAL_DB"


class DiabetesType(StrEnum):
    """Supported diabetes subtypes."""

    TYPE_1 = "TYPE_1"
    TYPE_2 = "TYPE_2"


def _non_negative(value: float | None) -> float | None:
    if value is None:
        return None
    return max(0.0, float(value))


@dataclass(frozen=True)
class FoodItem:
    """Nutrition profile per 100g for a single resolved food."""

    name: str
    source: FoodSource
    brand: str | None = None
    carbs_per_100g: float | None = None
    sugars_per_100g: float | None = None
    fiber_per_100g: float | None = None
    energy_kcal_per_100g: float | None = None
    country_tags: frozenset[str] = frozenset()
    resolved_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def __post_init__(self) -> None:
        for name in (
            "carbs_per_100g",
            "sugars_per_100g",
            "fiber_per_100g",
            "energy_kcal_per_100g",
        ):
            object.__setattr__(self, name, _non_negative(getattr(self, name)))
        object.__setattr__(self, "country_tags", frozenset(self.country_tags))

    @property
    def net_carbs_per_100g(self) -> float:
        """Carbs minus fiber, floored at zero."""
        carbs = self.carbs_per_100g or 0.0
        fiber = self.fiber_per_100g or 0.0
        return max(0.0, carbs - fiber)


@dataclass(frozen=True)
class CacheEntry:
    """A cached food item stored under a lookup key."""

    key: str
    item: FoodItem
    updated_at: datetime


def normalize_query(raw: str) -> str:
    """Lower-case and trim a user query."""
    return raw.strip().lower()


def name_key(normalized_query: str) -> str:
    return f"name:{normalized_query}"


def barcode_key(normalized_code: str) -> str:
    return f"barcode:{normalized_code}"


def ai_key(normalized_query: str, diabetes_type: DiabetesType) -> str:
    return f"ai:{normalized_query}:{diabetes_type.value.lower()}"


def ai_estimate_key(normalized_query: str, diabetes_type: DiabetesType) -> str:
    return f"ai_estimate:{normalized_query}:{diabetes_type.value.lower()}"
