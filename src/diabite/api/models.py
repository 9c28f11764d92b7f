"""Request and response models for the HTTP API."""

from datetime import datetime

from fastapi import HTTPException, status
from pydantic import BaseModel, Field

from diabite.domain.decisions import Decision
from diabite.domain.food import DiabetesType, FoodItem
from diabite.domain.history import HistoryEntry
from diabite.domain.results import ErrorKind, ResolveError, ResolveResult


class ResolveNameRequest(BaseModel):
    """Body of a name lookup."""

    query: str = Field(min_length=1)
    diabetes_type: DiabetesType


class ResolveBarcodeRequest(BaseModel):
    """Body of a barcode lookup."""

    barcode: str = Field(min_length=1)
    diabetes_type: DiabetesType


class FavoriteRequest(BaseModel):
    is_favorite: bool


class FoodItemPayload(BaseModel):
    name: str
    brand: str | None
    source: str
    carbs_per_100g: float | None
    sugars_per_100g: float | None
    fiber_per_100g: float | None
    energy_kcal_per_100g: float | None
    net_carbs_per_100g: float
    country_tags: list[str]
    resolved_at: datetime

    @classmethod
    def from_item(cls, item: FoodItem) -> "FoodItemPayload":
        return cls(
            name=item.name,
            brand=item.brand,
            source=item.source.value,
            carbs_per_100g=item.carbs_per_100g,
            sugars_per_100g=item.sugars_per_100g,
            fiber_per_100g=item.fiber_per_100g,
            energy_kcal_per_100g=item.energy_kcal_per_100g,
            net_carbs_per_100g=item.net_carbs_per_100g,
            country_tags=sorted(item.country_tags),
            resolved_at=item.resolved_at,
        )


class DecisionPayload(BaseModel):
    category: str
    reason: str
    portion_text: str
    alternatives: list[str]
    source: str
    diabetes_type: str

    @classmethod
    def from_decision(cls, decision: Decision) -> "DecisionPayload":
        return cls(
            category=decision.category.value,
            reason=decision.reason,
            portion_text=decision.portion_text,
            alternatives=list(decision.alternatives),
            source=decision.source,
            diabetes_type=decision.diabetes_type,
        )


class ResolveResponse(BaseModel):
    item: FoodItemPayload
    decision: DecisionPayload

    @classmethod
    def from_result(cls, result: ResolveResult) -> "ResolveResponse":
        """Build the body of a successful lookup; raise for failed ones."""
        if isinstance(result, ResolveError):
            status_code = (
                status.HTTP_404_NOT_FOUND
                if result.kind is ErrorKind.NOT_FOUND
                else status.HTTP_422_UNPROCESSABLE_ENTITY
            )
            raise HTTPException(status_code=status_code, detail=result.message)
        return cls(
            item=FoodItemPayload.from_item(result.item),
            decision=DecisionPayload.from_decision(result.decision),
        )


class HistoryPayload(BaseModel):
    """History row as shown in lists."""

    id: int
    query: str
    display_name: str
    diabetes_type: str
    suitability: str
    reason: str
    portion_text: str
    alternatives: list[str]
    sources_used: str
    created_at: datetime
    age: str
    is_favorite: bool

    @classmethod
    def from_entry(cls, entry: HistoryEntry, age: str) -> "HistoryPayload":
        return cls(
            id=entry.id,
            query=entry.normalized_query,
            display_name=entry.display_name,
            diabetes_type=entry.diabetes_type.value,
            suitability=entry.suitability.value,
            reason=entry.reason,
            portion_text=entry.portion_text,
            alternatives=list(entry.alternatives),
            sources_used=entry.sources_used,
            created_at=entry.created_at,
            age=age,
            is_favorite=entry.is_favorite,
        )
