"""Resolution result types returned by the resolver."""

from dataclasses import dataclass
from enum import StrEnum

from diabite.domain.decisions import Decision
from diabite.domain.food import FoodItem


class ErrorKind(StrEnum):
    """User-visible failure kinds."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_INPUT = "INVALID_INPUT"


@dataclass(frozen=True)
class ResolveSuccess:
    """A resolved food with its suitability decision."""

    item: FoodItem
    decision: Decision


@dataclass(frozen=True)
class ResolveError:
    """A resolution that produced no food."""

    kind: ErrorKind
    message: str


ResolveResult = ResolveSuccess | ResolveError


@dataclass(frozen=True)
class Resolution:
    """A tier hit: the item, where to cache it, and an optional fixed decision."""

    item: FoodItem
    cache_key: str
    decision: Decision | None = None
