"""Suitability decision models."""

from dataclasses import dataclass
from enum import StrEnum


class Suitability(StrEnum):
    """Suitability categories, ordered from least to most restrictive."""

    SAFE = "SAFE"
    SMALL_PORTION = "SMALL_PORTION"
    LIMIT = "LIMIT"
    AVOID = "AVOID"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class Decision:
    """Outcome of classifying a food for a diabetes type."""

    category: Suitability
    reason: str
    portion_text: str
    alternatives: tuple[str, ...]
    source: str
    diabetes_type: str
