"""Resolution pipeline: history, cache, offline dataset, remote sources, AI."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx

from diabite.domain.decisions import Decision
from diabite.domain.errors import SourceError
from diabite.domain.food import (
    DiabetesType,
    FoodItem,
    FoodSource,
    barcode_key,
    name_key,
    normalize_query,
)
from diabite.domain.history import HistoryEntry
from diabite.domain.results import (
    ErrorKind,
    ResolveError,
    ResolveResult,
    ResolveSuccess,
)
from diabite.services.decisions import decide
from diabite.services.food_cache import FoodCacheService
from diabite.services.history import HistoryService
from diabite.services.sources import Tier, static_estimate

# Model-verdict items carry no nutrients, so their stored history decision is
# reused. Every other fast-path hit, static estimates included, is re-decided.
_VERDICT_SOURCES = frozenset({FoodSource.AI})

_logger = logging.getLogger(__name__)


@dataclass
class FoodResolver:
    """Resolves a food name or barcode into an item and a suitability decision.

    ``name_tiers`` and ``barcode_tiers`` are tried in order after the history
    and cache lookups; the first tier returning a resolution wins. The last
    name tier is expected to always succeed (generative model with static
    estimate fallback).
    """

    cache: FoodCacheService
    history: HistoryService
    name_tiers: Sequence[Tier] = field(default_factory=list)
    barcode_tiers: Sequence[Tier] = field(default_factory=list)

    async def resolve_by_name(
        self, query: str, diabetes_type: DiabetesType | str
    ) -> ResolveResult:
        """Resolve a free-text food name."""
        normalized = normalize_query(query or "")
        resolved_type = _parse_diabetes_type(diabetes_type)
        if not normalized or resolved_type is None:
            return ResolveError(ErrorKind.INVALID_INPUT, "Enter a food name")
        _logger.info(
            "Searching for food: %s, diabetes type: %s", normalized, resolved_type
        )

        result = self._from_history(normalized, resolved_type)
        if result is None:
            result = self._from_cache(normalized, resolved_type, name_key(normalized))
        if result is None:
            result = await self._from_tiers(normalized, resolved_type, self.name_tiers)
        if result is None:
            _logger.warning("All name tiers failed for %s", normalized)
            resolution = static_estimate(normalized, resolved_type)
            self.cache.store(resolution.cache_key, resolution.item)
            result = self._finalize(
                normalized,
                resolved_type,
                resolution.item,
                resolution.cache_key,
                resolution.decision,
            )
        return result

    async def resolve_by_barcode(
        self, barcode: str, diabetes_type: DiabetesType | str
    ) -> ResolveResult:
        """Resolve a product barcode; there is no generative fallback."""
        normalized = normalize_query(barcode or "")
        resolved_type = _parse_diabetes_type(diabetes_type)
        if not normalized or resolved_type is None:
            return ResolveError(ErrorKind.INVALID_INPUT, "Enter a barcode")
        _logger.info(
            "Searching for barcode: %s, diabetes type: %s", normalized, resolved_type
        )

        result = self._from_history(normalized, resolved_type)
        if result is None:
            result = self._from_cache(
                normalized, resolved_type, barcode_key(normalized)
            )
        if result is None:
            result = await self._from_tiers(
                normalized, resolved_type, self.barcode_tiers
            )
        if result is None:
            _logger.warning("Food not found for barcode %s", normalized)
            return ResolveError(
                ErrorKind.NOT_FOUND, f"Food not found for barcode '{barcode.strip()}'"
            )
        return result

    async def rerun(self, entry: HistoryEntry) -> ResolveResult:
        """Resolve a history entry again with its stored diabetes type."""
        return await self.resolve_by_name(entry.normalized_query, entry.diabetes_type)

    def _from_history(
        self, normalized: str, diabetes_type: DiabetesType
    ) -> ResolveSuccess | None:
        entry = self.history.find_normalized(normalized, diabetes_type)
        if entry is None or entry.matched_key is None:
            return None
        item = self.cache.get_valid(entry.matched_key)
        if item is None:
            return None
        _logger.info("History hit: %s via %s", entry.display_name, entry.matched_key)
        decision = (
            entry.to_decision() if item.source in _VERDICT_SOURCES else None
        )
        return self._finalize(
            normalized, diabetes_type, item, entry.matched_key, decision
        )

    def _from_cache(
        self, normalized: str, diabetes_type: DiabetesType, key: str
    ) -> ResolveSuccess | None:
        item = self.cache.get_valid(key)
        if item is None:
            return None
        _logger.info("Cache hit: %s via %s", item.name, key)
        return self._finalize(normalized, diabetes_type, item, key, None)

    async def _from_tiers(
        self,
        normalized: str,
        diabetes_type: DiabetesType,
        tiers: Sequence[Tier],
    ) -> ResolveSuccess | None:
        for tier in tiers:
            tier_name = getattr(tier, "name", repr(tier))
            try:
                resolution = await tier(normalized, diabetes_type)
            except (SourceError, httpx.HTTPError) as exc:
                _logger.warning("Tier %s failed for %s: %s", tier_name, normalized, exc)
                continue
            except Exception:
                _logger.exception("Tier %s raised for %s", tier_name, normalized)
                continue
            if resolution is None:
                _logger.info("Tier %s had no match for %s", tier_name, normalized)
                continue
            _logger.info(
                "Tier %s resolved %s as %s",
                tier_name,
                normalized,
                resolution.item.name,
            )
            self.cache.store(resolution.cache_key, resolution.item)
            return self._finalize(
                normalized,
                diabetes_type,
                resolution.item,
                resolution.cache_key,
                resolution.decision,
            )
        return None

    def _finalize(
        self,
        normalized: str,
        diabetes_type: DiabetesType,
        item: FoodItem,
        matched_key: str,
        decision: Decision | None,
    ) -> ResolveSuccess:
        resolved_decision = decision or decide(item, diabetes_type)
        self.history.record(normalized, item.name, matched_key, resolved_decision)
        return ResolveSuccess(item=item, decision=resolved_decision)


def _parse_diabetes_type(value: DiabetesType | str) -> DiabetesType | None:
    if isinstance(value, DiabetesType):
        return value
    try:
        return DiabetesType(str(value).strip().upper())
    except ValueError:
        return None
