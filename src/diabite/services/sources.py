"""Remote nutrition sources tried in order by the resolver."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from pydantic import ValidationError

from diabite.adapters.fdc_client import FdcClient
from diabite.adapters.off_client import OffClient
from diabite.adapters.openai_text_client import TextCompletionClient
from diabite.domain.ai import AiVerdict
from diabite.domain.decisions import Decision, Suitability
from diabite.domain.errors import MalformedResponseError, RateLimitedError
from diabite.domain.food import (
    DiabetesType,
    FoodItem,
    FoodSource,
    ai_estimate_key,
    ai_key,
    barcode_key,
    name_key,
    normalize_query,
)
from diabite.domain.results import Resolution

_NUTRIENT_IDS = {
    "carbs": 1005,
    "sugars": 2000,
    "fiber": 1079,
    "energy": 1008,
}

PLACEHOLDER_API_KEYS = frozenset({"YOUR_OPENAI_API_KEY_HERE", "YOUR_API_KEY_HERE"})

_logger = logging.getLogger(__name__)


Tier = Callable[[str, DiabetesType], Awaitable[Resolution | None]]


@dataclass
class BackoffPolicy:
    """Retries rate-limited calls with a quadratic delay."""

    max_attempts: int = 3
    base_delay_ms: int = 250
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    async def run(
        self, func: Callable[[], Awaitable[dict[str, object] | None]], *, action: str
    ) -> dict[str, object] | None:
        """Call ``func``, sleeping ``base * attempt**2`` ms after each rate limit."""
        attempt = 0
        while True:
            attempt += 1
            try:
                return await func()
            except RateLimitedError:
                if attempt >= self.max_attempts:
                    _logger.warning(
                        "%s rate limited, giving up after %s attempts",
                        action,
                        attempt,
                    )
                    raise
                delay_ms = self.base_delay_ms * attempt**2
                _logger.info(
                    "%s rate limited (attempt %s/%s), retrying in %sms",
                    action,
                    attempt,
                    self.max_attempts,
                    delay_ms,
                )
                await self.sleep(delay_ms / 1000)


@dataclass
class OffSearchTier:
    """Open Food Facts search by terms; the first product wins."""

    client: OffClient
    backoff: BackoffPolicy
    name: str = "open_food_facts"

    async def __call__(
        self, query: str, diabetes_type: DiabetesType
    ) -> Resolution | None:
        payload = await self.backoff.run(
            lambda: self.client.search_products(query), action="OFF search"
        )
        products = (payload or {}).get("products")
        if not isinstance(products, list) or not products:
            return None
        item = parse_off_product(products[0])
        if item is None:
            return None
        return Resolution(item=item, cache_key=name_key(query))


@dataclass
class OffBarcodeTier:
    """Open Food Facts product lookup by barcode."""

    client: OffClient
    backoff: BackoffPolicy
    name: str = "open_food_facts_barcode"

    async def __call__(
        self, barcode: str, diabetes_type: DiabetesType
    ) -> Resolution | None:
        product = await self.backoff.run(
            lambda: self.client.get_product(barcode), action="OFF product"
        )
        if not product:
            return None
        item = parse_off_product(product)
        if item is None:
            return None
        return Resolution(item=item, cache_key=barcode_key(barcode))


@dataclass
class FdcTier:
    """USDA FoodData Central search followed by a details fetch of the first hit.

    Name lookups are cached under the normalized USDA description; barcode
    lookups stay under the barcode key.
    """

    client: FdcClient
    backoff: BackoffPolicy
    by_barcode: bool = False
    name: str = "fooddata_central"

    async def __call__(
        self, query: str, diabetes_type: DiabetesType
    ) -> Resolution | None:
        search = await self.backoff.run(
            lambda: self.client.search_foods(query), action="FDC search"
        )
        foods = (search or {}).get("foods")
        if not isinstance(foods, list) or not foods:
            return None
        first = foods[0]
        fdc_id = first.get("fdcId") if isinstance(first, dict) else None
        if fdc_id is None:
            raise MalformedResponseError("FDC search hit has no fdcId")
        details = await self.backoff.run(
            lambda: self.client.get_food(int(fdc_id)), action=f"FDC food:{fdc_id}"
        )
        if not details:
            return None
        nutrients = extract_fdc_nutrients(details.get("foodNutrients") or [])
        description = details.get("description")
        food_name = description if isinstance(description, str) and description else query
        brand = details.get("brandName") or details.get("brandOwner")
        item = FoodItem(
            name=food_name,
            brand=brand if isinstance(brand, str) else None,
            carbs_per_100g=nutrients.get("carbs"),
            sugars_per_100g=nutrients.get("sugars"),
            fiber_per_100g=nutrients.get("fiber"),
            energy_kcal_per_100g=nutrients.get("energy"),
            source=FoodSource.USDA,
        )
        if self.by_barcode:
            key = barcode_key(query)
        else:
            key = name_key(normalize_query(food_name))
        return Resolution(item=item, cache_key=key)


@dataclass
class AiFallbackTier:
    """Generative-model verdict, degrading to a static estimate."""

    client: TextCompletionClient | None
    api_key: str
    name: str = "generative_model"

    async def __call__(self, query: str, diabetes_type: DiabetesType) -> Resolution:
        if self.client is None or not is_usable_api_key(self.api_key):
            _logger.warning("Generative model not configured; using static estimate")
            return static_estimate(query, diabetes_type)
        try:
            raw = await self.client.complete(build_prompt(query, diabetes_type))
            verdict = parse_verdict(raw)
        except Exception:
            _logger.exception("Generative model call failed for %s", query)
            return static_estimate(query, diabetes_type)
        display_name = _capitalize(query)
        decision = Decision(
            category=verdict.category,
            reason=verdict.reason,
            portion_text=verdict.safe_portion,
            alternatives=tuple(verdict.alternatives),
            source=FoodSource.AI.value,
            diabetes_type=diabetes_type.value,
        )
        return Resolution(
            item=FoodItem(name=display_name, source=FoodSource.AI),
            cache_key=ai_key(query, diabetes_type),
            decision=decision,
        )


def is_usable_api_key(api_key: str | None) -> bool:
    """Return whether a credential is set and not a placeholder."""
    if api_key is None:
        return False
    cleaned = api_key.strip()
    return bool(cleaned) and cleaned not in PLACEHOLDER_API_KEYS


def build_prompt(food_name: str, diabetes_type: DiabetesType) -> str:
    """Fixed prompt asking for a JSON-only verdict."""
    return (
        "You are a nutrition assistant focusing on diabetes-friendly guidance.\n"
        f"Food: {food_name}, DiabetesType: {diabetes_type.value}.\n"
        "Return JSON ONLY in this format:\n"
        "{\n"
        '  "category": "SAFE" | "SMALL_PORTION" | "LIMIT" | "AVOID" | "UNKNOWN",\n'
        '  "reason": "...",\n'
        '  "safePortion": "...",\n'
        '  "alternatives": ["...", "..."]\n'
        "}"
    )


def extract_json_block(text: str) -> str:
    """Pull the JSON object out of a model answer, fenced or not."""
    if "```json" in text:
        body = text.split("```json", 1)[1]
        return body.rsplit("```", 1)[0].strip()
    if "```" in text:
        body = text.split("```", 1)[1]
        return body.rsplit("```", 1)[0].strip()
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text.strip()


def parse_verdict(text: str) -> AiVerdict:
    """Validate a model answer against the verdict schema."""
    try:
        return AiVerdict.model_validate_json(extract_json_block(text))
    except ValidationError as exc:
        raise MalformedResponseError("Generative model returned an invalid verdict") from exc


def static_estimate(query: str, diabetes_type: DiabetesType) -> Resolution:
    """Low-confidence placeholder used when no model verdict is available."""
    display_name = _capitalize(query)
    item = FoodItem(
        name=display_name,
        carbs_per_100g=15.0,
        sugars_per_100g=5.0,
        fiber_per_100g=2.0,
        source=FoodSource.AI_ESTIMATE,
    )
    decision = Decision(
        category=Suitability.SMALL_PORTION,
        reason=(
            f"Estimated values for {display_name} - "
            "AI analysis not available or API key missing."
        ),
        portion_text=(
            "Approximate values (100g portion) - verify with healthcare provider."
        ),
        alternatives=("Consult a nutritionist", "Check detailed nutrition info"),
        source=FoodSource.AI_ESTIMATE.value,
        diabetes_type=diabetes_type.value,
    )
    return Resolution(
        item=item,
        cache_key=ai_estimate_key(query, diabetes_type),
        decision=decision,
    )


def parse_off_product(product: object) -> FoodItem | None:
    """Map an Open Food Facts product to a food item; None without a name."""
    if not isinstance(product, dict):
        raise MalformedResponseError("Open Food Facts product is not an object")
    name = product.get("product_name")
    if not isinstance(name, str) or not name.strip():
        return None
    nutriments = product.get("nutriments")
    if not isinstance(nutriments, dict):
        nutriments = {}

    def nutriment(field_name: str) -> float | None:
        value = nutriments.get(field_name, product.get(field_name))
        try:
            return float(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    brands = product.get("brands")
    countries = product.get("countries_tags_en") or []
    return FoodItem(
        name=name.strip(),
        brand=brands if isinstance(brands, str) and brands else None,
        carbs_per_100g=nutriment("carbohydrates_100g"),
        sugars_per_100g=nutriment("sugars_100g"),
        fiber_per_100g=nutriment("fiber_100g"),
        energy_kcal_per_100g=nutriment("energy-kcal_100g"),
        country_tags=frozenset(str(tag) for tag in countries),
        source=FoodSource.OFF,
    )


def extract_fdc_nutrients(food_nutrients: list[dict[str, object]]) -> dict[str, float]:
    """Map FDC nutrient rows to carbs, sugars, fiber and energy."""
    by_id = {nutrient_id: label for label, nutrient_id in _NUTRIENT_IDS.items()}
    values: dict[str, float] = {}
    for nutrient in food_nutrients:
        if not isinstance(nutrient, dict):
            continue
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient_info.get("id") or nutrient.get("nutrientId")
        amount = nutrient.get("amount", nutrient.get("value"))
        label = by_id.get(nutrient_id)
        if label is not None and amount is not None:
            values[label] = float(amount)
    return values


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]
