"""Deterministic diabetes-suitability rules."""

from diabite.domain.decisions import Decision, Suitability
from diabite.domain.food import DiabetesType, FoodItem

TARGET_NET_CARBS_PER_SERVING = 15.0
MIN_PORTION_GRAMS = 20.0
MAX_PORTION_GRAMS = 300.0
HIGH_FIBER_GRAMS = 5.0
HIGH_FIBER_NOTE = " (High fiber content helps)"

_ALTERNATIVE_BUCKETS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        ("sugar", "sweet", "soda", "cola"),
        ("unsweetened yogurt", "nuts", "fruit with peel", "water/unsweetened tea"),
    ),
    (("rice",), ("brown rice", "cauliflower rice", "quinoa")),
    (("roti", "naan"), ("whole wheat roti", "multigrain roti")),
    (
        ("samosa", "fries", "chips", "pakoda", "fried", "snack"),
        ("roasted chana", "baked options", "salad"),
    ),
)
_DEFAULT_ALTERNATIVES = ("dal", "grilled fish/chicken", "non-starchy vegetables")


def decide(item: FoodItem, diabetes_type: DiabetesType) -> Decision:
    """Classify a food item for the given diabetes type."""
    sugars = item.sugars_per_100g or 0.0
    fiber = item.fiber_per_100g or 0.0
    net = item.net_carbs_per_100g

    category, reason = _base_category(sugars, net)

    if fiber >= HIGH_FIBER_GRAMS:
        if category is Suitability.LIMIT:
            category = Suitability.SMALL_PORTION
            reason += HIGH_FIBER_NOTE
        elif category is Suitability.SMALL_PORTION:
            category = Suitability.SAFE
            reason += HIGH_FIBER_NOTE

    if diabetes_type is DiabetesType.TYPE_2:
        if category is Suitability.SMALL_PORTION and sugars >= 12:  # noqa: PLR2004
            category = Suitability.LIMIT
            reason = "High sugar content for Type 2 diabetes"
        elif category is Suitability.SMALL_PORTION and net > 30:  # noqa: PLR2004
            category = Suitability.LIMIT
            reason = "High net carbs for Type 2 diabetes"
    elif (
        category is Suitability.LIMIT
        and sugars < 15  # noqa: PLR2004
        and fiber >= HIGH_FIBER_GRAMS
    ):
        category = Suitability.SMALL_PORTION
        reason = "Consider carb counting per your care plan"

    return Decision(
        category=category,
        reason=reason,
        portion_text=portion_text(net, diabetes_type),
        alternatives=suggest_alternatives(item.name),
        source=item.source.value,
        diabetes_type=diabetes_type.value,
    )


def _base_category(sugars: float, net: float) -> tuple[Suitability, str]:
    """Apply the base rules; the first match wins."""
    if sugars >= 20:  # noqa: PLR2004
        return Suitability.AVOID, f"High sugar content ({_fmt(sugars)}g per 100g)"
    if sugars >= 15 or net >= 35:  # noqa: PLR2004
        return Suitability.LIMIT, "High sugar or net carb content"
    if net <= 5:  # noqa: PLR2004
        return Suitability.SAFE, f"Low net carbs ({_fmt(net)}g per 100g)"
    return Suitability.SMALL_PORTION, f"Moderate net carbs ({_fmt(net)}g per 100g)"


def portion_grams(net_carbs_per_100g: float) -> int:
    """Grams that hold one target serving of net carbs, clamped."""
    if net_carbs_per_100g <= 0:
        return 100
    grams = 100 * TARGET_NET_CARBS_PER_SERVING / net_carbs_per_100g
    return int(min(max(grams, MIN_PORTION_GRAMS), MAX_PORTION_GRAMS))


def portion_text(net_carbs_per_100g: float, diabetes_type: DiabetesType) -> str:
    """Human-readable portion guidance."""
    if diabetes_type is DiabetesType.TYPE_2:
        note = "Keep portions small; pair with protein/fiber."
    else:
        note = "Monitor carbs; follow your care plan."
    return f"{portion_grams(net_carbs_per_100g)}g portion. {note}"


def suggest_alternatives(food_name: str) -> tuple[str, ...]:
    """Pick swaps from the first keyword bucket matching the name."""
    lowered = food_name.lower()
    for keywords, alternatives in _ALTERNATIVE_BUCKETS:
        if any(keyword in lowered for keyword in keywords):
            return alternatives
    return _DEFAULT_ALTERNATIVES


def _fmt(value: float) -> str:
    return f"{round(value, 2):g}"
