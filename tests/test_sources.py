"""Tests for remote source tiers and their parsing helpers."""

import asyncio

import pytest

from diabite.domain.decisions import Suitability
from diabite.domain.errors import MalformedResponseError, RateLimitedError
from diabite.domain.food import DiabetesType, FoodSource
from diabite.services.sources import (
    AiFallbackTier,
    BackoffPolicy,
    FdcTier,
    OffBarcodeTier,
    OffSearchTier,
    extract_fdc_nutrients,
    extract_json_block,
    is_usable_api_key,
    parse_off_product,
    parse_verdict,
    static_estimate,
)
from tests.conftest import (
    FakeFdcClient,
    FakeOffClient,
    FakeTextClient,
    RecordingSleep,
    usda_food,
)


def _backoff(sleep: RecordingSleep) -> BackoffPolicy:
    return BackoffPolicy(max_attempts=3, base_delay_ms=100, sleep=sleep)


def test_backoff_sleeps_quadratically_then_succeeds() -> None:
    sleep = RecordingSleep()
    calls = {"count": 0}

    async def flaky() -> dict[str, object]:
        calls["count"] += 1
        if calls["count"] < 3:
            raise RateLimitedError("429")
        return {"ok": True}

    result = asyncio.run(_backoff(sleep).run(flaky, action="test"))

    assert result == {"ok": True}
    assert sleep.delays == [0.1, 0.4]


def test_backoff_gives_up_after_max_attempts() -> None:
    sleep = RecordingSleep()

    async def always_limited() -> dict[str, object]:
        raise RateLimitedError("429")

    with pytest.raises(RateLimitedError):
        asyncio.run(_backoff(sleep).run(always_limited, action="test"))

    assert sleep.delays == [0.1, 0.4]


def test_backoff_does_not_retry_other_errors() -> None:
    sleep = RecordingSleep()

    async def broken() -> dict[str, object]:
        raise MalformedResponseError("bad json")

    with pytest.raises(MalformedResponseError):
        asyncio.run(_backoff(sleep).run(broken, action="test"))

    assert sleep.delays == []


def test_off_search_tier_uses_first_product_and_query_key() -> None:
    client = FakeOffClient(
        products=[
            {
                "product_name": "Parle-G Biscuits",
                "brands": "Parle",
                "nutriments": {
                    "carbohydrates_100g": 77,
                    "sugars_100g": 25,
                    "fiber_100g": "1.5",
                    "energy-kcal_100g": 450,
                },
                "countries_tags_en": ["india"],
            },
            {"product_name": "Other"},
        ]
    )
    tier = OffSearchTier(client, _backoff(RecordingSleep()))

    resolution = asyncio.run(tier("biscuit", DiabetesType.TYPE_2))

    assert resolution is not None
    assert resolution.cache_key == "name:biscuit"
    assert resolution.decision is None
    item = resolution.item
    assert item.name == "Parle-G Biscuits"
    assert item.brand == "Parle"
    assert item.sugars_per_100g == 25
    assert item.fiber_per_100g == 1.5
    assert item.country_tags == frozenset({"india"})
    assert item.source is FoodSource.OFF


def test_off_search_tier_returns_none_without_products() -> None:
    tier = OffSearchTier(FakeOffClient(), _backoff(RecordingSleep()))

    assert asyncio.run(tier("nothing", DiabetesType.TYPE_1)) is None


def test_off_barcode_tier_uses_barcode_key() -> None:
    client = FakeOffClient(
        barcodes={"8901063010031": {"product_name": "Glucose Biscuits", "sugars_100g": 22}}
    )
    tier = OffBarcodeTier(client, _backoff(RecordingSleep()))

    resolution = asyncio.run(tier("8901063010031", DiabetesType.TYPE_1))

    assert resolution is not None
    assert resolution.cache_key == "barcode:8901063010031"
    assert resolution.item.sugars_per_100g == 22


def test_parse_off_product_without_name_is_no_match() -> None:
    assert parse_off_product({"product_name": "  ", "sugars_100g": 3}) is None


def test_parse_off_product_rejects_non_object() -> None:
    with pytest.raises(MalformedResponseError):
        parse_off_product(["not", "a", "product"])


def test_fdc_tier_caches_under_description() -> None:
    client = FakeFdcClient(
        search_payload={"foods": [{"fdcId": 168878, "description": "Rice, white"}]},
        food_payload=usda_food("Rice, White, Long-Grain", 78.3, 0.1, 0.4),
    )
    tier = FdcTier(client, _backoff(RecordingSleep()))

    resolution = asyncio.run(tier("white rice", DiabetesType.TYPE_2))

    assert resolution is not None
    assert resolution.cache_key == "name:rice, white, long-grain"
    assert resolution.item.carbs_per_100g == 78.3
    assert resolution.item.energy_kcal_per_100g == 365
    assert resolution.item.source is FoodSource.USDA
    assert client.food_calls == 1


def test_fdc_tier_by_barcode_keeps_barcode_key() -> None:
    client = FakeFdcClient(
        search_payload={"foods": [{"fdcId": 1}]},
        food_payload=usda_food("Crackers", 70, 5, 3),
    )
    tier = FdcTier(client, _backoff(RecordingSleep()), by_barcode=True)

    resolution = asyncio.run(tier("0123456789", DiabetesType.TYPE_1))

    assert resolution is not None
    assert resolution.cache_key == "barcode:0123456789"
    assert client.searched == ["0123456789"]


def test_fdc_tier_without_hits_skips_details() -> None:
    client = FakeFdcClient()
    tier = FdcTier(client, _backoff(RecordingSleep()))

    assert asyncio.run(tier("unobtainium", DiabetesType.TYPE_1)) is None
    assert client.food_calls == 0


def test_extract_fdc_nutrients_accepts_both_layouts() -> None:
    nutrients = extract_fdc_nutrients(
        [
            {"nutrient": {"id": 1005}, "amount": 20.5},
            {"nutrientId": 2000, "value": 3},
            {"nutrientId": 1079},
            {"nutrient": {"id": 1003}, "amount": 9},
        ]
    )

    assert nutrients == {"carbs": 20.5, "sugars": 3.0}


def test_extract_json_block_variants() -> None:
    fenced = 'Sure!\n```json\n{"a": 1}\n```\nthanks'
    bare_fence = '```\n{"a": 2}\n```'
    inline = 'The answer is {"a": 3} as requested'

    assert extract_json_block(fenced) == '{"a": 1}'
    assert extract_json_block(bare_fence) == '{"a": 2}'
    assert extract_json_block(inline) == '{"a": 3}'


def test_parse_verdict_reads_safe_portion_alias() -> None:
    verdict = parse_verdict(FakeTextClient().answer)

    assert verdict.category is Suitability.LIMIT
    assert verdict.safe_portion == "1 piece"
    assert verdict.alternatives == ["roasted chana"]


def test_parse_verdict_rejects_invalid_payload() -> None:
    with pytest.raises(MalformedResponseError):
        parse_verdict('{"category": "MAYBE", "reason": "x"}')


@pytest.mark.parametrize(
    "api_key", ["", "   ", "YOUR_OPENAI_API_KEY_HERE", "YOUR_API_KEY_HERE", None]
)
def test_placeholder_keys_are_unusable(api_key: str | None) -> None:
    assert is_usable_api_key(api_key) is False


def test_ai_tier_returns_model_verdict() -> None:
    client = FakeTextClient()
    tier = AiFallbackTier(client=client, api_key="sk-test")

    resolution = asyncio.run(tier("jalebi", DiabetesType.TYPE_2))

    assert resolution.cache_key == "ai:jalebi:type_2"
    assert resolution.item.name == "Jalebi"
    assert resolution.item.source is FoodSource.AI
    assert resolution.decision is not None
    assert resolution.decision.category is Suitability.LIMIT
    assert resolution.decision.portion_text == "1 piece"
    assert resolution.decision.source == "AI"
    assert "DiabetesType: TYPE_2" in client.prompts[0]


def test_ai_tier_without_key_uses_static_estimate() -> None:
    client = FakeTextClient()
    tier = AiFallbackTier(client=client, api_key="YOUR_OPENAI_API_KEY_HERE")

    resolution = asyncio.run(tier("jalebi", DiabetesType.TYPE_1))

    assert client.prompts == []
    assert resolution.cache_key == "ai_estimate:jalebi:type_1"
    assert resolution.decision is not None
    assert resolution.decision.category is Suitability.SMALL_PORTION


@pytest.mark.parametrize(
    "client",
    [
        FakeTextClient(answer="I cannot help with that."),
        FakeTextClient(error=RuntimeError("model offline")),
    ],
)
def test_ai_tier_failures_degrade_to_static_estimate(client: FakeTextClient) -> None:
    tier = AiFallbackTier(client=client, api_key="sk-test")

    resolution = asyncio.run(tier("jalebi", DiabetesType.TYPE_2))

    assert resolution.item.source is FoodSource.AI_ESTIMATE
    assert resolution.cache_key == "ai_estimate:jalebi:type_2"


def test_static_estimate_content() -> None:
    resolution = static_estimate("mystery curry", DiabetesType.TYPE_2)

    item = resolution.item
    decision = resolution.decision
    assert item.name == "Mystery curry"
    assert (item.carbs_per_100g, item.sugars_per_100g, item.fiber_per_100g) == (
        15.0,
        5.0,
        2.0,
    )
    assert decision is not None
    assert decision.reason == (
        "Estimated values for Mystery curry - "
        "AI analysis not available or API key missing."
    )
    assert decision.portion_text == (
        "Approximate values (100g portion) - verify with healthcare provider."
    )
    assert decision.alternatives == (
        "Consult a nutritionist",
        "Check detailed nutrition info",
    )
    assert decision.source == "AI_ESTIMATE"
