"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from diabite.adapters.fdc_client import FdcClient
from diabite.adapters.memory_food_cache_repository import InMemoryFoodCacheRepository
from diabite.adapters.memory_history_repository import InMemoryHistoryRepository
from diabite.adapters.off_client import OffClient
from diabite.adapters.openai_text_client import TextCompletionClient
from diabite.config import Settings
from diabite.containers import AppContainer
from diabite.domain.errors import RateLimitedError
from diabite.domain.food import FoodItem
from diabite.services.food_cache import FoodCacheService
from diabite.services.history import HistoryService
from diabite.services.offline import OfflineDataset, OfflineTier
from diabite.services.resolver import FoodResolver
from diabite.services.sources import (
    AiFallbackTier,
    BackoffPolicy,
    FdcTier,
    OffBarcodeTier,
    OffSearchTier,
)


@dataclass
class FakeClock:
    """Controllable clock shared by services under test."""

    now: datetime = field(
        default_factory=lambda: datetime(2025, 1, 1, 12, 0, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@dataclass
class FakeOffClient(OffClient):
    """Fake Open Food Facts client with in-memory responses."""

    products: list[dict[str, object]] = field(default_factory=list)
    barcodes: dict[str, dict[str, object]] = field(default_factory=dict)
    rate_limited_calls: int = 0
    error: Exception | None = None
    search_calls: int = 0
    product_calls: int = 0

    async def search_products(
        self, terms: str, page_size: int = 10
    ) -> dict[str, object]:
        self.search_calls += 1
        if self.rate_limited_calls:
            self.rate_limited_calls -= 1
            raise RateLimitedError("slow down")
        if self.error is not None:
            raise self.error
        return {"count": len(self.products), "products": self.products}

    async def get_product(self, barcode: str) -> dict[str, object] | None:
        self.product_calls += 1
        if self.error is not None:
            raise self.error
        return self.barcodes.get(barcode)


@dataclass
class FakeFdcClient(FdcClient):
    """Fake FDC client with in-memory responses."""

    search_payload: dict[str, object] = field(default_factory=lambda: {"foods": []})
    food_payload: dict[str, object] = field(default_factory=dict)
    rate_limited_calls: int = 0
    search_calls: int = 0
    food_calls: int = 0
    searched: list[str] = field(default_factory=list)

    async def search_foods(self, query: str, page_size: int = 10) -> dict[str, object]:
        self.search_calls += 1
        self.searched.append(query)
        if self.rate_limited_calls:
            self.rate_limited_calls -= 1
            raise RateLimitedError("slow down")
        return self.search_payload

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        self.food_calls += 1
        return self.food_payload


@dataclass
class FakeTextClient(TextCompletionClient):
    """Fake generative model returning a fixed answer."""

    answer: str = (
        "Here you go:\n```json\n"
        '{"category": "LIMIT", "reason": "Fried dough", '
        '"safePortion": "1 piece", "alternatives": ["roasted chana"]}\n```'
    )
    error: Exception | None = None
    prompts: list[str] = field(default_factory=list)

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer


@dataclass
class FakeOfflineDataset(OfflineDataset):
    """Offline dataset backed by a name-to-item mapping."""

    foods: dict[str, FoodItem] = field(default_factory=dict)
    lookups: list[str] = field(default_factory=list)

    def find_by_name(self, normalized_query: str) -> FoodItem | None:
        self.lookups.append(normalized_query)
        for name, item in self.foods.items():
            if normalized_query in name.lower():
                return item
        return None


def usda_food(
    description: str, carbs: float, sugars: float, fiber: float
) -> dict[str, object]:
    """FDC details payload with the nutrients the resolver reads."""
    return {
        "fdcId": 168878,
        "description": description,
        "dataType": "SR Legacy",
        "foodNutrients": [
            {"nutrient": {"id": 1005}, "amount": carbs},
            {"nutrient": {"id": 2000}, "amount": sugars},
            {"nutrient": {"id": 1079}, "amount": fiber},
            {"nutrient": {"id": 1008}, "amount": 365},
        ],
    }


@dataclass
class ResolverFixture:
    """Resolver wired to fakes, with handles to inspect them."""

    resolver: FoodResolver
    cache_repository: InMemoryFoodCacheRepository
    history_repository: InMemoryHistoryRepository
    off_client: FakeOffClient
    fdc_client: FakeFdcClient
    text_client: FakeTextClient
    offline: FakeOfflineDataset
    clock: FakeClock
    sleep: RecordingSleep


def build_resolver(  # noqa: PLR0913
    *,
    off_client: FakeOffClient | None = None,
    fdc_client: FakeFdcClient | None = None,
    text_client: FakeTextClient | None = None,
    offline: FakeOfflineDataset | None = None,
    openai_api_key: str = "",
    max_history_size: int = 300,
) -> ResolverFixture:
    clock = FakeClock()
    sleep = RecordingSleep()
    off_client = off_client or FakeOffClient()
    fdc_client = fdc_client or FakeFdcClient()
    text_client = text_client or FakeTextClient()
    offline = offline or FakeOfflineDataset()
    cache_repository = InMemoryFoodCacheRepository()
    history_repository = InMemoryHistoryRepository()
    backoff = BackoffPolicy(max_attempts=3, base_delay_ms=100, sleep=sleep)
    resolver = FoodResolver(
        cache=FoodCacheService(cache_repository, clock=clock),
        history=HistoryService(
            history_repository, max_size=max_history_size, clock=clock
        ),
        name_tiers=[
            OfflineTier(offline),
            OffSearchTier(off_client, backoff),
            FdcTier(fdc_client, backoff),
            AiFallbackTier(client=text_client, api_key=openai_api_key),
        ],
        barcode_tiers=[
            OffBarcodeTier(off_client, backoff),
            FdcTier(fdc_client, backoff, by_barcode=True),
        ],
    )
    return ResolverFixture(
        resolver=resolver,
        cache_repository=cache_repository,
        history_repository=history_repository,
        off_client=off_client,
        fdc_client=fdc_client,
        text_client=text_client,
        offline=offline,
        clock=clock,
        sleep=sleep,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        storage_backend="memory",
        fdc_api_key="fdc-key",
        openai_api_key="",
        _env_file=None,
    )


@pytest.fixture
def resolver_fixture() -> ResolverFixture:
    return build_resolver()


@pytest.fixture
def container(settings: Settings, resolver_fixture: ResolverFixture) -> AppContainer:
    resolver = resolver_fixture.resolver

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        cache_service=resolver.cache,
        history_service=resolver.history,
        resolver=resolver,
        close_resources=close_resources,
    )
