"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from supabase import create_client

from diabite.adapters.fdc_client import HttpxFdcClient
from diabite.adapters.memory_food_cache_repository import InMemoryFoodCacheRepository
from diabite.adapters.memory_history_repository import InMemoryHistoryRepository
from diabite.adapters.off_client import HttpxOffClient
from diabite.adapters.openai_text_client import OpenAITextClient
from diabite.adapters.sqlite_offline_dataset import SqliteOfflineDataset
from diabite.adapters.supabase_food_cache_repository import (
    SupabaseFoodCacheRepository,
)
from diabite.adapters.supabase_history_repository import SupabaseHistoryRepository
from diabite.config import Settings
from diabite.services.food_cache import FoodCacheRepository, FoodCacheService
from diabite.services.history import HistoryRepository, HistoryService
from diabite.services.offline import OfflineTier
from diabite.services.resolver import FoodResolver
from diabite.services.sources import (
    AiFallbackTier,
    BackoffPolicy,
    FdcTier,
    OffBarcodeTier,
    OffSearchTier,
    Tier,
    is_usable_api_key,
)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    cache_service: FoodCacheService
    history_service: HistoryService
    resolver: FoodResolver
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    cache_repository, history_repository = _build_repositories(resolved_settings)
    cache_service = FoodCacheService(
        repository=cache_repository,
        ttl=timedelta(days=resolved_settings.cache_ttl_days),
        max_entries=resolved_settings.max_cache_size,
    )
    history_service = HistoryService(
        repository=history_repository,
        max_size=resolved_settings.max_history_size,
    )
    backoff = BackoffPolicy(
        max_attempts=resolved_settings.rate_limit_max_attempts,
        base_delay_ms=resolved_settings.rate_limit_base_delay_ms,
    )
    off_client = HttpxOffClient.create(
        base_url=resolved_settings.off_base_url,
        user_agent=resolved_settings.off_user_agent,
    )
    fdc_client = HttpxFdcClient.create(
        api_key=resolved_settings.fdc_api_key,
        base_url=resolved_settings.fdc_base_url,
    )
    openai_client = (
        OpenAITextClient.create(
            resolved_settings.openai_api_key, resolved_settings.openai_model
        )
        if is_usable_api_key(resolved_settings.openai_api_key)
        else None
    )

    name_tiers: list[Tier] = []
    if resolved_settings.offline_db_path:
        dataset = SqliteOfflineDataset(Path(resolved_settings.offline_db_path))
        name_tiers.append(OfflineTier(dataset))
    name_tiers.append(OffSearchTier(off_client, backoff))
    barcode_tiers: list[Tier] = [OffBarcodeTier(off_client, backoff)]
    if resolved_settings.fdc_api_key:
        name_tiers.append(FdcTier(fdc_client, backoff))
        barcode_tiers.append(FdcTier(fdc_client, backoff, by_barcode=True))
    name_tiers.append(
        AiFallbackTier(client=openai_client, api_key=resolved_settings.openai_api_key)
    )

    resolver = FoodResolver(
        cache=cache_service,
        history=history_service,
        name_tiers=name_tiers,
        barcode_tiers=barcode_tiers,
    )

    async def close_resources() -> None:
        await off_client.close()
        await fdc_client.close()
        if openai_client is not None:
            await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        cache_service=cache_service,
        history_service=history_service,
        resolver=resolver,
        close_resources=close_resources,
    )


def _build_repositories(
    settings: Settings,
) -> tuple[FoodCacheRepository, HistoryRepository]:
    if not settings.uses_supabase:
        return InMemoryFoodCacheRepository(), InMemoryHistoryRepository()
    if not settings.supabase_url or not settings.supabase_service_key:
        raise RuntimeError("Supabase storage requires SUPABASE_URL and key")
    supabase_client = create_client(
        settings.supabase_url, settings.supabase_service_key
    )
    return (
        SupabaseFoodCacheRepository(supabase_client),
        SupabaseHistoryRepository(supabase_client),
    )
