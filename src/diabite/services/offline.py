"""Read-only regional food dataset interface."""

from dataclasses import dataclass
from typing import Protocol

from diabite.domain.food import DiabetesType, FoodItem, name_key, normalize_query
from diabite.domain.results import Resolution

REGION_TAGS = ("india", "pakistan", "bangladesh", "nepal")


class OfflineDataset(Protocol):
    """Name-keyed lookup over a local food dataset."""

    def find_by_name(self, normalized_query: str) -> FoodItem | None:
        """Return the first regional food whose name contains the query."""


@dataclass
class OfflineTier:
    """Resolver tier over the offline dataset.

    Hits are cached under the dataset's own name rather than the query.
    """

    dataset: OfflineDataset
    name: str = "offline_dataset"

    async def __call__(
        self, query: str, diabetes_type: DiabetesType
    ) -> Resolution | None:
        item = self.dataset.find_by_name(query)
        if item is None:
            return None
        return Resolution(item=item, cache_key=name_key(normalize_query(item.name)))
