"""SQLite-backed regional food dataset."""

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from diabite.domain.food import FoodItem, FoodSource
from diabite.services.offline import REGION_TAGS, OfflineDataset

_logger = logging.getLogger(__name__)

_QUERY = (
    "SELECT product_name, categories_tags, countries_tags, "
    "carbohydrates_100g, fiber_100g, sugars_100g "
    "FROM foods WHERE lower(product_name) LIKE ? ESCAPE '\\' AND ("
    + " OR ".join("lower(countries_tags) LIKE ?" for _ in REGION_TAGS)
    + ") LIMIT 1"
)


@dataclass
class SqliteOfflineDataset(OfflineDataset):
    """Looks foods up in a read-only ``foods`` table."""

    path: Path

    def find_by_name(self, normalized_query: str) -> FoodItem | None:
        """Return the first regional match, or None when absent or unreadable."""
        if not self.path.exists():
            _logger.warning("Offline dataset missing at %s", self.path)
            return None
        params = [f"%{_escape_like(normalized_query.lower())}%"]
        params.extend(f"%{tag}%" for tag in REGION_TAGS)
        try:
            connection = sqlite3.connect(f"file:{self.path}?mode=ro", uri=True)
            try:
                row = connection.execute(_QUERY, params).fetchone()
            finally:
                connection.close()
        except sqlite3.Error:
            _logger.exception("Offline dataset lookup failed for %s", normalized_query)
            return None
        if row is None:
            return None
        return _parse_row(row)


def _parse_row(row: tuple[object, ...]) -> FoodItem:
    name, categories, countries, carbs, fiber, sugars = row
    category_list = _split_tags(categories)
    return FoodItem(
        name=str(name),
        brand=category_list[0] if category_list else "Local Data",
        carbs_per_100g=_to_float(carbs),
        sugars_per_100g=_to_float(sugars),
        fiber_per_100g=_to_float(fiber),
        country_tags=frozenset(_split_tags(countries)),
        source=FoodSource.LOCAL_DB,
    )


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _split_tags(raw: object) -> list[str]:
    if not isinstance(raw, str):
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def _to_float(value: object) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
