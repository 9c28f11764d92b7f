"""Open Food Facts API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from diabite.domain.errors import MalformedResponseError, RateLimitedError

PRODUCT_FIELDS = ",".join(
    (
        "code",
        "product_name",
        "brands",
        "countries_tags_en",
        "categories_tags",
        "nutriments",
        "carbohydrates_100g",
        "sugars_100g",
        "fiber_100g",
        "energy-kcal_100g",
        "last_modified_t",
    )
)

_TOO_MANY_REQUESTS = 429
_NOT_FOUND = 404


class OffClient(Protocol):
    """Interface for Open Food Facts lookups."""

    async def search_products(
        self, terms: str, page_size: int = 10
    ) -> dict[str, object]:
        """Search products by free-text terms and return raw API data."""

    async def get_product(self, barcode: str) -> dict[str, object] | None:
        """Fetch a product by barcode; None when the code is unknown."""


@dataclass
class HttpxOffClient(OffClient):
    """HTTPX-backed Open Food Facts client."""

    base_url: str
    user_agent: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, user_agent: str) -> "HttpxOffClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url,
            user_agent=user_agent,
            http_client=httpx.AsyncClient(headers={"User-Agent": user_agent}),
        )

    async def search_products(
        self, terms: str, page_size: int = 10
    ) -> dict[str, object]:
        """Search products by terms."""
        response = await self.http_client.get(
            f"{self.base_url}/api/v2/search",
            params={
                "search_terms": terms,
                "page_size": page_size,
                "fields": PRODUCT_FIELDS,
            },
            timeout=15,
        )
        return _json_or_raise(response)

    async def get_product(self, barcode: str) -> dict[str, object] | None:
        """Fetch a product by barcode."""
        response = await self.http_client.get(
            f"{self.base_url}/api/v2/product/{barcode}.json",
            params={"fields": PRODUCT_FIELDS},
            timeout=15,
        )
        if response.status_code == _NOT_FOUND:
            return None
        payload = _json_or_raise(response)
        if payload.get("status") == 0:
            return None
        product = payload.get("product")
        if product is None:
            return None
        if not isinstance(product, dict):
            raise MalformedResponseError("Open Food Facts product is not an object")
        return product

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _json_or_raise(response: httpx.Response) -> dict[str, object]:
    if response.status_code == _TOO_MANY_REQUESTS:
        raise RateLimitedError("Open Food Facts rate limit reached")
    response.raise_for_status()
    try:
        payload = response.json()
    except ValueError as exc:
        raise MalformedResponseError("Open Food Facts returned invalid JSON") from exc
    if not isinstance(payload, dict):
        raise MalformedResponseError("Open Food Facts returned a non-object body")
    return payload
