"""USDA FoodData Central API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from diabite.domain.errors import MalformedResponseError, RateLimitedError

# Generic and branded records carry per-100g nutrients; survey data does not.
SEARCH_DATA_TYPES = ("Foundation", "SR Legacy", "Branded")

_TOO_MANY_REQUESTS = 429


class FdcClient(Protocol):
    """Lookups against FoodData Central."""

    async def search_foods(self, query: str, page_size: int = 10) -> dict[str, object]:
        """Return the raw search payload; hits are under ``foods``."""

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        """Return the raw details payload for one FDC id."""


@dataclass
class HttpxFdcClient(FdcClient):
    """FoodData Central over an httpx session; the key travels as ``api_key``."""

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 15

    @classmethod
    def create(cls, api_key: str, base_url: str) -> "HttpxFdcClient":
        return cls(
            api_key=api_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
        )

    async def search_foods(self, query: str, page_size: int = 10) -> dict[str, object]:
        return await self._send(
            "POST",
            "/foods/search",
            json={
                "query": query,
                "pageSize": page_size,
                "dataType": list(SEARCH_DATA_TYPES),
            },
        )

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        return await self._send("GET", f"/food/{fdc_id}")

    async def close(self) -> None:
        await self.http_client.aclose()

    async def _send(
        self, method: str, path: str, json: dict[str, object] | None = None
    ) -> dict[str, object]:
        response = await self.http_client.request(
            method,
            f"{self.base_url}{path}",
            params={"api_key": self.api_key},
            json=json,
            timeout=self.timeout,
        )
        if response.status_code == _TOO_MANY_REQUESTS:
            raise RateLimitedError(f"FoodData Central rate limit reached on {path}")
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"FoodData Central returned invalid JSON on {path}"
            ) from exc
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                f"FoodData Central returned a non-object body on {path}"
            )
        return payload
