"""OpenFoodFacts product API client."""

import logging
from dataclasses import dataclass, field
from typing import Protocol

import httpx

DEFAULT_HOSTS = (
    "https://world.openfoodfacts.org",
    "https://us.openfoodfacts.org",
    "https://mx.openfoodfacts.org",
    "https://es.openfoodfacts.org",
)

_logger = logging.getLogger(__name__)


class OpenFoodFactsClient(Protocol):
    """Interface for OpenFoodFacts product lookups."""

    async def get_product(self, code: str) -> dict[str, object] | None:
        """Return the product record for a barcode, or None when unknown."""


@dataclass
class HttpxOpenFoodFactsClient(OpenFoodFactsClient):
    """HTTPX-backed OpenFoodFacts client that tries each regional host."""

    http_client: httpx.AsyncClient
    hosts: tuple[str, ...] = field(default=DEFAULT_HOSTS)
    timeout: float = 15.0

    @classmethod
    def create(
        cls, hosts: tuple[str, ...] = DEFAULT_HOSTS, timeout: float = 15.0
    ) -> "HttpxOpenFoodFactsClient":
        """Create an OpenFoodFacts client with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient(), hosts=hosts, timeout=timeout)

    async def get_product(self, code: str) -> dict[str, object] | None:
        """Return the first product record any host knows for `code`."""
        for host in self.hosts:
            url = f"{host.rstrip('/')}/api/v2/product/{code}.json"
            try:
                response = await self.http_client.get(url, timeout=self.timeout)
            except httpx.TransportError as exc:
                _logger.warning("OpenFoodFacts host %s unreachable: %s", host, exc)
                continue
            if response.status_code == 404:
                continue
            if not response.is_success:
                _logger.warning(
                    "OpenFoodFacts host %s answered %s", host, response.status_code
                )
                continue
            try:
                payload = response.json()
            except ValueError:
                _logger.warning("OpenFoodFacts host %s returned non-JSON", host)
                continue
            if not isinstance(payload, dict) or payload.get("status") != 1:
                continue
            product = payload.get("product")
            if isinstance(product, dict):
                return product
        return None

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
