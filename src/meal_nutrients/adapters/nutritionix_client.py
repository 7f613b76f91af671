"""Nutritionix natural-language nutrients API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from meal_nutrients.adapters.responses import json_object
from meal_nutrients.services.credentials import CredentialPool, CredentialRotator

DEFAULT_BASE_URL = "https://trackapi.nutritionix.com"


class NutritionixClient(Protocol):
    """Interface for Nutritionix nutrient lookups."""

    async def natural_nutrients(self, query: str) -> dict[str, object]:
        """Return raw nutrients for a free-text ingredient query."""


def nutritionix_headers(credential: str) -> dict[str, str]:
    """Split an ``app_id:app_key`` credential into Nutritionix headers."""
    app_id, _, app_key = credential.partition(":")
    return {"x-app-id": app_id.strip(), "x-app-key": app_key.strip()}


@dataclass
class HttpxNutritionixClient(NutritionixClient):
    """HTTPX-backed Nutritionix client that rotates app credentials."""

    rotator: CredentialRotator
    base_url: str = DEFAULT_BASE_URL

    @classmethod
    def create(
        cls,
        pool: CredentialPool,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15.0,
    ) -> "HttpxNutritionixClient":
        """Create a Nutritionix client with a managed httpx session."""
        rotator = CredentialRotator(
            http_client=httpx.AsyncClient(),
            pool=pool,
            authorize=nutritionix_headers,
            timeout=timeout,
            name="nutritionix",
        )
        return cls(rotator=rotator, base_url=base_url.rstrip("/"))

    async def natural_nutrients(self, query: str) -> dict[str, object]:
        """Return raw nutrients for a free-text ingredient query."""
        response = await self.rotator.call(
            "POST",
            f"{self.base_url}/v2/natural/nutrients",
            json={"query": query},
        )
        return json_object(response)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.rotator.http_client.aclose()
