"""LogMeal food recognition API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from meal_nutrients.adapters.responses import json_object
from meal_nutrients.services.credentials import CredentialPool, CredentialRotator

DEFAULT_BASE_URL = "https://api.logmeal.com"


class LogMealClient(Protocol):
    """Interface for LogMeal recognition, nutrition and barcode lookups."""

    async def recognize(self, image_bytes: bytes, mime_type: str) -> dict[str, object]:
        """Upload an image for segmentation and dish recognition."""

    async def nutritional_info(self, image_id: str) -> dict[str, object]:
        """Fetch meal-level nutrition for a previously recognized image."""

    async def barcode_scan(self, code: str) -> dict[str, object]:
        """Look up a packaged product by barcode."""


@dataclass
class HttpxLogMealClient(LogMealClient):
    """HTTPX-backed LogMeal client that rotates API tokens."""

    rotator: CredentialRotator
    base_url: str = DEFAULT_BASE_URL

    @classmethod
    def create(
        cls,
        pool: CredentialPool,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15.0,
    ) -> "HttpxLogMealClient":
        """Create a LogMeal client with a managed httpx session."""
        rotator = CredentialRotator(
            http_client=httpx.AsyncClient(),
            pool=pool,
            timeout=timeout,
            name="logmeal",
        )
        return cls(rotator=rotator, base_url=base_url.rstrip("/"))

    async def recognize(self, image_bytes: bytes, mime_type: str) -> dict[str, object]:
        """Upload an image for segmentation and dish recognition."""
        response = await self.rotator.call(
            "POST",
            f"{self.base_url}/v2/image/segmentation/complete",
            files={"image": ("image", image_bytes, mime_type)},
        )
        return json_object(response)

    async def nutritional_info(self, image_id: str) -> dict[str, object]:
        """Fetch meal-level nutrition for a previously recognized image."""
        response = await self.rotator.call(
            "POST",
            f"{self.base_url}/v2/recipe/nutritionalInfo",
            json={"imageId": image_id},
        )
        return json_object(response)

    async def barcode_scan(self, code: str) -> dict[str, object]:
        """Look up a packaged product by barcode."""
        response = await self.rotator.call(
            "GET", f"{self.base_url}/v2/barcode_scan/{code}"
        )
        return json_object(response)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.rotator.http_client.aclose()
