"""Dependency container wiring for the application."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from meal_nutrients.adapters.fdc_client import HttpxFdcClient
from meal_nutrients.adapters.logmeal_client import HttpxLogMealClient
from meal_nutrients.adapters.nutritionix_client import HttpxNutritionixClient
from meal_nutrients.adapters.openfoodfacts_client import HttpxOpenFoodFactsClient
from meal_nutrients.config import Settings, parse_csv
from meal_nutrients.domain.errors import ConfigurationMissing
from meal_nutrients.services.cache import ResponseCache
from meal_nutrients.services.credentials import CredentialPool
from meal_nutrients.services.pipeline import NutritionPipeline
from meal_nutrients.services.vision import VisionService

_logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    cache: ResponseCache
    vision_service: VisionService
    pipeline: NutritionPipeline
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    timeout = resolved_settings.upstream_timeout_seconds
    bucket = resolved_settings.rotation_bucket_seconds

    logmeal_tokens = parse_csv(resolved_settings.logmeal_tokens)
    if not logmeal_tokens:
        _logger.error("LOGMEAL_TOKENS is not configured")
        raise ConfigurationMissing("LOGMEAL_TOKENS must list at least one token")
    logmeal_client = HttpxLogMealClient.create(
        CredentialPool(tokens=logmeal_tokens, bucket_seconds=bucket),
        base_url=resolved_settings.logmeal_base_url,
        timeout=timeout,
    )

    nutritionix_client = None
    nutritionix_credentials = parse_csv(resolved_settings.nutritionix_credentials)
    if nutritionix_credentials:
        nutritionix_client = HttpxNutritionixClient.create(
            CredentialPool(tokens=nutritionix_credentials, bucket_seconds=bucket),
            base_url=resolved_settings.nutritionix_base_url,
            timeout=timeout,
        )

    fdc_client = None
    if resolved_settings.fdc_api_key:
        fdc_client = HttpxFdcClient.create(
            api_key=resolved_settings.fdc_api_key,
            base_url=resolved_settings.fdc_base_url,
            timeout=timeout,
        )

    openfoodfacts_client = HttpxOpenFoodFactsClient.create(
        hosts=parse_csv(resolved_settings.openfoodfacts_hosts),
        timeout=timeout,
    )

    cache = ResponseCache(ttl_seconds=resolved_settings.cache_ttl_seconds)
    vision_service = VisionService(client=logmeal_client, cache=cache)
    pipeline = NutritionPipeline(
        vision=vision_service,
        cache=cache,
        openfoodfacts=openfoodfacts_client,
        barcode_scanner=logmeal_client,
        nutritionix=nutritionix_client,
        fdc=fdc_client,
        reference_confidence_gate=resolved_settings.reference_confidence_gate,
    )

    async def close_resources() -> None:
        await logmeal_client.close()
        await openfoodfacts_client.close()
        if nutritionix_client is not None:
            await nutritionix_client.close()
        if fdc_client is not None:
            await fdc_client.close()

    return AppContainer(
        settings=resolved_settings,
        cache=cache,
        vision_service=vision_service,
        pipeline=pipeline,
        close_resources=close_resources,
    )
