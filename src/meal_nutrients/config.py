"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    logmeal_tokens: str = ""
    logmeal_base_url: str = "https://api.logmeal.com"
    nutritionix_credentials: str | None = None
    nutritionix_base_url: str = "https://trackapi.nutritionix.com"
    fdc_api_key: str | None = None
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    openfoodfacts_hosts: str = (
        "https://world.openfoodfacts.org,https://us.openfoodfacts.org,"
        "https://mx.openfoodfacts.org,https://es.openfoodfacts.org"
    )
    cache_ttl_seconds: int = 43200
    upstream_timeout_seconds: float = 15.0
    rotation_bucket_seconds: float = 60.0
    reference_confidence_gate: float = 0.7
    debug: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_csv(raw: str | None) -> tuple[str, ...]:
    """Split a comma-separated setting into trimmed, non-empty values."""
    if raw is None:
        return ()
    return tuple(chunk.strip() for chunk in raw.split(",") if chunk.strip())
