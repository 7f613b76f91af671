"""Helpers for decoding upstream HTTP responses."""

import httpx

from meal_nutrients.domain.errors import MalformedPayload


def json_object(response: httpx.Response) -> dict[str, object]:
    """Decode a response body that must be a JSON object."""
    try:
        payload = response.json()
    except ValueError as exc:
        raise MalformedPayload(f"Non-JSON body from {response.url}") from exc
    if not isinstance(payload, dict):
        raise MalformedPayload(
            f"Expected a JSON object from {response.url}, got {type(payload).__name__}"
        )
    return payload
