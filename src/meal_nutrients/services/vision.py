"""Image recognition service wrapping an external food-vision provider."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol

from meal_nutrients.domain.vision import ConceptCandidate, Recognition
from meal_nutrients.services.cache import Cache, external_cache_key, image_cache_key

_logger = logging.getLogger(__name__)

_NAME_KEYS = ("name", "label", "foodName", "food_name", "class", "dish")
_CONFIDENCE_KEYS = ("prob", "probability", "confidence", "score", "value")
_IMAGE_ID_KEYS = ("imageId", "image_id", "id")


class VisionClient(Protocol):
    """Interface for a food recognition provider."""

    async def recognize(self, image_bytes: bytes, mime_type: str) -> dict[str, object]:
        """Upload an image and return the raw recognition payload."""

    async def nutritional_info(self, image_id: str) -> dict[str, object]:
        """Return the raw meal-level nutrition payload for a recognized image."""


@dataclass
class VisionService:
    """Service that recognizes concepts in images and caches the result."""

    client: VisionClient
    cache: Cache

    async def recognize(self, image_bytes: bytes) -> Recognition:
        """Recognize food concepts in an image, most confident first."""
        cache_key = image_cache_key(image_bytes)
        cached = self.cache.get(cache_key)
        if isinstance(cached, Recognition):
            return cached

        raw = await self.client.recognize(image_bytes, _detect_mime_type(image_bytes))
        recognition = parse_recognition(raw)
        _logger.info(
            "Recognized %s concepts (image_id=%s)",
            len(recognition.concepts),
            recognition.image_id,
        )
        self.cache.put(cache_key, recognition)
        return recognition

    async def nutritional_info(self, image_id: str) -> dict[str, object]:
        """Fetch meal-level nutrition for a recognized image, cached by id."""
        cache_key = external_cache_key("image-id", image_id)
        cached = self.cache.get(cache_key)
        if isinstance(cached, dict):
            return cached

        payload = await self.client.nutritional_info(image_id)
        self.cache.put(cache_key, payload)
        return payload


def parse_recognition(raw: dict[str, object]) -> Recognition:
    """Collect concepts from the provider's varying response layouts."""
    best: dict[str, float] = {}
    for name, confidence in _iter_concepts(raw):
        if confidence > best.get(name, -1.0):
            best[name] = confidence
    concepts = [
        ConceptCandidate(name=name, confidence=confidence)
        for name, confidence in sorted(
            best.items(), key=lambda item: item[1], reverse=True
        )
    ]
    return Recognition(image_id=_image_id(raw), concepts=concepts)


def _iter_concepts(raw: dict[str, object]) -> Iterator[tuple[str, float]]:
    yield from _iter_results(raw.get("recognition_results"))
    segments = raw.get("segmentation_results")
    if isinstance(segments, list):
        for segment in segments:
            if isinstance(segment, dict):
                yield from _iter_results(segment.get("recognition_results"))
    for key in ("food", "predictions", "classification"):
        yield from _iter_results(raw.get(key))


def _iter_results(results: object) -> Iterator[tuple[str, float]]:
    if isinstance(results, dict):
        results = [results]
    if not isinstance(results, list):
        return
    for result in results:
        if not isinstance(result, dict):
            continue
        name = _first_text(result, _NAME_KEYS)
        confidence = _first_confidence(result)
        if name and confidence is not None:
            yield name, confidence


def _first_text(result: dict[str, object], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = result.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _first_confidence(result: dict[str, object]) -> float | None:
    for key in _CONFIDENCE_KEYS:
        value = result.get(key)
        if isinstance(value, bool) or not isinstance(value, int | float):
            continue
        return min(max(float(value), 0.0), 1.0)
    return None


def _image_id(raw: dict[str, object]) -> str | None:
    for key in _IMAGE_ID_KEYS:
        value = raw.get(key)
        if isinstance(value, str | int) and not isinstance(value, bool):
            return str(value)
    return None


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
