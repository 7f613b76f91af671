"""End-to-end resolution of meal signals into one per-100 g profile."""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import httpx
from pydantic import BaseModel, model_validator

from meal_nutrients.adapters.fdc_client import FdcClient
from meal_nutrients.adapters.logmeal_client import LogMealClient
from meal_nutrients.adapters.nutritionix_client import NutritionixClient
from meal_nutrients.adapters.openfoodfacts_client import OpenFoodFactsClient
from meal_nutrients.domain.errors import (
    CredentialExhausted,
    InvalidBarcode,
    MalformedPayload,
    UpstreamFatal,
)
from meal_nutrients.domain.nutrition import (
    IngredientSpec,
    MealNutrition,
    NutrientProfile,
)
from meal_nutrients.domain.reference import lookup_reference
from meal_nutrients.domain.vision import ConceptCandidate, Recognition
from meal_nutrients.services.aggregator import WeightedProfile, aggregate
from meal_nutrients.services.cache import Cache, external_cache_key
from meal_nutrients.services.concepts import ConceptGate
from meal_nutrients.services.normalizer import NutrientNormalizer
from meal_nutrients.services.reconciler import SanityReconciler
from meal_nutrients.services.vision import VisionService

_logger = logging.getLogger(__name__)

_BARCODE = re.compile(r"^\d{8,14}$")

# Upstream refusals; surfaced only while no food name is known.
_UPSTREAM_ERRORS = (CredentialExhausted, UpstreamFatal)
# Unreadable upstream answers; always treated as an empty result.
_EMPTY_RESULT_ERRORS = (MalformedPayload, httpx.HTTPError)
_STRATEGY_ERRORS = _UPSTREAM_ERRORS + _EMPTY_RESULT_ERRORS

Payload = dict[str, object] | NutrientProfile
Strategy = Callable[[IngredientSpec], Awaitable[Payload | None]]


class NutritionRequest(BaseModel):
    """Inbound request carrying exactly one kind of meal signal."""

    concepts: list[ConceptCandidate] | None = None
    ingredients: list[str] | None = None
    code: str | None = None

    @model_validator(mode="after")
    def _exactly_one_signal(self) -> "NutritionRequest":
        provided = [
            name
            for name in ("concepts", "ingredients", "code")
            if getattr(self, name) is not None
        ]
        if len(provided) != 1:
            raise ValueError("Provide exactly one of concepts, ingredients or code")
        return self


@dataclass
class NutritionPipeline:
    """Runs gating, lookup, normalization, aggregation and reconciliation."""

    vision: VisionService
    cache: Cache
    openfoodfacts: OpenFoodFactsClient
    barcode_scanner: LogMealClient
    nutritionix: NutritionixClient | None = None
    fdc: FdcClient | None = None
    gate: ConceptGate = field(default_factory=ConceptGate)
    normalizer: NutrientNormalizer = field(default_factory=NutrientNormalizer)
    reconciler: SanityReconciler = field(default_factory=SanityReconciler)
    reference_confidence_gate: float = 0.7

    async def resolve(self, request: NutritionRequest) -> MealNutrition:
        """Resolve concepts, an ingredient list or a barcode."""
        if request.code is not None:
            return await self.resolve_barcode(request.code)
        if request.concepts is not None:
            return await self.resolve_concepts(request.concepts)
        specs = [
            IngredientSpec.parse(text)
            for text in request.ingredients or []
            if text.strip()
        ]
        return await self._resolve_specs(specs, reference=None)

    async def resolve_concepts(
        self, concepts: list[ConceptCandidate]
    ) -> MealNutrition:
        """Gate recognized concepts and resolve the surviving ingredients."""
        specs = self.gate.gate(concepts)
        return await self._resolve_specs(specs, self._reference_for(concepts, specs))

    async def resolve_image(self, image_bytes: bytes) -> MealNutrition:
        """Recognize an image, preferring the provider's meal-level nutrition."""
        try:
            recognition = await self.vision.recognize(image_bytes)
        except _EMPTY_RESULT_ERRORS as exc:
            _logger.warning("Unusable recognition response: %s", exc)
            recognition = Recognition(concepts=[])
        specs = self.gate.gate(recognition.concepts)
        reference = self._reference_for(recognition.concepts, specs)

        if recognition.image_id is not None:
            try:
                payload = await self.vision.nutritional_info(recognition.image_id)
            except _STRATEGY_ERRORS as exc:
                if not specs and isinstance(exc, _UPSTREAM_ERRORS):
                    raise
                _logger.info(
                    "Meal-level nutrition unavailable for image %s: %s",
                    recognition.image_id,
                    exc,
                )
            else:
                profile = self.normalizer.normalize(payload)
                if profile is not None:
                    return MealNutrition(
                        base=self.reconciler.reconcile(profile, reference),
                        ingredients_resolved=[spec.query for spec in specs],
                    )
                _logger.info(
                    "No usable meal-level nutrients for image %s; "
                    "resolving ingredients",
                    recognition.image_id,
                )
        return await self._resolve_specs(specs, reference)

    async def resolve_barcode(self, raw_code: str) -> MealNutrition:
        """Resolve a packaged product by barcode."""
        code = re.sub(r"\s+", "", raw_code)
        if not _BARCODE.match(code):
            raise InvalidBarcode(f"Invalid barcode: {raw_code!r}")

        cache_key = external_cache_key("barcode", code)
        cached = self.cache.get(cache_key)
        if isinstance(cached, MealNutrition):
            return cached

        product = await self.openfoodfacts.get_product(code)
        name = _product_name(product)
        profile = None
        if product is not None:
            profile = self.normalizer.normalize(product.get("nutriments"))
        if profile is None:
            _logger.info("OpenFoodFacts had no nutrients for %s; scanning", code)
            try:
                scanned = await self.barcode_scanner.barcode_scan(code)
            except _STRATEGY_ERRORS as exc:
                if name is None and isinstance(exc, _UPSTREAM_ERRORS):
                    raise
                _logger.info("Barcode scan failed for %s: %s", code, exc)
            else:
                name = name or _product_name(scanned)
                profile = self.normalizer.normalize(scanned)
        if profile is None and name is not None:
            profile = lookup_reference(name)

        result = MealNutrition(
            base=self.reconciler.reconcile(profile or NutrientProfile.empty()),
            ingredients_resolved=[name] if name else [],
        )
        if not result.base.is_empty():
            self.cache.put(cache_key, result)
        return result

    async def _resolve_specs(
        self,
        specs: list[IngredientSpec],
        reference: NutrientProfile | None,
    ) -> MealNutrition:
        resolved = await asyncio.gather(*(self._resolve_ingredient(s) for s in specs))
        found = [weighted for weighted in resolved if weighted is not None]
        profile = aggregate(found) if found else NutrientProfile.empty()
        return MealNutrition(
            base=self.reconciler.reconcile(profile, reference),
            ingredients_resolved=[spec.query for spec in specs],
        )

    async def _resolve_ingredient(self, spec: IngredientSpec) -> WeightedProfile | None:
        cache_key = external_cache_key("ingredient", spec.query)
        cached = self.cache.get(cache_key)
        if isinstance(cached, WeightedProfile):
            return cached

        for strategy_name, strategy in self._ingredient_strategies():
            try:
                payload = await strategy(spec)
            except _STRATEGY_ERRORS as exc:
                _logger.info(
                    "Strategy %s failed for %r: %s", strategy_name, spec.query, exc
                )
                continue
            if payload is None:
                continue
            normalized = self.normalizer.normalize_payload(payload)
            if normalized.profile is None:
                _logger.info(
                    "Strategy %s returned no usable nutrients for %r",
                    strategy_name,
                    spec.query,
                )
                continue
            weighted = WeightedProfile(
                profile=normalized.profile,
                grams=spec.grams or normalized.serving_grams,
            )
            self.cache.put(cache_key, weighted)
            return weighted
        _logger.info("No strategy resolved %r", spec.query)
        return None

    def _ingredient_strategies(self) -> list[tuple[str, Strategy]]:
        strategies: list[tuple[str, Strategy]] = []
        nutritionix = self.nutritionix
        if nutritionix is not None:
            strategies.append(
                ("nutritionix", lambda spec: nutritionix.natural_nutrients(spec.query))
            )
        fdc = self.fdc
        if fdc is not None:
            strategies.append(("fdc", lambda spec: _lookup_fdc(fdc, spec)))
        strategies.append(("reference", _lookup_reference))
        return strategies

    def _reference_for(
        self, concepts: list[ConceptCandidate], specs: list[IngredientSpec]
    ) -> NutrientProfile | None:
        """Reference profile for the top concept, only when it is confident."""
        if not concepts:
            return None
        top = max(concepts, key=lambda concept: concept.confidence)
        if top.confidence <= self.reference_confidence_gate:
            return None
        name = specs[0].name if specs else top.name
        return lookup_reference(name)


def _product_name(payload: dict[str, object] | None) -> str | None:
    if not payload:
        return None
    for key in ("product_name", "product_name_en", "product_name_es", "name"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    product = payload.get("product")
    if isinstance(product, dict):
        return _product_name(product)
    return None


async def _lookup_fdc(fdc: FdcClient, spec: IngredientSpec) -> Payload | None:
    """Search FDC and fetch the detail record of the best match."""
    search = await fdc.search_foods(spec.name, page_size=1)
    foods = search.get("foods")
    if not isinstance(foods, list) or not foods or not isinstance(foods[0], dict):
        return None
    fdc_id = foods[0].get("fdcId")
    if not isinstance(fdc_id, int):
        return foods[0]
    return await fdc.get_food(fdc_id)


async def _lookup_reference(spec: IngredientSpec) -> Payload | None:
    return lookup_reference(spec.name)
