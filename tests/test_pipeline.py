"""Tests for the end-to-end nutrition pipeline."""

import asyncio

import httpx
import pytest
from pydantic import ValidationError

from meal_nutrients.domain.errors import (
    CredentialExhausted,
    InvalidBarcode,
    MalformedPayload,
    UpstreamFatal,
)
from meal_nutrients.domain.vision import ConceptCandidate
from meal_nutrients.services.aggregator import WeightedProfile
from meal_nutrients.services.cache import ResponseCache, external_cache_key
from meal_nutrients.services.pipeline import NutritionPipeline, NutritionRequest
from tests.conftest import (
    NUTRITIONIX_RICE,
    FakeFdcClient,
    FakeLogMealClient,
    FakeNutritionixClient,
    FakeOpenFoodFactsClient,
)

LOGMEAL_MEAL = {
    "imageId": 1234,
    "serving_size": 250,
    "nutritional_info": {
        "calories": 400,
        "totalNutrients": {
            "PROCNT": {"label": "Protein", "quantity": 20, "unit": "g"},
            "CHOCDF": {"label": "Carbohydrates", "quantity": 50, "unit": "g"},
            "FAT": {"label": "Fat", "quantity": 10, "unit": "g"},
        },
    },
}

NUTRITIONIX_CHICKEN_PROTEIN = {
    "foods": [
        {"food_name": "chicken", "serving_weight_grams": 150, "nf_protein": 46.5}
    ]
}


def _concepts(*pairs: tuple[str, float]) -> list[ConceptCandidate]:
    return [ConceptCandidate(name=name, confidence=conf) for name, conf in pairs]


def test_request_requires_exactly_one_signal() -> None:
    with pytest.raises(ValidationError):
        NutritionRequest()

    with pytest.raises(ValidationError):
        NutritionRequest(ingredients=["rice"], code="12345678")

    assert NutritionRequest(code="12345678").code == "12345678"


def test_concepts_resolve_through_reference_fallback(
    pipeline: NutritionPipeline, nutritionix_client: FakeNutritionixClient
) -> None:
    request = NutritionRequest(concepts=_concepts(("rice", 0.3), ("chicken", 0.1)))

    result = asyncio.run(pipeline.resolve(request))

    assert result.ingredients_resolved == ["1 cup rice", "150 g chicken"]
    assert sorted(nutritionix_client.queries) == ["1 cup rice", "150 g chicken"]
    assert result.base_per == "100g"
    assert result.base.protein_g == pytest.approx(2.7 + 31 * 1.5)
    assert result.base.carbs_g == pytest.approx(28.2)
    assert result.base.fat_g == pytest.approx(0.3 + 3.6 * 1.5)
    assert result.base.calories == pytest.approx(130 + 165 * 1.5)


def test_ingredients_use_nutritionix_serving_weight(
    pipeline: NutritionPipeline, nutritionix_client: FakeNutritionixClient
) -> None:
    nutritionix_client.foods["1 cup rice"] = NUTRITIONIX_RICE

    result = asyncio.run(pipeline.resolve(NutritionRequest(ingredients=["1 cup rice"])))

    assert result.base.calories == pytest.approx(205.4, abs=0.01)
    assert result.base.protein_g == pytest.approx(4.25, abs=0.01)
    assert result.base.carbs_g == pytest.approx(44.5, abs=0.01)


def test_ingredient_lookups_are_cached(
    pipeline: NutritionPipeline, nutritionix_client: FakeNutritionixClient
) -> None:
    nutritionix_client.foods["1 cup rice"] = NUTRITIONIX_RICE
    request = NutritionRequest(ingredients=["1 cup rice"])

    first = asyncio.run(pipeline.resolve(request))
    second = asyncio.run(pipeline.resolve(request))

    assert first == second
    assert nutritionix_client.queries == ["1 cup rice"]


def test_upstream_failure_falls_back_to_next_strategy(
    pipeline: NutritionPipeline, nutritionix_client: FakeNutritionixClient
) -> None:
    nutritionix_client.error = CredentialExhausted(2, "429: slow down")

    result = asyncio.run(pipeline.resolve(NutritionRequest(ingredients=["chicken"])))

    assert result.base.protein_g == 31
    assert result.ingredients_resolved == ["chicken"]


def test_fdc_strategy_uses_search_then_detail(pipeline: NutritionPipeline) -> None:
    fdc = FakeFdcClient()
    pipeline.nutritionix = None
    pipeline.fdc = fdc

    result = asyncio.run(
        pipeline.resolve(NutritionRequest(ingredients=["200 g chicken"]))
    )

    assert fdc.search_calls == ["chicken"]
    assert fdc.food_calls == [171077]
    assert result.base.protein_g == pytest.approx(45)
    assert result.base.calories == pytest.approx(240)


def test_unknown_ingredient_yields_all_unknown_profile(
    pipeline: NutritionPipeline,
) -> None:
    result = asyncio.run(
        pipeline.resolve(NutritionRequest(ingredients=["1 cup unobtainium"]))
    )

    assert result.ingredients_resolved == ["1 cup unobtainium"]
    assert result.base.is_empty()
    assert result.to_dict()["base"]["calories"] is None


def test_confident_concept_fills_gaps_from_reference(
    pipeline: NutritionPipeline, nutritionix_client: FakeNutritionixClient
) -> None:
    nutritionix_client.foods["150 g chicken"] = NUTRITIONIX_CHICKEN_PROTEIN

    result = asyncio.run(pipeline.resolve_concepts(_concepts(("chicken", 0.9))))

    assert result.base.protein_g == pytest.approx(46.5)
    assert result.base.fat_g == 3.6
    assert result.base.sodium_mg == 74
    assert result.base.calories == pytest.approx(4 * 46.5 + 9 * 3.6)


def test_unconfident_concept_gets_no_reference(
    pipeline: NutritionPipeline, nutritionix_client: FakeNutritionixClient
) -> None:
    nutritionix_client.foods["150 g chicken"] = NUTRITIONIX_CHICKEN_PROTEIN

    result = asyncio.run(pipeline.resolve_concepts(_concepts(("chicken", 0.6))))

    assert result.base.fat_g is None
    assert result.base.calories == pytest.approx(4 * 46.5)


def test_barcode_resolves_from_openfoodfacts(
    pipeline: NutritionPipeline,
    openfoodfacts_client: FakeOpenFoodFactsClient,
    logmeal_client: FakeLogMealClient,
) -> None:
    openfoodfacts_client.products["7501055363057"] = {
        "product_name": "Galletas",
        "serving_size": "30 g",
        "nutriments": {
            "energy-kcal_100g": 480,
            "proteins_100g": 6,
            "carbohydrates_100g": 70,
            "fat_100g": 19,
            "salt_100g": 0.5,
        },
    }

    result = asyncio.run(
        pipeline.resolve(NutritionRequest(code=" 7501055 363057 "))
    )

    assert result.ingredients_resolved == ["Galletas"]
    assert result.base.calories == 480
    assert result.base.sodium_mg == pytest.approx(195)
    assert logmeal_client.barcode_calls == []


def test_barcode_falls_back_to_logmeal_scan(
    pipeline: NutritionPipeline, logmeal_client: FakeLogMealClient
) -> None:
    logmeal_client.barcode = {
        "product_name": "Yogur natural",
        "nutritional_info": {"per_100g": {"protein": 3.5, "carbs": 4.7, "fat": 3.3}},
    }

    result = asyncio.run(pipeline.resolve_barcode("12345678"))

    assert logmeal_client.barcode_calls == ["12345678"]
    assert result.ingredients_resolved == ["Yogur natural"]
    assert result.base.protein_g == 3.5
    assert result.base.calories == pytest.approx(4 * 3.5 + 4 * 4.7 + 9 * 3.3)


def test_invalid_barcode_is_rejected(pipeline: NutritionPipeline) -> None:
    with pytest.raises(InvalidBarcode):
        asyncio.run(pipeline.resolve_barcode("12ab5678"))

    with pytest.raises(InvalidBarcode):
        asyncio.run(pipeline.resolve_barcode("1234567"))


def test_barcode_upstream_failure_surfaces_without_a_name(
    pipeline: NutritionPipeline, logmeal_client: FakeLogMealClient
) -> None:
    logmeal_client.error = CredentialExhausted(2)

    with pytest.raises(CredentialExhausted):
        asyncio.run(pipeline.resolve_barcode("12345678"))


def test_barcode_upstream_failure_uses_reference_when_name_known(
    pipeline: NutritionPipeline,
    openfoodfacts_client: FakeOpenFoodFactsClient,
    logmeal_client: FakeLogMealClient,
) -> None:
    openfoodfacts_client.products["12345678"] = {"product_name": "Arroz blanco"}
    logmeal_client.error = UpstreamFatal(500, "boom")

    result = asyncio.run(pipeline.resolve_barcode("12345678"))

    assert result.ingredients_resolved == ["Arroz blanco"]
    assert result.base.calories == 130


def test_image_uses_meal_level_nutrition_and_caches(
    pipeline: NutritionPipeline, logmeal_client: FakeLogMealClient
) -> None:
    logmeal_client.nutrition = LOGMEAL_MEAL

    first = asyncio.run(pipeline.resolve_image(b"\xff\xd8\xffimage"))
    second = asyncio.run(pipeline.resolve_image(b"\xff\xd8\xffimage"))

    assert first == second
    assert first.ingredients_resolved == ["1 cup rice", "150 g chicken"]
    assert first.base.calories == pytest.approx(160)
    assert first.base.protein_g == pytest.approx(8)
    assert logmeal_client.recognize_calls == 1
    assert logmeal_client.nutrition_calls == ["1234"]


def test_image_falls_back_to_ingredients_when_meal_info_fails(
    pipeline: NutritionPipeline, logmeal_client: FakeLogMealClient
) -> None:
    logmeal_client.error = UpstreamFatal(500, "boom")

    result = asyncio.run(pipeline.resolve_image(b"image"))

    assert result.ingredients_resolved == ["1 cup rice", "150 g chicken"]
    assert result.base.protein_g == pytest.approx(2.7 + 31 * 1.5)


def test_image_failure_surfaces_when_nothing_recognized(
    pipeline: NutritionPipeline, logmeal_client: FakeLogMealClient
) -> None:
    logmeal_client.recognition = {"imageId": 9, "recognition_results": []}
    logmeal_client.error = CredentialExhausted(3)

    with pytest.raises(CredentialExhausted):
        asyncio.run(pipeline.resolve_image(b"other-image"))


def test_concurrent_duplicate_ingredients_share_one_cache_entry(
    pipeline: NutritionPipeline, cache: ResponseCache
) -> None:
    request = NutritionRequest(ingredients=["150 g chicken", "150 g chicken"])

    async def resolve_many():
        return await asyncio.gather(*(pipeline.resolve(request) for _ in range(5)))

    results = asyncio.run(resolve_many())

    assert all(result == results[0] for result in results)
    assert results[0].base.protein_g == pytest.approx(2 * 31 * 1.5)
    assert len(cache) == 1
    cached = cache.get(external_cache_key("ingredient", "150 g chicken"))
    assert isinstance(cached, WeightedProfile)
    assert cached.grams == 150


def test_malformed_barcode_scan_yields_empty_profile(
    pipeline: NutritionPipeline, logmeal_client: FakeLogMealClient
) -> None:
    logmeal_client.error = MalformedPayload("Expected a JSON object")

    result = asyncio.run(pipeline.resolve_barcode("12345678"))

    assert result.base.is_empty()
    assert result.ingredients_resolved == []


def test_unreadable_barcode_scan_uses_reference_for_known_name(
    pipeline: NutritionPipeline,
    openfoodfacts_client: FakeOpenFoodFactsClient,
    logmeal_client: FakeLogMealClient,
) -> None:
    openfoodfacts_client.products["12345678"] = {"product_name": "Aceite de oliva"}
    logmeal_client.error = httpx.ReadError("connection reset")

    result = asyncio.run(pipeline.resolve_barcode("12345678"))

    assert result.ingredients_resolved == ["Aceite de oliva"]
    assert result.base.fat_g == 100


def test_malformed_recognition_yields_empty_profile(
    pipeline: NutritionPipeline, logmeal_client: FakeLogMealClient
) -> None:
    logmeal_client.recognition_error = MalformedPayload("Expected a JSON object")

    result = asyncio.run(pipeline.resolve_image(b"img"))

    assert result.base.is_empty()
    assert result.ingredients_resolved == []
    assert logmeal_client.nutrition_calls == []


def test_malformed_meal_info_without_concepts_yields_empty_profile(
    pipeline: NutritionPipeline, logmeal_client: FakeLogMealClient
) -> None:
    logmeal_client.recognition = {"imageId": 9, "recognition_results": []}
    logmeal_client.error = MalformedPayload("Expected a JSON object")

    result = asyncio.run(pipeline.resolve_image(b"other-image"))

    assert result.base.is_empty()
    assert logmeal_client.nutrition_calls == ["9"]
