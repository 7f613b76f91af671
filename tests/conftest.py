"""Shared test fixtures."""

from dataclasses import dataclass, field

import pytest

from meal_nutrients.adapters.fdc_client import FdcClient
from meal_nutrients.adapters.logmeal_client import LogMealClient
from meal_nutrients.adapters.nutritionix_client import NutritionixClient
from meal_nutrients.adapters.openfoodfacts_client import OpenFoodFactsClient
from meal_nutrients.config import Settings
from meal_nutrients.containers import AppContainer
from meal_nutrients.services.cache import ResponseCache
from meal_nutrients.services.pipeline import NutritionPipeline
from meal_nutrients.services.vision import VisionService

NUTRITIONIX_RICE = {
    "foods": [
        {
            "food_name": "rice",
            "serving_qty": 1,
            "serving_unit": "cup",
            "serving_weight_grams": 158,
            "nf_calories": 205.4,
            "nf_total_fat": 0.44,
            "nf_saturated_fat": 0.12,
            "nf_total_carbohydrate": 44.5,
            "nf_dietary_fiber": 0.6,
            "nf_sugars": 0.08,
            "nf_protein": 4.25,
            "nf_sodium": 1.58,
            "nf_potassium": 55.3,
        }
    ]
}


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: float = 1_700_000_000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class FakeLogMealClient(LogMealClient):
    """Fake LogMeal client returning fixed payloads and recording calls."""

    recognition: dict[str, object] = field(
        default_factory=lambda: {
            "imageId": 1234,
            "segmentation_results": [
                {
                    "recognition_results": [
                        {"name": "rice", "prob": 0.3},
                        {"name": "chicken", "prob": 0.1},
                    ]
                }
            ],
        }
    )
    nutrition: dict[str, object] = field(default_factory=dict)
    barcode: dict[str, object] = field(default_factory=dict)
    error: Exception | None = None
    recognition_error: Exception | None = None
    recognize_calls: int = 0
    nutrition_calls: list[str] = field(default_factory=list)
    barcode_calls: list[str] = field(default_factory=list)

    async def recognize(self, image_bytes: bytes, mime_type: str) -> dict[str, object]:
        self.recognize_calls += 1
        if self.recognition_error is not None:
            raise self.recognition_error
        return self.recognition

    async def nutritional_info(self, image_id: str) -> dict[str, object]:
        self.nutrition_calls.append(image_id)
        if self.error is not None:
            raise self.error
        return self.nutrition

    async def barcode_scan(self, code: str) -> dict[str, object]:
        self.barcode_calls.append(code)
        if self.error is not None:
            raise self.error
        return self.barcode


@dataclass
class FakeNutritionixClient(NutritionixClient):
    """Fake Nutritionix client keyed by query."""

    foods: dict[str, dict[str, object]] = field(default_factory=dict)
    error: Exception | None = None
    queries: list[str] = field(default_factory=list)

    async def natural_nutrients(self, query: str) -> dict[str, object]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.foods.get(query, {"foods": []})


@dataclass
class FakeFdcClient(FdcClient):
    """Fake FDC client returning a fixed chicken record."""

    search_calls: list[str] = field(default_factory=list)
    food_calls: list[int] = field(default_factory=list)

    async def search_foods(self, query: str, page_size: int = 10) -> dict[str, object]:
        self.search_calls.append(query)
        return {"foods": [{"fdcId": 171077, "description": "Chicken, breast"}]}

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        self.food_calls.append(fdc_id)
        return {
            "fdcId": fdc_id,
            "description": "Chicken, breast",
            "foodNutrients": [
                {"nutrient": {"name": "Energy", "unitName": "kcal"}, "amount": 120},
                {"nutrient": {"name": "Protein", "unitName": "g"}, "amount": 22.5},
                {
                    "nutrient": {
                        "name": "Carbohydrate, by difference",
                        "unitName": "g",
                    },
                    "amount": 0,
                },
                {
                    "nutrient": {"name": "Total lipid (fat)", "unitName": "g"},
                    "amount": 2.6,
                },
            ],
        }


@dataclass
class FakeOpenFoodFactsClient(OpenFoodFactsClient):
    """Fake OpenFoodFacts client keyed by barcode."""

    products: dict[str, dict[str, object]] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    async def get_product(self, code: str) -> dict[str, object] | None:
        self.calls.append(code)
        return self.products.get(code)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        logmeal_tokens="logmeal-a,logmeal-b",
        nutritionix_credentials="app-id:app-key",
        fdc_api_key="fdc-key",
    )


@pytest.fixture
def cache() -> ResponseCache:
    return ResponseCache()


@pytest.fixture
def logmeal_client() -> FakeLogMealClient:
    return FakeLogMealClient()


@pytest.fixture
def nutritionix_client() -> FakeNutritionixClient:
    return FakeNutritionixClient()


@pytest.fixture
def openfoodfacts_client() -> FakeOpenFoodFactsClient:
    return FakeOpenFoodFactsClient()


@pytest.fixture
def pipeline(
    cache: ResponseCache,
    logmeal_client: FakeLogMealClient,
    nutritionix_client: FakeNutritionixClient,
    openfoodfacts_client: FakeOpenFoodFactsClient,
) -> NutritionPipeline:
    return NutritionPipeline(
        vision=VisionService(client=logmeal_client, cache=cache),
        cache=cache,
        openfoodfacts=openfoodfacts_client,
        barcode_scanner=logmeal_client,
        nutritionix=nutritionix_client,
    )


@pytest.fixture
def container(
    settings: Settings, cache: ResponseCache, pipeline: NutritionPipeline
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        cache=cache,
        vision_service=pipeline.vision,
        pipeline=pipeline,
        close_resources=close_resources,
    )
