"""Confidence-gated mapping from vision concepts to ingredients."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from meal_nutrients.domain.nutrition import IngredientSpec
from meal_nutrients.domain.vision import ConceptCandidate

_logger = logging.getLogger(__name__)

MAX_INGREDIENTS = 8
PROTEIN_RESCUE_FLOOR = 0.05


class FoodCategory(StrEnum):
    GRAIN = "grain"
    PROTEIN = "protein"
    VEGETABLE = "vegetable"
    DAIRY = "dairy"
    DISH = "dish"


@dataclass(frozen=True)
class CategoryRule:
    """Confidence threshold and default serving for a food category."""

    threshold: float
    quantity_text: str = ""
    grams: float | None = None


CATEGORY_RULES: dict[FoodCategory, CategoryRule] = {
    FoodCategory.GRAIN: CategoryRule(threshold=0.15, quantity_text="1 cup"),
    FoodCategory.PROTEIN: CategoryRule(
        threshold=0.08, quantity_text="150 g", grams=150
    ),
    FoodCategory.VEGETABLE: CategoryRule(threshold=0.12),
    FoodCategory.DAIRY: CategoryRule(threshold=0.12, quantity_text="30 g", grams=30),
    FoodCategory.DISH: CategoryRule(threshold=0.20),
}

FOOD_CATEGORIES: dict[str, FoodCategory] = {
    **dict.fromkeys(
        (
            "rice", "brown rice", "white rice", "pilaf", "risotto", "quinoa",
            "couscous", "oatmeal", "pasta", "noodles", "bread", "tortilla",
        ),
        FoodCategory.GRAIN,
    ),
    **dict.fromkeys(
        (
            "chicken", "beef", "pork", "turkey", "lamb", "bacon", "ham", "fish",
            "salmon", "tuna", "shrimp", "egg",
        ),
        FoodCategory.PROTEIN,
    ),
    **dict.fromkeys(
        (
            "beans", "lentils", "chickpea", "pea", "tomato", "onion", "garlic",
            "pepper", "lettuce", "spinach", "carrot", "corn", "cauliflower",
            "broccoli", "cabbage", "mushroom", "zucchini", "potato", "avocado",
        ),
        FoodCategory.VEGETABLE,
    ),
    # Fats and condiments share the vegetable threshold and a bare quantity.
    **dict.fromkeys(
        ("oil", "olive oil", "butter", "salt", "sugar"),
        FoodCategory.VEGETABLE,
    ),
    **dict.fromkeys(
        ("cheese", "mozzarella", "parmesan", "blue cheese", "yogurt"),
        FoodCategory.DAIRY,
    ),
    **dict.fromkeys(
        (
            "pizza", "burger", "sandwich", "soup", "porridge", "stew", "salad",
            "arepa", "taco", "burrito",
        ),
        FoodCategory.DISH,
    ),
}

SYNONYMS: dict[str, str] = {
    "meat": "beef",
    "eggs": "egg",
    "bell pepper": "pepper",
    "arroz": "rice",
    "pan": "bread",
    "pollo": "chicken",
    "carne": "beef",
    "cerdo": "pork",
    "jamón": "ham",
    "jamon": "ham",
    "pescado": "fish",
    "huevo": "egg",
    "huevos": "egg",
    "frijoles": "beans",
    "queso": "cheese",
    "papa": "potato",
    "tomate": "tomato",
    "aguacate": "avocado",
    "arepas": "arepa",
    "aceite": "oil",
    "aceite de oliva": "olive oil",
    "mantequilla": "butter",
    "sal": "salt",
    "azúcar": "sugar",
    "azucar": "sugar",
}

QUANTITY_OVERRIDES: dict[str, tuple[str, float | None]] = {
    "bread": ("1 slice", None),
    "tortilla": ("1 slice", None),
    "egg": ("1 large", 50),
}


def fold_name(name: str) -> str:
    """Lowercase, trim and map a concept name to its canonical food name."""
    cleaned = " ".join(name.lower().split())
    return SYNONYMS.get(cleaned, cleaned)


@dataclass(frozen=True)
class _Candidate:
    name: str
    confidence: float
    category: FoodCategory

    @property
    def passes(self) -> bool:
        return self.confidence >= CATEGORY_RULES[self.category].threshold


@dataclass
class ConceptGate:
    """Turns raw concepts into ingredient specs using per-category thresholds."""

    max_ingredients: int = MAX_INGREDIENTS
    protein_rescue_floor: float = PROTEIN_RESCUE_FLOOR
    categories: dict[str, FoodCategory] = field(
        default_factory=lambda: dict(FOOD_CATEGORIES)
    )

    def gate(self, concepts: list[ConceptCandidate]) -> list[IngredientSpec]:
        """Return up to `max_ingredients` specs, most confident first."""
        candidates = self._candidates(concepts)
        accepted = [candidate for candidate in candidates if candidate.passes]

        has_grain = any(c.category is FoodCategory.GRAIN for c in accepted)
        has_protein = any(c.category is FoodCategory.PROTEIN for c in accepted)
        if has_grain and not has_protein:
            rescued = self._rescue_protein(candidates)
            if rescued is not None:
                _logger.info(
                    "Rescued protein concept %s (confidence=%.2f)",
                    rescued.name,
                    rescued.confidence,
                )
                accepted.append(rescued)

        accepted.sort(key=lambda candidate: candidate.confidence, reverse=True)
        return [_to_spec(c) for c in accepted[: self.max_ingredients]]

    def _candidates(self, concepts: list[ConceptCandidate]) -> list[_Candidate]:
        """Fold synonyms and keep the best confidence per known food."""
        best: dict[str, _Candidate] = {}
        for concept in concepts:
            name = fold_name(concept.name)
            category = self.categories.get(name)
            if category is None:
                continue
            current = best.get(name)
            if current is None or concept.confidence > current.confidence:
                best[name] = _Candidate(name, concept.confidence, category)
        return list(best.values())

    def _rescue_protein(self, candidates: list[_Candidate]) -> _Candidate | None:
        proteins = [
            c
            for c in candidates
            if c.category is FoodCategory.PROTEIN
            and c.confidence >= self.protein_rescue_floor
        ]
        return max(proteins, key=lambda c: c.confidence, default=None)


def _to_spec(candidate: _Candidate) -> IngredientSpec:
    rule = CATEGORY_RULES[candidate.category]
    quantity_text, grams = QUANTITY_OVERRIDES.get(
        candidate.name, (rule.quantity_text, rule.grams)
    )
    return IngredientSpec(name=candidate.name, quantity_text=quantity_text, grams=grams)
