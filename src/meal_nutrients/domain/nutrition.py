"""Nutrition domain models."""

import re
from dataclasses import asdict, dataclass, field

NUTRIENT_FIELDS: tuple[str, ...] = (
    "calories",
    "protein_g",
    "carbs_g",
    "fat_g",
    "fiber_g",
    "sugars_g",
    "sodium_mg",
    "potassium_mg",
    "calcium_mg",
    "iron_mg",
    "vitamin_d_iu",
)

CORE_MACROS: tuple[str, ...] = ("protein_g", "carbs_g", "fat_g")

_QUANTITY_PATTERN = re.compile(
    r"^\s*(?P<amount>\d+(?:[.,]\d+)?)\s*(?P<unit>[a-zA-Z]+)?\s+(?P<name>.+?)\s*$"
)
_GRAMS_PER_UNIT = {
    "g": 1.0,
    "gr": 1.0,
    "gram": 1.0,
    "grams": 1.0,
    "gramos": 1.0,
    "kg": 1000.0,
    "oz": 28.35,
    "lb": 453.6,
    "lbs": 453.6,
}


@dataclass(frozen=True)
class NutrientProfile:
    """Nutrient values per 100 g of food; None means unknown."""

    calories: float | None = None
    protein_g: float | None = None
    carbs_g: float | None = None
    fat_g: float | None = None
    fiber_g: float | None = None
    sugars_g: float | None = None
    sodium_mg: float | None = None
    potassium_mg: float | None = None
    calcium_mg: float | None = None
    iron_mg: float | None = None
    vitamin_d_iu: float | None = None

    @classmethod
    def empty(cls) -> "NutrientProfile":
        """Return a profile with every field unknown."""
        return cls()

    def as_dict(self) -> dict[str, float | None]:
        """Return the profile as a plain dict keyed by field name."""
        return asdict(self)

    def is_empty(self) -> bool:
        """Return True when no field is known."""
        return all(getattr(self, name) is None for name in NUTRIENT_FIELDS)

    def has_core_macros(self) -> bool:
        """Return True when protein, carbs and fat are all known."""
        return all(getattr(self, name) is not None for name in CORE_MACROS)


@dataclass(frozen=True)
class IngredientSpec:
    """Named food item with an estimated quantity."""

    name: str
    quantity_text: str = ""
    grams: float | None = None

    @property
    def query(self) -> str:
        """Free-text query understood by nutrient lookup providers."""
        if self.quantity_text:
            return f"{self.quantity_text} {self.name}"
        return self.name

    @classmethod
    def parse(cls, text: str) -> "IngredientSpec":
        """Parse caller text such as '150 g chicken' or '1 cup rice'."""
        cleaned = " ".join(text.split())
        match = _QUANTITY_PATTERN.match(cleaned)
        if match is None:
            return cls(name=cleaned.lower())
        amount = float(match.group("amount").replace(",", "."))
        unit = (match.group("unit") or "").lower()
        name = match.group("name").lower()
        quantity_text = f"{match.group('amount')} {unit}".strip()
        factor = _GRAMS_PER_UNIT.get(unit)
        grams = round(amount * factor, 1) if factor is not None else None
        return cls(name=name, quantity_text=quantity_text, grams=grams)


@dataclass(frozen=True)
class MealNutrition:
    """Final pipeline output."""

    base: NutrientProfile
    ingredients_resolved: list[str] = field(default_factory=list)
    base_per: str = "100g"

    def to_dict(self) -> dict[str, object]:
        """Serialize to the public response shape."""
        return {
            "base_per": self.base_per,
            "base": self.base.as_dict(),
            "ingredients_resolved": list(self.ingredients_resolved),
        }
