"""Combination of ingredient profiles into a meal profile."""

from collections.abc import Iterable
from dataclasses import dataclass

from meal_nutrients.domain.nutrition import NUTRIENT_FIELDS, NutrientProfile

REFERENCE_GRAMS = 100.0


@dataclass(frozen=True)
class WeightedProfile:
    """Per-100 g profile of one ingredient and its estimated mass."""

    profile: NutrientProfile
    grams: float | None = None

    @property
    def scale(self) -> float:
        if self.grams is None or self.grams <= 0:
            return 1.0
        return self.grams / REFERENCE_GRAMS


def aggregate(ingredients: Iterable[WeightedProfile]) -> NutrientProfile:
    """Sum mass-scaled ingredient profiles.

    A field missing from some ingredients counts as zero for those, but a
    field missing from every ingredient stays unknown.
    """
    totals: dict[str, float | None] = dict.fromkeys(NUTRIENT_FIELDS)
    for ingredient in ingredients:
        for name in NUTRIENT_FIELDS:
            value = getattr(ingredient.profile, name)
            if value is None:
                continue
            totals[name] = (totals[name] or 0.0) + value * ingredient.scale
    return NutrientProfile(**totals)
