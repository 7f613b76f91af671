"""Sanity pass that clamps, backfills and recomputes energy."""

import logging
from dataclasses import dataclass, replace

from meal_nutrients.domain.nutrition import (
    CORE_MACROS,
    NUTRIENT_FIELDS,
    NutrientProfile,
)

_logger = logging.getLogger(__name__)

ATWATER_PROTEIN = 4.0
ATWATER_CARBS = 4.0
ATWATER_FAT = 9.0

FIELD_BOUNDS: dict[str, tuple[float, float]] = {
    "calories": (0.0, float("inf")),
    "protein_g": (0.0, 100.0),
    "carbs_g": (0.0, 100.0),
    "fat_g": (0.0, 100.0),
    "fiber_g": (0.0, 100.0),
    "sugars_g": (0.0, 100.0),
    "sodium_mg": (0.0, 3500.0),
    "potassium_mg": (0.0, 2500.0),
    "calcium_mg": (0.0, 1500.0),
    "iron_mg": (0.0, 30.0),
    "vitamin_d_iu": (0.0, float("inf")),
}


def atwater_calories(
    protein_g: float | None, carbs_g: float | None, fat_g: float | None
) -> float:
    """Energy in kcal from macros; unknown macros contribute nothing."""
    return round(
        ATWATER_PROTEIN * (protein_g or 0.0)
        + ATWATER_CARBS * (carbs_g or 0.0)
        + ATWATER_FAT * (fat_g or 0.0),
        1,
    )


def clamp(profile: NutrientProfile) -> NutrientProfile:
    """Pull every known field into its physiological range."""
    clamped: dict[str, float] = {}
    for name, (low, high) in FIELD_BOUNDS.items():
        value = getattr(profile, name)
        if value is None:
            continue
        bounded = min(max(value, low), high)
        if bounded != value:
            clamped[name] = bounded
    if clamped:
        _logger.info("Clamped out-of-range fields: %s", sorted(clamped))
        return replace(profile, **clamped)
    return profile


@dataclass(frozen=True)
class SanityReconciler:
    """Clamps ranges, fills gaps from a reference and enforces Atwater energy."""

    max_unsupported_calories: float = 420.0
    calorie_tolerance: float = 0.20

    def reconcile(
        self,
        profile: NutrientProfile,
        reference: NutrientProfile | None = None,
    ) -> NutrientProfile:
        """Return a profile that satisfies the range and energy invariants."""
        result = clamp(profile)
        if reference is not None and self._needs_reference(result):
            result = self._fill_from_reference(result, reference)
        return self._reconcile_energy(result)

    def _needs_reference(self, profile: NutrientProfile) -> bool:
        return (
            not profile.has_core_macros()
            or profile.calories is None
            or self._unsupported_energy(profile)
        )

    def _unsupported_energy(self, profile: NutrientProfile) -> bool:
        return (
            profile.calories is not None
            and profile.calories > self.max_unsupported_calories
            and not profile.has_core_macros()
        )

    def _fill_from_reference(
        self, profile: NutrientProfile, reference: NutrientProfile
    ) -> NutrientProfile:
        filled = {
            name: getattr(reference, name)
            for name in NUTRIENT_FIELDS
            if getattr(profile, name) is None
            and getattr(reference, name) is not None
        }
        if self._unsupported_energy(profile) and reference.calories is not None:
            filled["calories"] = reference.calories
        if not filled:
            return profile
        _logger.info("Filled fields from reference profile: %s", sorted(filled))
        return clamp(replace(profile, **filled))

    def _reconcile_energy(self, profile: NutrientProfile) -> NutrientProfile:
        if profile.has_core_macros():
            computed = atwater_calories(
                profile.protein_g, profile.carbs_g, profile.fat_g
            )
            if profile.calories is None or self._deviates(profile.calories, computed):
                if profile.calories is not None:
                    _logger.info(
                        "Replacing calories %.1f with Atwater estimate %.1f",
                        profile.calories,
                        computed,
                    )
                return replace(profile, calories=computed)
            return profile
        if profile.calories is None and any(
            getattr(profile, name) is not None for name in CORE_MACROS
        ):
            return replace(
                profile,
                calories=atwater_calories(
                    profile.protein_g, profile.carbs_g, profile.fat_g
                ),
            )
        return profile

    def _deviates(self, calories: float, computed: float) -> bool:
        if computed == 0:
            return calories != 0
        return abs(calories - computed) / computed > self.calorie_tolerance
