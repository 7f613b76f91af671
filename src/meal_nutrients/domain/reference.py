"""Static per-100 g reference profiles for common foods."""

import re
from dataclasses import dataclass

from meal_nutrients.domain.nutrition import NutrientProfile


@dataclass(frozen=True)
class ReferenceFood:
    """Reference profile with the names it answers to."""

    name: str
    pattern: re.Pattern[str]
    profile: NutrientProfile


def _food(name: str, names: str, **values: float) -> ReferenceFood:
    return ReferenceFood(
        name=name,
        pattern=re.compile(rf"\b(?:{names})\b", re.IGNORECASE),
        profile=NutrientProfile(**values),
    )


REFERENCE_FOODS: tuple[ReferenceFood, ...] = (
    _food(
        "arepa", r"arepas?",
        calories=220, protein_g=4.5, carbs_g=40, fat_g=4.5, fiber_g=2.5,
        sodium_mg=300, potassium_mg=110, calcium_mg=8, iron_mg=1.0,
    ),
    _food(
        "pizza", r"pizza",
        calories=266, protein_g=11, carbs_g=33, fat_g=10, fiber_g=2.3,
        sugars_g=3.6, sodium_mg=598, potassium_mg=172, calcium_mg=188,
        iron_mg=2.4,
    ),
    _food(
        "egg", r"eggs?|huevos?",
        calories=143, protein_g=12.6, carbs_g=0.7, fat_g=9.5, fiber_g=0,
        sugars_g=0.4, sodium_mg=142, potassium_mg=138, calcium_mg=56,
        iron_mg=1.75, vitamin_d_iu=82,
    ),
    _food(
        "bacon", r"bacon|tocino|tocineta",
        calories=541, protein_g=37, carbs_g=1.4, fat_g=42, fiber_g=0,
        sugars_g=0, sodium_mg=1717, potassium_mg=565, calcium_mg=11,
        iron_mg=1.4,
    ),
    _food(
        "rice", r"rice|arroz|pilaf|risotto",
        calories=130, protein_g=2.7, carbs_g=28.2, fat_g=0.3, fiber_g=0.4,
        sugars_g=0.1, sodium_mg=1, potassium_mg=35, calcium_mg=10, iron_mg=1.2,
        vitamin_d_iu=0,
    ),
    _food(
        "beef", r"beef|steak|carne(?: de res)?|res|bistec",
        calories=250, protein_g=26, carbs_g=0, fat_g=15, fiber_g=0, sugars_g=0,
        sodium_mg=72, potassium_mg=318, calcium_mg=18, iron_mg=2.6,
    ),
    _food(
        "chicken", r"chicken|pollo",
        calories=165, protein_g=31, carbs_g=0, fat_g=3.6, fiber_g=0, sugars_g=0,
        sodium_mg=74, potassium_mg=256, calcium_mg=15, iron_mg=1.0,
        vitamin_d_iu=4,
    ),
    _food(
        "bread", r"bread|toast|pan|bolillo",
        calories=265, protein_g=9, carbs_g=49, fat_g=3.2, fiber_g=2.7,
        sugars_g=5, sodium_mg=491, potassium_mg=115, calcium_mg=151,
        iron_mg=3.6,
    ),
    _food(
        "cheese", r"cheese|cheddar|mozzarella|parmesan|queso",
        calories=403, protein_g=25, carbs_g=1.3, fat_g=33, fiber_g=0,
        sugars_g=0.5, sodium_mg=621, potassium_mg=98, calcium_mg=721,
        iron_mg=0.7, vitamin_d_iu=24,
    ),
    _food(
        "pasta", r"pasta|spaghetti|noodles?|fideos?|espagueti",
        calories=158, protein_g=5.8, carbs_g=31, fat_g=0.9, fiber_g=1.8,
        sugars_g=0.6, sodium_mg=1, potassium_mg=44, calcium_mg=7, iron_mg=1.3,
    ),
    _food(
        "potato", r"potato(?:es)?|papas?|patatas?",
        calories=87, protein_g=1.9, carbs_g=20, fat_g=0.1, fiber_g=1.8,
        sugars_g=0.9, sodium_mg=4, potassium_mg=379, calcium_mg=5, iron_mg=0.3,
    ),
    _food(
        "salmon", r"salmon|salm[oó]n",
        calories=206, protein_g=22, carbs_g=0, fat_g=12, fiber_g=0, sugars_g=0,
        sodium_mg=61, potassium_mg=384, calcium_mg=15, iron_mg=0.3,
        vitamin_d_iu=526,
    ),
    _food(
        "tuna", r"tuna|at[uú]n",
        calories=116, protein_g=25.5, carbs_g=0, fat_g=0.8, fiber_g=0,
        sugars_g=0, sodium_mg=247, potassium_mg=237, calcium_mg=11,
        iron_mg=1.5, vitamin_d_iu=47,
    ),
    _food(
        "pork", r"pork|cerdo|puerco",
        calories=242, protein_g=27, carbs_g=0, fat_g=14, fiber_g=0, sugars_g=0,
        sodium_mg=62, potassium_mg=423, calcium_mg=19, iron_mg=0.9,
    ),
    _food(
        "ham", r"ham|jam[oó]n",
        calories=145, protein_g=21, carbs_g=1.5, fat_g=5.5, fiber_g=0,
        sugars_g=0, sodium_mg=1200, potassium_mg=287, calcium_mg=8, iron_mg=1.0,
    ),
    _food(
        "tortilla", r"tortillas?",
        calories=218, protein_g=5.7, carbs_g=44.6, fat_g=2.9, fiber_g=6.3,
        sugars_g=0.9, sodium_mg=45, potassium_mg=186, calcium_mg=81,
        iron_mg=1.2,
    ),
    _food(
        "beans", r"beans?|frijoles?|frijol|habichuelas?",
        calories=132, protein_g=8.9, carbs_g=23.7, fat_g=0.5, fiber_g=8.7,
        sugars_g=0.3, sodium_mg=1, potassium_mg=355, calcium_mg=27, iron_mg=2.1,
    ),
    _food(
        "lentils", r"lentils?|lentejas?",
        calories=116, protein_g=9, carbs_g=20, fat_g=0.4, fiber_g=7.9,
        sugars_g=1.8, sodium_mg=2, potassium_mg=369, calcium_mg=19, iron_mg=3.3,
    ),
    _food(
        "broccoli", r"broccoli|br[oó]coli",
        calories=35, protein_g=2.8, carbs_g=6.6, fat_g=0.4, fiber_g=2.6,
        sugars_g=1.7, sodium_mg=33, potassium_mg=316, calcium_mg=47,
        iron_mg=0.7,
    ),
    _food(
        "tomato", r"tomato(?:es)?|tomates?|jitomates?",
        calories=18, protein_g=0.9, carbs_g=3.9, fat_g=0.2, fiber_g=1.2,
        sugars_g=2.6, sodium_mg=5, potassium_mg=237, calcium_mg=10, iron_mg=0.3,
    ),
    _food(
        "avocado", r"avocados?|aguacates?|palta",
        calories=160, protein_g=2, carbs_g=8.5, fat_g=14.7, fiber_g=6.7,
        sugars_g=0.7, sodium_mg=7, potassium_mg=485, calcium_mg=12, iron_mg=0.6,
    ),
    _food(
        "yogurt", r"yogh?urt|yogur",
        calories=61, protein_g=3.5, carbs_g=4.7, fat_g=3.3, fiber_g=0,
        sugars_g=4.7, sodium_mg=46, potassium_mg=155, calcium_mg=121,
        iron_mg=0.1, vitamin_d_iu=2,
    ),
    _food(
        "milk", r"milk|leche",
        calories=61, protein_g=3.2, carbs_g=4.8, fat_g=3.3, fiber_g=0,
        sugars_g=5.1, sodium_mg=43, potassium_mg=132, calcium_mg=113,
        iron_mg=0.03, vitamin_d_iu=40,
    ),
    _food(
        "apple", r"apples?|manzanas?",
        calories=52, protein_g=0.3, carbs_g=13.8, fat_g=0.2, fiber_g=2.4,
        sugars_g=10.4, sodium_mg=1, potassium_mg=107, calcium_mg=6, iron_mg=0.1,
    ),
    _food(
        "banana", r"bananas?|pl[aá]tanos?|guineos?",
        calories=89, protein_g=1.1, carbs_g=22.8, fat_g=0.3, fiber_g=2.6,
        sugars_g=12.2, sodium_mg=1, potassium_mg=358, calcium_mg=5,
        iron_mg=0.3,
    ),
    _food(
        "oatmeal", r"oatmeal|oats|porridge|avena",
        calories=71, protein_g=2.5, carbs_g=12, fat_g=1.5, fiber_g=1.7,
        sugars_g=0.3, sodium_mg=49, potassium_mg=70, calcium_mg=9, iron_mg=0.9,
    ),
    _food(
        "oil", r"oils?|aceites?",
        calories=884, protein_g=0, carbs_g=0, fat_g=100, fiber_g=0, sugars_g=0,
        sodium_mg=2, potassium_mg=1, calcium_mg=1, iron_mg=0.6,
    ),
    _food(
        "butter", r"butter|mantequilla",
        calories=717, protein_g=0.9, carbs_g=0.1, fat_g=81.1, fiber_g=0,
        sugars_g=0.1, sodium_mg=643, potassium_mg=24, calcium_mg=24,
        iron_mg=0.02, vitamin_d_iu=60,
    ),
    _food(
        "sugar", r"sugar|az[uú]car",
        calories=387, protein_g=0, carbs_g=100, fat_g=0, fiber_g=0,
        sugars_g=100, sodium_mg=1, potassium_mg=2, calcium_mg=1, iron_mg=0.05,
    ),
)


def lookup_reference(name: str | None) -> NutrientProfile | None:
    """Return the first reference profile whose names match `name`."""
    if not name:
        return None
    for food in REFERENCE_FOODS:
        if food.pattern.search(name):
            return food.profile
    return None
