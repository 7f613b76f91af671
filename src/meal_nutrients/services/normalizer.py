"""Normalization of arbitrarily shaped upstream nutrient payloads.

Providers return nutrients as flat keys (``proteins_100g``), as nested
per-100 g objects (``{"per_100g": {...}}``) or as arrays of labeled records
(``[{"name": "Protein", "amount": 31, "unit": "g"}]``). Field names may be
English or Spanish and units vary. Every known spelling lives in
``FIELD_PATTERNS``; supporting a new provider means adding rows there.
"""

import json
import logging
import math
import re
from collections import deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass, replace
from enum import StrEnum

from meal_nutrients.domain.nutrition import (
    CORE_MACROS,
    NUTRIENT_FIELDS,
    NutrientProfile,
)

_logger = logging.getLogger(__name__)

KJ_TO_KCAL = 0.239
IU_PER_MICROGRAM_VITAMIN_D = 40.0
SODIUM_PER_GRAM_SALT = 0.39


class PayloadShape(StrEnum):
    FLAT = "flat"
    SCOPED = "scoped"
    RECORDS = "records"
    EMPTY = "empty"


class SearchMode(StrEnum):
    FLAT_KEYS = "flat_keys"
    RECORDS = "records"


@dataclass(frozen=True)
class FieldPattern:
    """One spelling of a nutrient name, with an optional unit hint."""

    language: str
    pattern: re.Pattern[str]
    unit: str | None = None
    factor: float = 1.0


def _rows(
    language: str, *patterns: str, unit: str | None = None, factor: float = 1.0
) -> tuple[FieldPattern, ...]:
    return tuple(
        FieldPattern(language, re.compile(pattern), unit, factor)
        for pattern in patterns
    )


FIELD_PATTERNS: dict[str, tuple[FieldPattern, ...]] = {
    "calories": (
        *_rows("en", r"^energy-kcal_100g$", unit="kcal"),
        # OpenFoodFacts reports bare energy in kJ
        *_rows("en", r"^energy[_\s-]?100g$", unit="kj"),
        *_rows(
            "en",
            r"kcal",
            r"^(?:nf_)?calories?(?![a-z])",
            r"^energy(?![a-z])",
        ),
        *_rows("es", r"calor[ií]as?", r"^energ[ií]a(?![a-z])"),
    ),
    "protein_g": (
        *_rows("en", r"^proteins_100g$"),
        *_rows("en", r"^(?:nf_)?proteins?(?![a-z])", r"^prot(?![a-z])"),
        *_rows("es", r"prote[ií]nas?"),
    ),
    "carbs_g": (
        *_rows("en", r"^carbohydrates_100g$"),
        *_rows("en", r"^(?:nf_)?(?:total[_\s-]?)?carb", r"carbohydrate"),
        *_rows("es", r"carbohidratos?", r"hidratos?"),
    ),
    "fat_g": (
        *_rows("en", r"^fat_100g$"),
        *_rows("en", r"^(?:nf_)?(?:total[_\s-]?)?fat(?![a-z])", r"lipid"),
        *_rows("es", r"^(?:total[_\s-]?)?grasas?(?![a-z])", r"l[ií]pidos?"),
    ),
    "fiber_g": (
        *_rows("en", r"^fiber_100g$"),
        *_rows("en", r"(?<![a-z])(?:dietary[_\s-]?)?fib(?:er|re)(?![a-z])"),
        *_rows("es", r"fibra"),
    ),
    "sugars_g": (
        *_rows("en", r"^sugars_100g$"),
        *_rows("en", r"^(?:nf_)?(?:total[_\s-]?)?sugars?(?![a-z])"),
        *_rows("es", r"az[uú]car(?:es)?"),
    ),
    "sodium_mg": (
        *_rows("en", r"^sodium_100g$", unit="g"),
        *_rows("en", r"sodium", r"^na(?![a-z])"),
        *_rows("es", r"sodio"),
        *_rows("en", r"^salt(?![a-z])", unit="g", factor=SODIUM_PER_GRAM_SALT),
        *_rows("es", r"^sal(?![a-z])", unit="g", factor=SODIUM_PER_GRAM_SALT),
    ),
    "potassium_mg": (
        *_rows("en", r"^potassium_100g$", unit="g"),
        *_rows("en", r"potassium", r"^k(?![a-z])"),
        *_rows("es", r"potasio"),
    ),
    "calcium_mg": (
        *_rows("en", r"^calcium_100g$", unit="g"),
        *_rows("en", r"calcium", r"^ca(?![a-z])"),
        *_rows("es", r"calcio"),
    ),
    "iron_mg": (
        *_rows("en", r"^iron_100g$", unit="g"),
        *_rows("en", r"(?<![a-z])iron(?![a-z])", r"^fe(?![a-z])"),
        *_rows("es", r"hierro"),
    ),
    "vitamin_d_iu": (
        *_rows("en", r"^vitamin-d_100g$", unit="g"),
        *_rows("en", r"vitamin[_\s-]?d(?![a-z])"),
        *_rows("es", r"vitamina[_\s-]?d(?![a-z])"),
    ),
}

CANONICAL_UNITS: dict[str, str] = {
    "calories": "kcal",
    "protein_g": "g",
    "carbs_g": "g",
    "fat_g": "g",
    "fiber_g": "g",
    "sugars_g": "g",
    "sodium_mg": "mg",
    "potassium_mg": "mg",
    "calcium_mg": "mg",
    "iron_mg": "mg",
    "vitamin_d_iu": "iu",
}

UNIT_ALIASES: dict[str, str] = {
    "g": "g",
    "gr": "g",
    "grams": "g",
    "gramos": "g",
    "mg": "mg",
    "ug": "ug",
    "mcg": "ug",
    "µg": "ug",
    "μg": "ug",
    "kj": "kj",
    "kcal": "kcal",
    "iu": "iu",
    "ui": "iu",
}

_GRAMS_PER_UNIT = {"g": 1.0, "mg": 1e-3, "ug": 1e-6}

LABEL_KEYS = (
    "name",
    "label",
    "tag",
    "key",
    "nutrient",
    "nutrientname",
    "nombre",
    "id",
)
VALUE_KEYS = (
    "value",
    "amount",
    "quantity",
    "qty",
    "val",
    "per_100g",
    "per100",
    "per100g",
    "valor",
    "cantidad",
    "kcal",
    "g",
    "mg",
)
UNIT_KEYS = ("unit", "unitname", "units", "unit_name", "unidad")

_EXCLUDED = re.compile(
    r"serving|portion|porci[oó]n|satur|trans(?![a-z]*fer)|added|alcohol|"
    r"from[_\s-]?fat|percent|daily|%|(?<![a-z])dv(?![a-z])|unit|label|"
    r"prepared"
)
_PER_100G_SCOPE = re.compile(
    r"^(?:nutrients?|nutriments?|nutrition|valores)?(?:per|por|x)?"
    r"(?:100|hundred|cien)(?:g|gr|grams?|gramos)?$"
)
SERVING_WEIGHT_KEYS = (
    "serving_weight_grams",
    "serving_weight_g",
    "serving_weight",
    "serving_size_g",
    "serving_size",
    "peso_porcion_g",
)
_NUMBER = re.compile(
    r"^\s*[<>~≈]?\s*(-?\d+(?:[.,]\d+)?)\s*([a-zµμ]+)?", re.IGNORECASE
)
_KEY_TOKENS = re.compile(r"[^a-z0-9µμ]+")


@dataclass(frozen=True)
class _Scope:
    data: dict[str, object]
    per_100g: bool


@dataclass(frozen=True)
class NormalizedPayload:
    """Result of normalizing one payload."""

    profile: NutrientProfile | None
    shape: PayloadShape
    serving_grams: float | None = None


def normalize(raw: object) -> NutrientProfile | None:
    """Return a canonical per-100 g profile, or None when nothing usable exists."""
    return NutrientNormalizer().normalize(raw)


class NutrientNormalizer:
    """Locates nutrient values inside upstream payloads of any shape."""

    def __init__(
        self, patterns: dict[str, tuple[FieldPattern, ...]] | None = None
    ) -> None:
        self.patterns = patterns or FIELD_PATTERNS
        self._matchers: dict[
            SearchMode,
            Callable[[dict[str, object], FieldPattern, str], float | None],
        ] = {
            SearchMode.FLAT_KEYS: _match_flat_keys,
            SearchMode.RECORDS: _match_records,
        }

    def normalize(self, raw: object) -> NutrientProfile | None:
        """Return a canonical per-100 g profile, or None when nothing usable exists."""
        return self.normalize_payload(raw).profile

    def normalize_payload(self, raw: object) -> NormalizedPayload:
        """Normalize `raw` and report its shape and serving basis."""
        if isinstance(raw, NutrientProfile):
            return NormalizedPayload(raw, PayloadShape.FLAT)
        payload = _coerce_payload(raw)
        if payload is None:
            return NormalizedPayload(None, PayloadShape.EMPTY)

        shape = detect_shape(payload)
        for scope in _candidate_scopes(payload):
            profile = self._extract(scope.data)
            if not _is_usable(profile):
                continue
            serving_grams = None if scope.per_100g else _serving_weight(scope.data)
            if serving_grams:
                profile = _rescale(profile, 100.0 / serving_grams)
            _logger.debug(
                "Normalized %s payload (per_100g=%s, serving_grams=%s)",
                shape,
                scope.per_100g,
                serving_grams,
            )
            return NormalizedPayload(profile, shape, serving_grams)
        return NormalizedPayload(None, shape)

    def _extract(self, scope: dict[str, object]) -> NutrientProfile:
        values: dict[str, float | None] = {}
        for field_name in NUTRIENT_FIELDS:
            values[field_name] = self._find(scope, field_name)
        return NutrientProfile(**values)

    def _find(self, scope: dict[str, object], field_name: str) -> float | None:
        canonical = CANONICAL_UNITS[field_name]
        for row in self.patterns.get(field_name, ()):
            for mode in SearchMode:
                value = self._matchers[mode](scope, row, canonical)
                if value is not None:
                    return value
        return None


def detect_shape(payload: object) -> PayloadShape:
    """Classify how a payload carries its nutrients."""
    if not isinstance(payload, dict) or not payload:
        return PayloadShape.EMPTY
    per_100g, _ = _discover(payload)
    if per_100g:
        return PayloadShape.SCOPED
    if any(
        _record_label(record) and _record_value(record)
        for record in _walk_records(payload)
    ):
        return PayloadShape.RECORDS
    return PayloadShape.FLAT


def _coerce_payload(raw: object) -> dict[str, object] | None:
    if isinstance(raw, bytes | bytearray | str):
        try:
            raw = json.loads(raw)
        except ValueError:
            _logger.info("Discarding malformed nutrient payload")
            return None
    if isinstance(raw, list):
        return {"items": raw}
    if isinstance(raw, dict):
        return raw
    return None


def _discover(
    payload: dict[str, object],
) -> tuple[list[dict[str, object]], list[dict[str, object]]]:
    """Collect per-100 g sub-objects and list items, breadth first."""
    per_100g: list[dict[str, object]] = []
    items: list[dict[str, object]] = []
    queue: deque[object] = deque([payload])
    while queue:
        node = queue.popleft()
        if isinstance(node, dict):
            for key, value in node.items():
                if _EXCLUDED.search(str(key).lower()):
                    continue
                if isinstance(value, dict) and _PER_100G_SCOPE.match(_compact(key)):
                    per_100g.append(value)
                if isinstance(value, dict | list):
                    queue.append(value)
        elif isinstance(node, list):
            for item in node:
                if isinstance(item, dict):
                    items.append(item)
                if isinstance(item, dict | list):
                    queue.append(item)
    return per_100g, items


def _candidate_scopes(payload: dict[str, object]) -> Iterator[_Scope]:
    """Per-100 g objects first, then the root, then objects inside lists."""
    per_100g, items = _discover(payload)
    seen: set[int] = set()
    for data, is_per_100g in (
        *((scope, True) for scope in per_100g),
        (payload, False),
        *((item, False) for item in items),
    ):
        if id(data) in seen:
            continue
        seen.add(id(data))
        yield _Scope(data=data, per_100g=is_per_100g)


def _walk_records(node: object) -> Iterator[dict[str, object]]:
    """Yield nested dicts below `node` (list items and dict values), breadth first."""
    queue: deque[object] = deque([node])
    while queue:
        current = queue.popleft()
        if isinstance(current, dict):
            for key, value in current.items():
                if not isinstance(value, dict | list) or _EXCLUDED.search(
                    str(key).lower()
                ):
                    continue
                if isinstance(value, dict):
                    yield value
                queue.append(value)
        elif isinstance(current, list):
            for item in current:
                if isinstance(item, dict):
                    yield item
                if isinstance(item, dict | list):
                    queue.append(item)


def _iter_flat(scope: dict[str, object]) -> Iterator[tuple[str, object]]:
    """Yield keyed values depth first through nested dicts, not into lists."""
    for key, value in scope.items():
        lowered = str(key).lower()
        if _EXCLUDED.search(lowered):
            continue
        if isinstance(value, dict):
            if _record_value(value) is not None:
                yield lowered, value
            yield from _iter_flat(value)
        elif not isinstance(value, list):
            yield lowered, value


def _match_flat_keys(
    scope: dict[str, object], row: FieldPattern, canonical: str
) -> float | None:
    for key, value in _iter_flat(scope):
        if not row.pattern.search(key):
            continue
        if isinstance(value, dict):
            number, value_unit = _record_value(value) or (None, None)
            record_unit = _record_unit(value)
        else:
            number, value_unit = _parse_number(value)
            record_unit = None
        if number is None:
            continue
        unit = value_unit or record_unit or _unit_from_key(key) or row.unit
        converted = _convert(number * row.factor, unit, canonical)
        if converted is not None:
            return converted
    return None


def _match_records(
    scope: dict[str, object], row: FieldPattern, canonical: str
) -> float | None:
    for record in _walk_records(scope):
        label = _record_label(record)
        if not label or _EXCLUDED.search(label) or not row.pattern.search(label):
            continue
        found = _record_value(record)
        if found is None:
            continue
        number, value_unit = found
        unit = value_unit or _record_unit(record) or row.unit
        converted = _convert(number * row.factor, unit, canonical)
        if converted is not None:
            return converted
    return None


def _record_label(record: dict[str, object]) -> str | None:
    lowered = {str(key).lower(): value for key, value in record.items()}
    for key in LABEL_KEYS:
        value = lowered.get(key)
        if isinstance(value, dict):
            value = value.get("name")
        if isinstance(value, str) and value.strip():
            return value.strip().lower()
    return None


def _record_value(record: dict[str, object]) -> tuple[float, str | None] | None:
    lowered = {str(key).lower(): value for key, value in record.items()}
    for key in VALUE_KEYS:
        number, unit = _parse_number(lowered.get(key))
        if number is not None:
            if unit is None and key in UNIT_ALIASES:
                unit = UNIT_ALIASES[key]
            return number, unit
    return None


def _record_unit(record: dict[str, object]) -> str | None:
    lowered = {str(key).lower(): value for key, value in record.items()}
    nutrient = lowered.get("nutrient")
    candidates = [lowered.get(key) for key in UNIT_KEYS]
    if isinstance(nutrient, dict):
        candidates.extend(nutrient.get(key) for key in ("unitName", "unit"))
    for candidate in candidates:
        if isinstance(candidate, str):
            unit = UNIT_ALIASES.get(candidate.strip().lower())
            if unit:
                return unit
    return None


def _parse_number(value: object) -> tuple[float | None, str | None]:
    if isinstance(value, bool):
        return None, None
    if isinstance(value, int | float):
        number = float(value)
        return (number, None) if math.isfinite(number) else (None, None)
    if isinstance(value, str):
        match = _NUMBER.match(value)
        if match is None:
            return None, None
        number = float(match.group(1).replace(",", "."))
        unit = UNIT_ALIASES.get((match.group(2) or "").lower())
        return number, unit
    return None, None


def _unit_from_key(key: str) -> str | None:
    for token in _KEY_TOKENS.split(key):
        if token in UNIT_ALIASES:
            return UNIT_ALIASES[token]
    return None


def _convert(value: float, unit: str | None, canonical: str) -> float | None:
    """Convert `value` from `unit` to `canonical`; None when incompatible."""
    if unit is None or unit == canonical:
        return value
    if canonical in _GRAMS_PER_UNIT and unit in _GRAMS_PER_UNIT:
        return round(value * _GRAMS_PER_UNIT[unit] / _GRAMS_PER_UNIT[canonical], 4)
    if canonical == "kcal" and unit == "kj":
        return round(value * KJ_TO_KCAL, 1)
    if canonical == "iu" and unit in _GRAMS_PER_UNIT:
        micrograms = value * _GRAMS_PER_UNIT[unit] / _GRAMS_PER_UNIT["ug"]
        return round(micrograms * IU_PER_MICROGRAM_VITAMIN_D, 2)
    return None


def _compact(key: object) -> str:
    return re.sub(r"[^a-z0-9]", "", str(key).lower())


def _serving_weight(scope: dict[str, object]) -> float | None:
    for key, value in scope.items():
        if str(key).lower() in SERVING_WEIGHT_KEYS:
            number, _ = _parse_number(value)
            if number is not None and number > 0:
                return number
    return None


def _rescale(profile: NutrientProfile, factor: float) -> NutrientProfile:
    scaled = {
        name: round(value * factor, 4)
        for name, value in profile.as_dict().items()
        if value is not None
    }
    return replace(profile, **scaled)


def _is_usable(profile: NutrientProfile) -> bool:
    """A scope counts only if it yields energy or a core macro."""
    return profile.calories is not None or any(
        getattr(profile, name) is not None for name in CORE_MACROS
    )
