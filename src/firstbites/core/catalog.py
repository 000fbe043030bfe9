"""Static reference catalogs: foods and achievement criteria."""

from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Iterable, Iterator

import yaml
from rapidfuzz import fuzz

from firstbites.core.errors import CatalogError
from firstbites.core.models import (
    AllergenType,
    Criterion,
    CriterionKind,
    Food,
    FoodCategory,
    IronContent,
)

logger = logging.getLogger(__name__)


def _load_document(path: Path | None, resource_stem: str) -> dict[str, Any]:
    """Load <stem>.yaml (or .json) from a directory, or from the bundled templates."""
    if path:
        for suffix in (".yaml", ".yml", ".json"):
            file_path = path / f"{resource_stem}{suffix}"
            if file_path.exists():
                with file_path.open("r", encoding="utf-8") as handle:
                    data = json.load(handle) if suffix == ".json" else yaml.safe_load(handle)
                return _require_mapping(data, str(file_path))
        return {}

    try:
        resource = resources.files("firstbites.templates").joinpath(f"{resource_stem}.yaml")
        with resource.open("r", encoding="utf-8") as handle:
            return _require_mapping(yaml.safe_load(handle), resource_stem)
    except FileNotFoundError:
        return {}


def _require_mapping(data: Any, source: str) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise CatalogError("Catalog document must be a mapping", source=source)
    return data


def _enum_or_default(enum_cls: Any, value: Any, default: Any, context: str) -> Any:
    if value is None or value == "":
        return default
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        logger.warning("Unknown %s value %r; using %r", context, value, default)
        return default


def food_from_dict(entry: dict[str, Any]) -> Food | None:
    food_id = entry.get("id") or entry.get("food_id")
    if not food_id:
        return None
    allergen_type = _enum_or_default(AllergenType, entry.get("allergen_type"), None, "allergen_type")
    return Food(
        food_id=str(food_id),
        name=str(entry.get("name") or food_id),
        category=_enum_or_default(FoodCategory, entry.get("category"), FoodCategory.OTHER, "category"),
        is_allergen=bool(entry.get("is_allergen", False)),
        allergen_type=allergen_type,
        iron_content=_enum_or_default(
            IronContent, entry.get("iron_content"), IronContent.NONE, "iron_content"
        ),
        cultural_tags=tuple(str(t) for t in entry.get("cultural_tags") or () if t),
        color=entry.get("color") or None,
        omega_3_rich=bool(entry.get("omega_3_rich", False)),
        vitamin_c_rich=bool(entry.get("vitamin_c_rich", False)),
    )


def criterion_from_dict(entry: dict[str, Any]) -> Criterion | None:
    criterion_id = entry.get("id") or entry.get("slug")
    if not criterion_id:
        return None
    criteria = entry.get("criteria") or {}
    if not isinstance(criteria, dict):
        criteria = {}
    raw_type = str(criteria.get("type") or entry.get("type") or "")
    kind = CriterionKind.from_tag(raw_type)
    if kind == CriterionKind.UNSUPPORTED:
        logger.warning("Criterion %r has unsupported type %r", criterion_id, raw_type)
    params = {key: value for key, value in criteria.items() if key != "type"}
    return Criterion(
        criterion_id=str(criterion_id),
        kind=kind,
        raw_type=raw_type,
        params=params,
        name=str(entry.get("name") or ""),
        description=str(entry.get("description") or ""),
        emoji=str(entry.get("emoji") or ""),
        celebration_message=str(entry.get("celebration_message") or ""),
    )


class FoodCatalog:
    """
    Lookup table of foods keyed by id.

    Foods missing from the catalog (deleted or renamed entries) simply resolve
    to None; callers skip them for catalog-dependent computations.
    """

    def __init__(self, foods: Iterable[Food] = ()) -> None:
        self._foods: dict[str, Food] = {}
        for food in foods:
            self._foods[food.food_id] = food

    @classmethod
    def from_dicts(cls, entries: Iterable[dict[str, Any]]) -> FoodCatalog:
        foods = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            food = food_from_dict(entry)
            if food is not None:
                foods.append(food)
        return cls(foods)

    @classmethod
    def load(cls, templates_path: str | Path | None = None) -> FoodCatalog:
        base_path = Path(templates_path) if templates_path else None
        data = _load_document(base_path, "foods")
        return cls.from_dicts(data.get("foods", []) or [])

    def get(self, food_id: str | None) -> Food | None:
        if not food_id:
            return None
        return self._foods.get(food_id)

    def __contains__(self, food_id: object) -> bool:
        return food_id in self._foods

    def __iter__(self) -> Iterator[Food]:
        return iter(self._foods.values())

    def __len__(self) -> int:
        return len(self._foods)

    def allergen_foods(self, allergen_type: AllergenType) -> list[Food]:
        return [food for food in self._foods.values() if food.allergen_type == allergen_type]

    def search(self, query: str, limit: int = 10, threshold: int = 60) -> list[tuple[Food, float]]:
        """
        Fuzzy-match foods by name.

        Args:
            query: Free-text search string
            limit: Maximum number of matches returned
            threshold: Minimum rapidfuzz WRatio score (0-100)

        Returns:
            (food, score) pairs, best match first
        """
        query = " ".join((query or "").lower().split())
        if not query:
            return []
        scored: list[tuple[Food, float]] = []
        for food in self._foods.values():
            score = fuzz.WRatio(query, food.name.lower())
            if score >= threshold:
                scored.append((food, score))
        scored.sort(key=lambda pair: (-pair[1], pair[0].name))
        return scored[:limit]


class CriterionCatalog:
    """Ordered badge catalog. Catalog order decides which award is granted first."""

    def __init__(self, criteria: Iterable[Criterion] = ()) -> None:
        self._criteria: list[Criterion] = []
        seen: set[str] = set()
        for criterion in criteria:
            if criterion.criterion_id in seen:
                raise CatalogError(f"Duplicate criterion id '{criterion.criterion_id}'")
            seen.add(criterion.criterion_id)
            self._criteria.append(criterion)

    @classmethod
    def from_dicts(cls, entries: Iterable[dict[str, Any]]) -> CriterionCatalog:
        criteria = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            criterion = criterion_from_dict(entry)
            if criterion is not None:
                criteria.append(criterion)
        return cls(criteria)

    @classmethod
    def load(cls, templates_path: str | Path | None = None) -> CriterionCatalog:
        base_path = Path(templates_path) if templates_path else None
        data = _load_document(base_path, "badges")
        return cls.from_dicts(data.get("badges", []) or [])

    def get(self, criterion_id: str) -> Criterion | None:
        return next((c for c in self._criteria if c.criterion_id == criterion_id), None)

    def __iter__(self) -> Iterator[Criterion]:
        return iter(self._criteria)

    def __len__(self) -> int:
        return len(self._criteria)
