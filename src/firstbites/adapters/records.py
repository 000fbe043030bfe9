"""Shared row -> FeedingEvent conversion for the snapshot adapters."""

from __future__ import annotations

from typing import Any, Optional

from firstbites.core.dates import parse_timestamp
from firstbites.core.models import FeedingEvent, FeedingResponse, MealSlot, ServingMethod

# camelCase export names -> model field names
FIELD_ALIASES = {
    "id": "event_id",
    "eventId": "event_id",
    "babyId": "subject_id",
    "subjectId": "subject_id",
    "baby_id": "subject_id",
    "foodId": "food_id",
    "customFoodName": "custom_food_name",
    "loggedDate": "logged_date",
    "mealTime": "meal_slot",
    "mealSlot": "meal_slot",
    "meal_time": "meal_slot",
    "servingMethods": "serving_methods",
    "servingMethod": "serving_method",
    "isFirstTime": "is_first_time",
    "createdAt": "created_at",
}

TRUE_VALUES = {"1", "true", "yes", "y"}


def normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        if key is None:
            continue
        name = FIELD_ALIASES.get(key, key)
        normalized[name] = value
    return normalized


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUE_VALUES


def _serving_methods(data: dict[str, Any]) -> tuple[ServingMethod, ...]:
    raw = data.get("serving_methods")
    if isinstance(raw, str):
        raw = raw.replace(";", ",").split(",")
    values = list(raw or [])
    # Older exports carry a single primary method alongside (or instead of) the list.
    primary = data.get("serving_method")
    if primary:
        values.insert(0, primary)

    methods: list[ServingMethod] = []
    for value in values:
        text = str(value).strip().lower()
        if not text:
            continue
        method = ServingMethod(text)
        if method not in methods:
            methods.append(method)
    return tuple(methods)


def event_from_dict(data: dict[str, Any], default_subject_id: Optional[str] = None) -> FeedingEvent:
    """
    Build a FeedingEvent from an export row.

    Raises:
        ValueError: If the row lacks an id or subject, or an enum value is unknown
    """
    row = normalize_keys(data)
    event_id = _optional_str(row.get("event_id"))
    subject_id = _optional_str(row.get("subject_id")) or default_subject_id
    if not event_id:
        raise ValueError("event row has no id")
    if not subject_id:
        raise ValueError(f"event {event_id} has no subject id")

    meal_slot = _optional_str(row.get("meal_slot"))
    response = _optional_str(row.get("response")) or FeedingResponse.MEH.value
    return FeedingEvent(
        event_id=event_id,
        subject_id=subject_id,
        food_id=_optional_str(row.get("food_id")),
        custom_food_name=_optional_str(row.get("custom_food_name")),
        logged_date=str(row.get("logged_date") or "").strip(),
        meal_slot=MealSlot(meal_slot.lower()) if meal_slot else None,
        serving_methods=_serving_methods(row),
        response=FeedingResponse(response.lower()),
        is_first_time=_as_bool(row.get("is_first_time")),
        notes=_optional_str(row.get("notes")),
        created_at=parse_timestamp(row.get("created_at")),
    )
