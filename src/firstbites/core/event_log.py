"""Event-log lifecycle helpers: creating events and the restricted edit path."""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional, Sequence

from firstbites.core.errors import EventEditError
from firstbites.core.models import (
    FeedingEvent,
    FeedingResponse,
    MealSlot,
    ServingMethod,
    normalize_custom_name,
)

EDITABLE_FIELDS = frozenset({"response", "serving_methods", "meal_slot", "notes"})


def events_for_subject(events: Iterable[FeedingEvent], subject_id: str) -> tuple[FeedingEvent, ...]:
    return tuple(event for event in events if event.subject_id == subject_id)


def is_first_time_food(
    events: Iterable[FeedingEvent],
    subject_id: str,
    food_id: Optional[str] = None,
    custom_food_name: Optional[str] = None,
) -> bool:
    """
    True iff no existing event for the subject references the same food.

    Foods match by id, or by custom name ignoring case and surrounding
    whitespace. Without any food reference the answer is False.
    """
    if not food_id and not (custom_food_name and custom_food_name.strip()):
        return False
    custom = normalize_custom_name(custom_food_name) if custom_food_name else None
    for event in events:
        if event.subject_id != subject_id:
            continue
        if food_id and event.food_id == food_id:
            return False
        if custom and event.custom_food_name and normalize_custom_name(event.custom_food_name) == custom:
            return False
    return True


def new_event(
    events: Sequence[FeedingEvent],
    *,
    subject_id: str,
    response: FeedingResponse,
    food_id: Optional[str] = None,
    custom_food_name: Optional[str] = None,
    logged_date: date | str | None = None,
    meal_slot: Optional[MealSlot] = None,
    serving_methods: Iterable[ServingMethod] = (),
    notes: Optional[str] = None,
    event_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> FeedingEvent:
    """
    Build a new event against the current log snapshot.

    is_first_time is computed here, once, from the snapshot as it stands; it
    is never recomputed afterwards.
    """
    if not food_id and not (custom_food_name and custom_food_name.strip()):
        raise ValueError("An event needs a food_id or a custom_food_name")
    now = now or datetime.now(timezone.utc)
    if logged_date is None:
        logged_date = now.date()
    return FeedingEvent(
        event_id=event_id or uuid.uuid4().hex,
        subject_id=subject_id,
        food_id=food_id,
        custom_food_name=custom_food_name,
        logged_date=logged_date.isoformat() if isinstance(logged_date, date) else str(logged_date),
        meal_slot=meal_slot,
        serving_methods=tuple(serving_methods),
        response=response,
        is_first_time=is_first_time_food(events, subject_id, food_id, custom_food_name),
        notes=notes,
        created_at=now,
    )


def new_events_for_subjects(
    events: Sequence[FeedingEvent],
    subject_ids: Iterable[str],
    **kwargs: Any,
) -> list[FeedingEvent]:
    """Log the same food for several subjects; each gets its own first-time flag."""
    return [new_event(events, subject_id=subject_id, **kwargs) for subject_id in subject_ids]


def edit_event(event: FeedingEvent, **changes: Any) -> FeedingEvent:
    """
    Return a copy of the event with whitelisted fields changed.

    Only response, serving_methods, meal_slot and notes are editable. The
    first-time flag and logged date of this and every other event stay as
    recorded.

    Raises:
        EventEditError: If any other field is given
        ValueError: If a changed value is not valid for its field
    """
    rejected = [name for name in changes if name not in EDITABLE_FIELDS]
    if rejected:
        raise EventEditError(event.event_id, rejected)

    if "response" in changes:
        changes["response"] = FeedingResponse(changes["response"])
    if "serving_methods" in changes:
        changes["serving_methods"] = tuple(ServingMethod(m) for m in changes["serving_methods"] or ())
    if changes.get("meal_slot") is not None:
        changes["meal_slot"] = MealSlot(changes["meal_slot"])
    return replace(event, **changes)
