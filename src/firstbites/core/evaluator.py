"""
Criteria evaluation: pure functions from an event snapshot to badge progress.

One handler per CriterionKind. Handlers never mutate their inputs and never
raise for unexpected data: missing catalog foods and malformed dates are
skipped, and unsupported kinds report a safe non-earned result.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable, Iterator, Sequence

from firstbites.core.catalog import FoodCatalog
from firstbites.core.dates import distinct_dates, longest_consecutive_run
from firstbites.core.models import (
    Criterion,
    CriterionKind,
    CriterionResult,
    FeedingEvent,
    FeedingResponse,
    Food,
    ServingMethod,
    SyncEvent,
    normalize_custom_name,
)

logger = logging.getLogger(__name__)

RETRY_FROM = frozenset({FeedingResponse.REFUSED, FeedingResponse.DISLIKED})
RETRY_TO = frozenset({FeedingResponse.LOVED, FeedingResponse.MEH})


@dataclass(frozen=True)
class EvaluationContext:
    """Everything a handler may read besides the subject's own events."""

    foods: FoodCatalog
    today: date
    sync_events: tuple[SyncEvent, ...] = ()
    color_window_days: int = 7


Handler = Callable[[Sequence[FeedingEvent], Criterion, EvaluationContext], CriterionResult]


def _count(current: int, target: float) -> CriterionResult:
    return CriterionResult(earned=current >= target, current=current, target=target)


def _flag(earned: bool) -> CriterionResult:
    return CriterionResult(earned=earned, current=1 if earned else 0, target=1)


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(v) for v in value]
    return [str(value)]


def _catalog_foods(
    events: Sequence[FeedingEvent], foods: FoodCatalog
) -> Iterator[tuple[FeedingEvent, Food]]:
    """Yield (event, food) for events whose food id resolves in the catalog."""
    for event in events:
        food = foods.get(event.food_id)
        if food is not None:
            yield event, food


def _total_logs(events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext) -> CriterionResult:
    return _count(len(events), criterion.target)


def _unique_days_logged(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    days = {event.logged_on for event in events if event.logged_on is not None}
    return _count(len(days), criterion.target)


def _colors_in_window(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    window_start = ctx.today - timedelta(days=ctx.color_window_days)
    colors: set[str] = set()
    for event, food in _catalog_foods(events, ctx.foods):
        logged_on = event.logged_on
        if logged_on is None or logged_on < window_start:
            continue
        if food.color:
            colors.add(food.color)
    return _count(len(colors), criterion.target)


def _consecutive_days_with_tag(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    tag = str(criterion.params.get("tag") or "")
    tag_values = _as_list(criterion.params.get("tag_values"))
    if not tag:
        return _count(0, criterion.target)

    matching: list[date] = []
    for event, food in _catalog_foods(events, ctx.foods):
        value = food.attribute(tag)
        qualifies = str(value) in tag_values if tag_values else value is True
        if qualifies and event.logged_on is not None:
            matching.append(event.logged_on)
    return _count(longest_consecutive_run(matching), criterion.target)


def _allergens_introduced(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    allergens = {
        food.allergen_type
        for _, food in _catalog_foods(events, ctx.foods)
        if food.is_allergen and food.allergen_type is not None
    }
    return _count(len(allergens), criterion.target)


def _same_first_food_same_day(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    return _flag(len(ctx.sync_events) > 0)


def _same_first_food_same_day_count(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    return _count(len(ctx.sync_events), criterion.target)


def _unique_foods_in_category(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    category = str(criterion.params.get("category") or "").lower()
    food_ids = {
        food.food_id for _, food in _catalog_foods(events, ctx.foods) if food.category.value == category
    }
    return _count(len(food_ids), criterion.target)


def _unique_foods(events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext) -> CriterionResult:
    keys: set[str] = set()
    for event in events:
        if event.food_id:
            keys.add(event.food_id)
        if event.custom_food_name and event.custom_food_name.strip():
            keys.add(f"custom:{normalize_custom_name(event.custom_food_name)}")
    return _count(len(keys), criterion.target)


def _unique_cultural_tags(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    tags: set[str] = set()
    for _, food in _catalog_foods(events, ctx.foods):
        tags.update(food.cultural_tags)
    return _count(len(tags), criterion.target)


def _response_count(events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext) -> CriterionResult:
    response = str(criterion.params.get("response") or "").lower()
    current = sum(1 for event in events if event.response.value == response)
    return _count(current, criterion.target)


def _food_retry_success(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    # Stable order: logged date first, snapshot position breaks ties.
    dated = [(event.logged_on, index, event) for index, event in enumerate(events) if event.logged_on]
    dated.sort(key=lambda entry: (entry[0], entry[1]))

    seen: dict[str, set[FeedingResponse]] = {}
    for _, _, event in dated:
        key = event.food_key
        if key is None:
            continue
        previous = seen.setdefault(key, set())
        if event.response in RETRY_TO and previous & RETRY_FROM:
            return _flag(True)
        previous.add(event.response)
    return _flag(False)


def _first_serving_method(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    method = str(criterion.params.get("serving_method") or "").lower()
    used = any(method in {m.value for m in event.serving_methods} for event in events)
    return _flag(bool(method) and used)


def _foods_with_tag(events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext) -> CriterionResult:
    tag = str(criterion.params.get("tag") or "")
    food_ids = {
        food.food_id for _, food in _catalog_foods(events, ctx.foods) if tag and food.attribute(tag) is True
    }
    return _count(len(food_ids), criterion.target)


def _allergen_type_variety(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    wanted = {value.lower() for value in _as_list(criterion.params.get("allergen_type"))}
    food_ids = {
        food.food_id
        for _, food in _catalog_foods(events, ctx.foods)
        if food.is_allergen and food.allergen_type is not None and food.allergen_type.value in wanted
    }
    return _count(len(food_ids), criterion.target)


def _unique_serving_methods(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    methods = {method for event in events for method in event.serving_methods}
    methods.discard(ServingMethod.OTHER)
    return _count(len(methods), criterion.target)


def _same_food_loved_count(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    loved = Counter(
        event.food_key
        for event in events
        if event.response == FeedingResponse.LOVED and event.food_key is not None
    )
    return _count(max(loved.values(), default=0), criterion.target)


def _days_since_first_log(
    events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext
) -> CriterionResult:
    dates = distinct_dates(event.logged_on for event in events)
    if not dates:
        return _count(0, criterion.target)
    return _count(max(0, (ctx.today - dates[0]).days), criterion.target)


def _unsupported(events: Sequence[FeedingEvent], criterion: Criterion, ctx: EvaluationContext) -> CriterionResult:
    return CriterionResult(earned=False, current=0, target=1)


_HANDLERS: dict[CriterionKind, Handler] = {
    CriterionKind.TOTAL_LOGS: _total_logs,
    CriterionKind.UNIQUE_DAYS_LOGGED: _unique_days_logged,
    CriterionKind.COLORS_IN_7_DAYS: _colors_in_window,
    CriterionKind.CONSECUTIVE_DAYS_WITH_TAG: _consecutive_days_with_tag,
    CriterionKind.ALLERGENS_INTRODUCED: _allergens_introduced,
    CriterionKind.SAME_FIRST_FOOD_SAME_DAY: _same_first_food_same_day,
    CriterionKind.SAME_FIRST_FOOD_SAME_DAY_COUNT: _same_first_food_same_day_count,
    CriterionKind.UNIQUE_FOODS_IN_CATEGORY: _unique_foods_in_category,
    CriterionKind.UNIQUE_FOODS: _unique_foods,
    CriterionKind.UNIQUE_CULTURAL_TAGS: _unique_cultural_tags,
    CriterionKind.RESPONSE_COUNT: _response_count,
    CriterionKind.FOOD_RETRY_SUCCESS: _food_retry_success,
    CriterionKind.FIRST_SERVING_METHOD: _first_serving_method,
    CriterionKind.FOODS_WITH_TAG: _foods_with_tag,
    CriterionKind.ALLERGEN_TYPE_VARIETY: _allergen_type_variety,
    CriterionKind.UNIQUE_SERVING_METHODS: _unique_serving_methods,
    CriterionKind.SAME_FOOD_LOVED_COUNT: _same_food_loved_count,
    CriterionKind.DAYS_SINCE_FIRST_LOG: _days_since_first_log,
    CriterionKind.UNSUPPORTED: _unsupported,
}


def _check_handlers() -> None:
    missing = [kind.value for kind in CriterionKind if kind not in _HANDLERS]
    if missing:
        raise RuntimeError(f"No evaluator registered for criterion kinds: {missing}")


_check_handlers()


def handler_for(kind: CriterionKind) -> Handler:
    return _HANDLERS[kind]


class CriteriaEvaluator:
    """
    Stateless evaluator over one subject's event snapshot.

    Kept as a class so the engine can take it as an injected stage, the same
    way every other stage is wired.
    """

    def evaluate(
        self,
        events: Sequence[FeedingEvent],
        criterion: Criterion,
        context: EvaluationContext,
    ) -> CriterionResult:
        result = handler_for(criterion.kind)(events, criterion, context)
        logger.debug(
            "Evaluated %s (%s): current=%s target=%s earned=%s",
            criterion.criterion_id,
            criterion.kind.value,
            result.current,
            result.target,
            result.earned,
        )
        return result
