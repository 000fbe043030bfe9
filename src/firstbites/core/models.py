"""Core immutable data models and derived-state records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional

from firstbites.core.dates import parse_logged_date


class FeedingResponse(str, Enum):
    """How the subject reacted to a food."""

    LOVED = "loved"
    MEH = "meh"
    DISLIKED = "disliked"
    GAGGED = "gagged"
    REFUSED = "refused"
    POSSIBLE_REACTION = "possible_reaction"


class ServingMethod(str, Enum):
    """Serving-style tag attached to an event."""

    STICK = "stick"
    MASHED = "mashed"
    BITE_SIZED = "bite_sized"
    PRELOADED_SPOON = "preloaded_spoon"
    WHOLE = "whole"
    OTHER = "other"


class MealSlot(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


class FoodCategory(str, Enum):
    FRUIT = "fruit"
    VEGETABLE = "vegetable"
    PROTEIN = "protein"
    GRAIN = "grain"
    DAIRY = "dairy"
    LEGUME = "legume"
    OTHER = "other"


class AllergenType(str, Enum):
    """The nine major allergens, in display order."""

    PEANUT = "peanut"
    TREE_NUT = "tree_nut"
    EGG = "egg"
    DAIRY = "dairy"
    WHEAT = "wheat"
    SOY = "soy"
    FISH = "fish"
    SHELLFISH = "shellfish"
    SESAME = "sesame"


class IronContent(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


class ReactionSeverity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class AllergenState(str, Enum):
    """Maintenance state of one allergen for one subject."""

    NOT_INTRODUCED = "not_introduced"
    INTRODUCED = "introduced"
    CLEARED = "cleared"
    REACTION = "reaction"


class MaintenanceUrgency(str, Enum):
    OK = "ok"
    SOON = "soon"
    OVERDUE = "overdue"


class CriterionKind(str, Enum):
    """Closed set of criterion types the evaluator understands."""

    TOTAL_LOGS = "total_logs"
    UNIQUE_DAYS_LOGGED = "unique_days_logged"
    COLORS_IN_7_DAYS = "colors_in_7_days"
    CONSECUTIVE_DAYS_WITH_TAG = "consecutive_days_with_tag"
    ALLERGENS_INTRODUCED = "allergens_introduced"
    SAME_FIRST_FOOD_SAME_DAY = "same_first_food_same_day"
    SAME_FIRST_FOOD_SAME_DAY_COUNT = "same_first_food_same_day_count"
    UNIQUE_FOODS_IN_CATEGORY = "unique_foods_in_category"
    UNIQUE_FOODS = "unique_foods"
    UNIQUE_CULTURAL_TAGS = "unique_cultural_tags"
    RESPONSE_COUNT = "response_count"
    FOOD_RETRY_SUCCESS = "food_retry_success"
    FIRST_SERVING_METHOD = "first_serving_method"
    FOODS_WITH_TAG = "foods_with_tag"
    ALLERGEN_TYPE_VARIETY = "allergen_type_variety"
    UNIQUE_SERVING_METHODS = "unique_serving_methods"
    SAME_FOOD_LOVED_COUNT = "same_food_loved_count"
    DAYS_SINCE_FIRST_LOG = "days_since_first_log"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_tag(cls, tag: str) -> CriterionKind:
        """Map a catalog type tag to a kind; unknown tags become UNSUPPORTED."""
        try:
            kind = cls(str(tag).strip().lower())
        except ValueError:
            return cls.UNSUPPORTED
        return kind


def normalize_custom_name(name: str) -> str:
    return " ".join(name.strip().lower().split())


@dataclass(frozen=True)
class FeedingEvent:
    """
    Immutable feeding-log entry.

    Events are created once by the logging path and never change afterwards,
    except for the whitelisted fields handled by event_log.edit_event.
    """

    event_id: str
    subject_id: str

    food_id: Optional[str] = None
    """Reference into the food catalog."""

    custom_food_name: Optional[str] = None
    """Free-text food name when the food is not in the catalog."""

    logged_date: str = ""
    """Calendar date as supplied (YYYY-MM-DD). Malformed values are kept verbatim."""

    meal_slot: Optional[MealSlot] = None
    serving_methods: tuple[ServingMethod, ...] = ()
    response: FeedingResponse = FeedingResponse.MEH

    is_first_time: bool = False
    """Frozen at creation: no earlier event for the subject referenced the same food."""

    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def logged_on(self) -> date | None:
        """Parsed logged date, or None when the stored value is malformed."""
        return parse_logged_date(self.logged_date)

    @property
    def food_key(self) -> str | None:
        if self.food_id:
            return self.food_id
        if self.custom_food_name and self.custom_food_name.strip():
            return f"custom:{normalize_custom_name(self.custom_food_name)}"
        return None


@dataclass(frozen=True)
class Food:
    """Static food catalog entry (only the attributes the engine reads)."""

    food_id: str
    name: str = ""
    category: FoodCategory = FoodCategory.OTHER
    is_allergen: bool = False
    allergen_type: Optional[AllergenType] = None
    iron_content: IronContent = IronContent.NONE
    cultural_tags: tuple[str, ...] = ()
    color: Optional[str] = None
    omega_3_rich: bool = False
    vitamin_c_rich: bool = False

    def attribute(self, tag: str) -> Any:
        """Look up a food attribute by catalog tag name (e.g. 'iron_content')."""
        value = getattr(self, tag, None)
        if isinstance(value, Enum):
            return value.value
        return value


@dataclass(frozen=True)
class Criterion:
    """Badge definition: a typed rule plus presentation metadata."""

    criterion_id: str
    kind: CriterionKind
    raw_type: str = ""
    params: Mapping[str, Any] = field(default_factory=dict)
    name: str = ""
    description: str = ""
    emoji: str = ""
    celebration_message: str = ""

    @property
    def target(self) -> float:
        """Numeric target from the 'value' param, defaulting to 1.

        Integral values come back as int; fractional ones are kept as-is.
        """
        value = self.params.get("value")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 1
        if isinstance(value, float) and not value.is_integer():
            return value
        return int(value)


@dataclass(frozen=True)
class Award:
    """Ledger record: the subject has earned the criterion. One per pair."""

    subject_id: str
    criterion_id: str
    earned_at: datetime
    triggering_event_id: Optional[str] = None


@dataclass(frozen=True)
class SyncEvent:
    """Two or more subjects tried the same food for the first time on one day."""

    logged_on: date
    food_id: str
    subject_ids: tuple[str, ...]


@dataclass
class CriterionResult:
    """Output of evaluating one criterion against one subject's snapshot."""

    earned: bool
    current: int
    target: float

    @property
    def progress_pct(self) -> float:
        if self.target <= 0:
            return 100.0 if self.earned else 0.0
        clamped = max(0, min(self.current, self.target))
        return min(clamped / self.target, 1.0) * 100


@dataclass
class CriterionProgress:
    """One row of a progress report."""

    criterion_id: str
    earned: bool
    current: int
    target: float
    progress_pct: float
    evaluator_earned: bool
    earned_date: Optional[datetime] = None


@dataclass
class ProgressReport:
    subject_id: str
    rows: list[CriterionProgress] = field(default_factory=list)

    @property
    def earned_count(self) -> int:
        return sum(1 for row in self.rows if row.earned)

    @property
    def total_count(self) -> int:
        return len(self.rows)

    @property
    def completion_pct(self) -> int:
        if not self.rows:
            return 0
        return round(self.earned_count / self.total_count * 100)

    @property
    def next_up(self) -> CriterionProgress | None:
        """First criterion not yet earned that has some progress."""
        return next((row for row in self.rows if not row.earned and row.progress_pct > 0), None)

    def get(self, criterion_id: str) -> CriterionProgress | None:
        return next((row for row in self.rows if row.criterion_id == criterion_id), None)


@dataclass
class StreakReport:
    current: int = 0
    longest: int = 0
    last_active_date: Optional[date] = None
    is_active_today: bool = False


@dataclass
class AllergenOverride:
    """
    Explicit per-(subject, allergen) record layered on top of exposure history.

    Reaction and cleared are mutually exclusive; the tracker keeps them so.
    """

    subject_id: str
    allergen_type: AllergenType
    had_reaction: bool = False
    reaction_severity: Optional[ReactionSeverity] = None
    reaction_notes: Optional[str] = None
    is_cleared: bool = False
    introduction_date: Optional[date] = None
    introduction_event_id: Optional[str] = None


@dataclass
class AllergenStatus:
    """Derived allergen status. Recomputed on every read, never persisted."""

    allergen_type: AllergenType
    status: AllergenState
    exposure_count: int = 0
    introduction_date: Optional[date] = None
    last_exposure_date: Optional[date] = None
    days_since_exposure: Optional[int] = None
    maintenance_urgency: MaintenanceUrgency = MaintenanceUrgency.OK
    had_reaction: bool = False
    reaction_severity: Optional[ReactionSeverity] = None
    reaction_notes: Optional[str] = None

    @property
    def needs_maintenance(self) -> bool:
        return self.maintenance_urgency != MaintenanceUrgency.OK


@dataclass
class AllergenStats:
    introduced: int = 0
    cleared: int = 0
    reactions: int = 0
    not_introduced: int = 0
    needing_maintenance: int = 0
    total: int = 0
