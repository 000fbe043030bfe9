"""Engine orchestration: wires catalogs, evaluator, ledger and tracker together."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Optional, Sequence

from firstbites.core.allergens import AllergenTracker
from firstbites.core.catalog import CriterionCatalog, FoodCatalog
from firstbites.core.event_log import events_for_subject
from firstbites.core.evaluator import CriteriaEvaluator, EvaluationContext
from firstbites.core.interfaces import CelebrationSink
from firstbites.core.ledger import AwardLedger, AwardOutcome
from firstbites.core.models import (
    AllergenOverride,
    AllergenState,
    AllergenStatus,
    AllergenType,
    FeedingEvent,
    ProgressReport,
    ReactionSeverity,
    StreakReport,
)
from firstbites.core.progress import build_progress_report
from firstbites.core.reconciler import AchievementReconciler
from firstbites.core.registry import AdapterRegistry, default_registry
from firstbites.core.settings import DEFAULT_SETTINGS, EngineSettings
from firstbites.core.streaks import streak_for_events
from firstbites.core.sync import find_sync_events, sync_events_for


@dataclass
class DerivedState:
    """Everything derived from one snapshot for one subject."""

    subject_id: str
    progress: ProgressReport
    streak: StreakReport
    allergens: list[AllergenStatus]
    reminders: list[AllergenStatus]


class FeedingEngine:
    """
    Derived-state engine over feeding-log snapshots.

    Every query takes the snapshot explicitly: the full family log, in log
    order. Reads are pure; the only writes go to the award ledger and the
    allergen override store. All collaborators are injected so stores and
    clocks can be swapped at runtime.
    """

    def __init__(
        self,
        foods: FoodCatalog,
        criteria: CriterionCatalog,
        ledger: Optional[AwardLedger] = None,
        tracker: Optional[AllergenTracker] = None,
        celebrations: Optional[CelebrationSink] = None,
        settings: EngineSettings = DEFAULT_SETTINGS,
        today: Callable[[], date] = date.today,
        evaluator: Optional[CriteriaEvaluator] = None,
        registry: Optional[AdapterRegistry] = None,
    ) -> None:
        self.foods = foods
        self.criteria = criteria
        self.settings = settings
        self.today = today
        self.ledger = ledger or AwardLedger(settings=settings)
        self.tracker = tracker or AllergenTracker(foods, settings=settings, today=today)
        self.evaluator = evaluator or CriteriaEvaluator()
        self.reconciler = AchievementReconciler(self.ledger, criteria, celebrations)
        self.registry = registry or default_registry()

    def load_snapshot(self, raw_bytes: bytes, metadata: dict) -> tuple[FeedingEvent, ...]:
        """Parse a raw export into a snapshot with the adapter the registry selects."""
        return self.registry.parse(raw_bytes, metadata)

    def _context(self, snapshot: Sequence[FeedingEvent], subject_id: str) -> EvaluationContext:
        syncs = sync_events_for(subject_id, find_sync_events(snapshot))
        return EvaluationContext(
            foods=self.foods,
            today=self.today(),
            sync_events=tuple(syncs),
            color_window_days=self.settings.color_window_days,
        )

    def get_progress(self, snapshot: Iterable[FeedingEvent], subject_id: str) -> ProgressReport:
        snapshot = tuple(snapshot)
        return build_progress_report(
            subject_id,
            events_for_subject(snapshot, subject_id),
            self.criteria,
            self._context(snapshot, subject_id),
            awards=self.ledger.awards_for(subject_id),
            evaluator=self.evaluator,
        )

    def get_streak(self, snapshot: Iterable[FeedingEvent], subject_id: str) -> StreakReport:
        return streak_for_events(events_for_subject(snapshot, subject_id), self.today())

    def get_allergen_status(
        self,
        snapshot: Iterable[FeedingEvent],
        subject_id: str,
        allergen_type: AllergenType,
    ) -> AllergenStatus:
        return self.tracker.get_status(snapshot, subject_id, allergen_type)

    def get_maintenance_reminders(self, snapshot: Iterable[FeedingEvent], subject_id: str) -> list[AllergenStatus]:
        return self.tracker.get_maintenance_reminders(snapshot, subject_id)

    def recompute(self, snapshot: Iterable[FeedingEvent], subject_id: str) -> DerivedState:
        """Derive progress, streak and allergen state from one snapshot. No writes."""
        snapshot = tuple(snapshot)
        allergens = self.tracker.get_all_statuses(snapshot, subject_id)
        return DerivedState(
            subject_id=subject_id,
            progress=self.get_progress(snapshot, subject_id),
            streak=self.get_streak(snapshot, subject_id),
            allergens=allergens,
            reminders=[
                s for s in allergens if s.needs_maintenance and s.status != AllergenState.REACTION
            ],
        )

    def record_award(
        self,
        subject_id: str,
        criterion_id: str,
        triggering_event_id: str | None = None,
    ) -> AwardOutcome:
        return self.ledger.record_award(subject_id, criterion_id, triggering_event_id)

    def reconcile(
        self,
        snapshot: Iterable[FeedingEvent],
        subject_id: str,
        triggering_event_id: str | None = None,
    ) -> AwardOutcome | None:
        """Recompute progress and award at most one newly earned criterion."""
        report = self.get_progress(snapshot, subject_id)
        return self.reconciler.reconcile(report, triggering_event_id)

    def record_reaction(
        self,
        subject_id: str,
        allergen_type: AllergenType,
        severity: ReactionSeverity,
        notes: str | None = None,
    ) -> AllergenOverride:
        return self.tracker.record_reaction(subject_id, allergen_type, severity, notes)

    def mark_cleared(self, subject_id: str, allergen_type: AllergenType) -> AllergenOverride:
        return self.tracker.mark_cleared(subject_id, allergen_type)

    def clear_reaction(self, subject_id: str, allergen_type: AllergenType) -> AllergenOverride | None:
        return self.tracker.clear_reaction(subject_id, allergen_type)
