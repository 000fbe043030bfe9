"""
Allergen maintenance tracking.

Status is derived on every read from two inputs: exposure events in the log
(catalog foods of the allergen type) and the explicit override record kept
per (subject, allergen type). States:

    not_introduced -> introduced      first exposure or introduction record
    introduced     -> cleared         mark_cleared
    introduced     -> reaction        record_reaction
    cleared/reaction -> introduced    clear_reaction

Maintenance urgency is only computed for introduced and cleared allergens
that have at least one exposure.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import date
from typing import Callable, Iterable, Optional, Sequence, cast

from firstbites.core.catalog import FoodCatalog
from firstbites.core.interfaces import OverrideStore
from firstbites.core.models import (
    AllergenOverride,
    AllergenState,
    AllergenStats,
    AllergenStatus,
    AllergenType,
    FeedingEvent,
    MaintenanceUrgency,
    ReactionSeverity,
)
from firstbites.core.settings import DEFAULT_SETTINGS, EngineSettings

logger = logging.getLogger(__name__)


class InMemoryOverrideStore:
    """Thread-safe override store; one live record per (subject, allergen type)."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, AllergenType], AllergenOverride] = {}
        self._lock = threading.Lock()

    def get(self, subject_id: str, allergen_type: AllergenType) -> Optional[AllergenOverride]:
        with self._lock:
            record = self._records.get((subject_id, allergen_type))
            return replace(record) if record else None

    def put(self, override: AllergenOverride) -> AllergenOverride:
        with self._lock:
            self._records[(override.subject_id, override.allergen_type)] = replace(override)
        return override

    def update(
        self,
        subject_id: str,
        allergen_type: AllergenType,
        mutate: Callable[[AllergenOverride], None],
        create: bool = True,
    ) -> Optional[AllergenOverride]:
        key = (subject_id, allergen_type)
        with self._lock:
            current = self._records.get(key)
            if current is None:
                if not create:
                    return None
                current = AllergenOverride(subject_id=subject_id, allergen_type=allergen_type)
            record = replace(current)
            mutate(record)
            self._records[key] = record
            return replace(record)


def maintenance_urgency(days_since_exposure: int, settings: EngineSettings = DEFAULT_SETTINGS) -> MaintenanceUrgency:
    if days_since_exposure >= settings.maintenance_overdue_days:
        return MaintenanceUrgency.OVERDUE
    if days_since_exposure >= settings.maintenance_warning_days:
        return MaintenanceUrgency.SOON
    return MaintenanceUrgency.OK


def derive_status(
    allergen_type: AllergenType,
    exposures: Sequence[FeedingEvent],
    override: AllergenOverride | None,
    today: date,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> AllergenStatus:
    """Pure status derivation from exposure events and the override record."""
    exposure_dates = sorted(e.logged_on for e in exposures if e.logged_on is not None)
    last_exposure = exposure_dates[-1] if exposure_dates else None
    days_since = (today - last_exposure).days if last_exposure else None

    if override and override.had_reaction:
        status = AllergenState.REACTION
    elif override and override.is_cleared:
        status = AllergenState.CLEARED
    elif exposures or (override and override.introduction_date):
        status = AllergenState.INTRODUCED
    else:
        status = AllergenState.NOT_INTRODUCED

    urgency = MaintenanceUrgency.OK
    if (
        status in (AllergenState.INTRODUCED, AllergenState.CLEARED)
        and exposures
        and days_since is not None
    ):
        urgency = maintenance_urgency(days_since, settings)

    candidates = exposure_dates[:1]
    if override and override.introduction_date:
        candidates.append(override.introduction_date)
    introduction_date = min(candidates) if candidates else None

    return AllergenStatus(
        allergen_type=allergen_type,
        status=status,
        exposure_count=len(exposures),
        introduction_date=introduction_date,
        last_exposure_date=last_exposure,
        days_since_exposure=days_since,
        maintenance_urgency=urgency,
        had_reaction=bool(override and override.had_reaction),
        reaction_severity=override.reaction_severity if override else None,
        reaction_notes=override.reaction_notes if override else None,
    )


class AllergenTracker:
    """Reads exposure history from a snapshot and keeps override records in a store."""

    def __init__(
        self,
        foods: FoodCatalog,
        store: OverrideStore | None = None,
        settings: EngineSettings = DEFAULT_SETTINGS,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.foods = foods
        self.store = store if store is not None else InMemoryOverrideStore()
        self.settings = settings
        self.today = today

    def exposures(
        self,
        events: Iterable[FeedingEvent],
        subject_id: str,
        allergen_type: AllergenType,
    ) -> list[FeedingEvent]:
        """Events of the subject whose catalog food has the allergen type."""
        result = []
        for event in events:
            if event.subject_id != subject_id:
                continue
            food = self.foods.get(event.food_id)
            if food is not None and food.allergen_type == allergen_type:
                result.append(event)
        return result

    def get_status(
        self,
        events: Iterable[FeedingEvent],
        subject_id: str,
        allergen_type: AllergenType,
    ) -> AllergenStatus:
        return derive_status(
            allergen_type,
            self.exposures(events, subject_id, allergen_type),
            self.store.get(subject_id, allergen_type),
            self.today(),
            self.settings,
        )

    def get_all_statuses(self, events: Iterable[FeedingEvent], subject_id: str) -> list[AllergenStatus]:
        snapshot = tuple(events)
        return [self.get_status(snapshot, subject_id, allergen) for allergen in AllergenType]

    def get_maintenance_reminders(self, events: Iterable[FeedingEvent], subject_id: str) -> list[AllergenStatus]:
        """Allergens due for re-exposure, excluding those with a recorded reaction."""
        return [
            status
            for status in self.get_all_statuses(events, subject_id)
            if status.needs_maintenance and status.status != AllergenState.REACTION
        ]

    def get_stats(self, events: Iterable[FeedingEvent], subject_id: str) -> AllergenStats:
        statuses = self.get_all_statuses(events, subject_id)
        return AllergenStats(
            introduced=sum(1 for s in statuses if s.status == AllergenState.INTRODUCED),
            cleared=sum(1 for s in statuses if s.status == AllergenState.CLEARED),
            reactions=sum(1 for s in statuses if s.status == AllergenState.REACTION),
            not_introduced=sum(1 for s in statuses if s.status == AllergenState.NOT_INTRODUCED),
            needing_maintenance=sum(1 for s in statuses if s.needs_maintenance),
            total=len(statuses),
        )

    def record_introduction(
        self,
        subject_id: str,
        allergen_type: AllergenType,
        introduced_on: date | None = None,
        event_id: str | None = None,
    ) -> AllergenOverride:
        """Explicitly mark an allergen as introduced, independent of logged exposures."""
        introduced_on = introduced_on or self.today()

        def mutate(override: AllergenOverride) -> None:
            override.introduction_date = introduced_on
            override.introduction_event_id = event_id

        updated = self._update(subject_id, allergen_type, mutate)
        logger.info("Recorded %s introduction for subject %s", allergen_type.value, subject_id)
        return updated

    def record_reaction(
        self,
        subject_id: str,
        allergen_type: AllergenType,
        severity: ReactionSeverity,
        notes: str | None = None,
    ) -> AllergenOverride:
        today = self.today()

        def mutate(override: AllergenOverride) -> None:
            override.had_reaction = True
            override.reaction_severity = severity
            override.reaction_notes = notes
            override.is_cleared = False
            if override.introduction_date is None:
                override.introduction_date = today

        updated = self._update(subject_id, allergen_type, mutate)
        logger.info(
            "Recorded %s reaction to %s for subject %s",
            severity.value,
            allergen_type.value,
            subject_id,
        )
        return updated

    def mark_cleared(self, subject_id: str, allergen_type: AllergenType) -> AllergenOverride:
        today = self.today()

        def mutate(override: AllergenOverride) -> None:
            override.is_cleared = True
            override.had_reaction = False
            override.reaction_severity = None
            override.reaction_notes = None
            if override.introduction_date is None:
                override.introduction_date = today

        updated = self._update(subject_id, allergen_type, mutate)
        logger.info("Marked %s cleared for subject %s", allergen_type.value, subject_id)
        return updated

    def clear_reaction(self, subject_id: str, allergen_type: AllergenType) -> AllergenOverride | None:
        """Drop the reaction (or cleared) flag, returning the allergen to introduced."""
        updated = self.store.update(subject_id, allergen_type, _drop_reaction, create=False)
        if updated is not None:
            logger.info("Cleared %s reaction for subject %s", allergen_type.value, subject_id)
        return updated

    def _update(
        self,
        subject_id: str,
        allergen_type: AllergenType,
        mutate: Callable[[AllergenOverride], None],
    ) -> AllergenOverride:
        return cast(AllergenOverride, self.store.update(subject_id, allergen_type, mutate))


def _drop_reaction(override: AllergenOverride) -> None:
    override.had_reaction = False
    override.reaction_severity = None
    override.reaction_notes = None
    override.is_cleared = False
