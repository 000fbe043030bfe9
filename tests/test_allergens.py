"""Tests for allergen maintenance tracking."""

import threading
from datetime import date, timedelta

from firstbites.core.allergens import AllergenTracker, InMemoryOverrideStore, maintenance_urgency
from firstbites.core.catalog import FoodCatalog
from firstbites.core.models import (
    AllergenOverride,
    AllergenState,
    AllergenType,
    FeedingEvent,
    Food,
    FoodCategory,
    MaintenanceUrgency,
    ReactionSeverity,
)
from firstbites.core.settings import EngineSettings

TODAY = date(2024, 3, 15)

FOODS = FoodCatalog(
    [
        Food("egg", "Egg", FoodCategory.PROTEIN, True, AllergenType.EGG),
        Food("omelette", "Omelette", FoodCategory.PROTEIN, True, AllergenType.EGG),
        Food("peanut_butter", "Peanut Butter", FoodCategory.PROTEIN, True, AllergenType.PEANUT),
        Food("apple", "Apple", FoodCategory.FRUIT),
    ]
)


def _exposure(event_id: str, food_id: str, days_ago: int, subject_id: str = "ava") -> FeedingEvent:
    return FeedingEvent(
        event_id=event_id,
        subject_id=subject_id,
        food_id=food_id,
        logged_date=(TODAY - timedelta(days=days_ago)).isoformat(),
    )


def _tracker() -> AllergenTracker:
    return AllergenTracker(FOODS, InMemoryOverrideStore(), today=lambda: TODAY)


def test_urgency_thresholds() -> None:
    assert maintenance_urgency(4) == MaintenanceUrgency.OK
    assert maintenance_urgency(5) == MaintenanceUrgency.SOON
    assert maintenance_urgency(6) == MaintenanceUrgency.SOON
    assert maintenance_urgency(7) == MaintenanceUrgency.OVERDUE
    custom = EngineSettings(maintenance_warning_days=2, maintenance_overdue_days=3)
    assert maintenance_urgency(2, custom) == MaintenanceUrgency.SOON


def test_not_introduced_without_exposures() -> None:
    status = _tracker().get_status([], "ava", AllergenType.EGG)
    assert status.status == AllergenState.NOT_INTRODUCED
    assert status.exposure_count == 0
    assert status.maintenance_urgency == MaintenanceUrgency.OK


def test_exposure_six_days_ago_is_soon_eight_is_overdue() -> None:
    tracker = _tracker()
    soon = tracker.get_status([_exposure("e1", "egg", 6)], "ava", AllergenType.EGG)
    overdue = tracker.get_status([_exposure("e1", "egg", 8)], "ava", AllergenType.EGG)
    assert soon.status == AllergenState.INTRODUCED
    assert soon.maintenance_urgency == MaintenanceUrgency.SOON
    assert soon.days_since_exposure == 6
    assert overdue.maintenance_urgency == MaintenanceUrgency.OVERDUE


def test_exposures_only_count_matching_allergen_type_and_subject() -> None:
    events = [
        _exposure("e1", "egg", 10),
        _exposure("e2", "omelette", 2),
        _exposure("e3", "peanut_butter", 1),
        _exposure("e4", "apple", 0),
        _exposure("e5", "egg", 0, subject_id="ben"),
    ]
    status = _tracker().get_status(events, "ava", AllergenType.EGG)
    assert status.exposure_count == 2
    assert status.last_exposure_date == TODAY - timedelta(days=2)
    assert status.introduction_date == TODAY - timedelta(days=10)
    assert status.maintenance_urgency == MaintenanceUrgency.OK


def test_reaction_suppresses_urgency() -> None:
    tracker = _tracker()
    events = [_exposure("e1", "egg", 12)]
    tracker.record_reaction("ava", AllergenType.EGG, ReactionSeverity.MILD, "hives")
    status = tracker.get_status(events, "ava", AllergenType.EGG)
    assert status.status == AllergenState.REACTION
    assert status.maintenance_urgency == MaintenanceUrgency.OK
    assert status.reaction_severity == ReactionSeverity.MILD
    assert status.reaction_notes == "hives"
    assert tracker.get_maintenance_reminders(events, "ava") == []


def test_cleared_allergen_still_gets_urgency() -> None:
    tracker = _tracker()
    tracker.mark_cleared("ava", AllergenType.EGG)
    status = tracker.get_status([_exposure("e1", "egg", 9)], "ava", AllergenType.EGG)
    assert status.status == AllergenState.CLEARED
    assert status.maintenance_urgency == MaintenanceUrgency.OVERDUE


def test_mark_cleared_replaces_reaction() -> None:
    tracker = _tracker()
    tracker.record_reaction("ava", AllergenType.PEANUT, ReactionSeverity.SEVERE)
    override = tracker.mark_cleared("ava", AllergenType.PEANUT)
    assert override.is_cleared
    assert not override.had_reaction
    assert override.reaction_severity is None


def test_clear_reaction_returns_to_introduced() -> None:
    tracker = _tracker()
    assert tracker.clear_reaction("ava", AllergenType.EGG) is None
    tracker.record_reaction("ava", AllergenType.EGG, ReactionSeverity.MODERATE)
    tracker.clear_reaction("ava", AllergenType.EGG)
    status = tracker.get_status([], "ava", AllergenType.EGG)
    assert status.status == AllergenState.INTRODUCED
    assert not status.had_reaction
    assert status.introduction_date == TODAY


def test_record_introduction_without_exposure() -> None:
    tracker = _tracker()
    tracker.record_introduction("ava", AllergenType.PEANUT, date(2024, 3, 1), event_id="e9")
    status = tracker.get_status([], "ava", AllergenType.PEANUT)
    assert status.status == AllergenState.INTRODUCED
    assert status.introduction_date == date(2024, 3, 1)
    assert status.maintenance_urgency == MaintenanceUrgency.OK


def test_reminders_and_stats() -> None:
    tracker = _tracker()
    events = [_exposure("e1", "egg", 8), _exposure("e2", "peanut_butter", 1)]
    reminders = tracker.get_maintenance_reminders(events, "ava")
    assert [s.allergen_type for s in reminders] == [AllergenType.EGG]

    statuses = tracker.get_all_statuses(events, "ava")
    assert [s.allergen_type for s in statuses] == list(AllergenType)

    stats = tracker.get_stats(events, "ava")
    assert stats.introduced == 2
    assert stats.not_introduced == 7
    assert stats.needing_maintenance == 1
    assert stats.total == 9


def test_store_returns_copies() -> None:
    store = InMemoryOverrideStore()
    tracker = AllergenTracker(FOODS, store, today=lambda: TODAY)
    tracker.record_reaction("ava", AllergenType.EGG, ReactionSeverity.MILD)
    record = store.get("ava", AllergenType.EGG)
    assert record is not None
    record.had_reaction = False
    assert store.get("ava", AllergenType.EGG).had_reaction  # type: ignore[union-attr]


def test_store_update_applies_concurrent_mutations_in_turn() -> None:
    store = InMemoryOverrideStore()
    barrier = threading.Barrier(24)

    def bump(override: AllergenOverride) -> None:
        override.reaction_notes = str(int(override.reaction_notes or 0) + 1)

    def worker() -> None:
        barrier.wait()
        store.update("ava", AllergenType.EGG, bump)

    threads = [threading.Thread(target=worker) for _ in range(24)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.get("ava", AllergenType.EGG).reaction_notes == "24"  # type: ignore[union-attr]


def test_concurrent_introduction_and_reaction_keep_both_fields() -> None:
    store = InMemoryOverrideStore()
    tracker = AllergenTracker(FOODS, store, today=lambda: TODAY)
    barrier = threading.Barrier(2)

    def introduce() -> None:
        barrier.wait()
        tracker.record_introduction("ava", AllergenType.EGG, date(2024, 3, 1), event_id="e7")

    def react() -> None:
        barrier.wait()
        tracker.record_reaction("ava", AllergenType.EGG, ReactionSeverity.MILD)

    threads = [threading.Thread(target=introduce), threading.Thread(target=react)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    record = store.get("ava", AllergenType.EGG)
    assert record is not None
    assert record.had_reaction
    assert record.introduction_event_id == "e7"


def test_clear_reaction_on_unknown_pair_writes_nothing() -> None:
    store = InMemoryOverrideStore()
    tracker = AllergenTracker(FOODS, store, today=lambda: TODAY)
    assert tracker.clear_reaction("ava", AllergenType.SOY) is None
    assert store.get("ava", AllergenType.SOY) is None
