"""Tests for the achievement reconciler."""

from datetime import date

import pytest

from firstbites.core.catalog import CriterionCatalog, FoodCatalog
from firstbites.core.errors import AwardWriteError, TransientStoreError
from firstbites.core.evaluator import EvaluationContext
from firstbites.core.ledger import AwardLedger, InMemoryAwardStore
from firstbites.core.models import Award, Criterion, FeedingEvent
from firstbites.core.progress import build_progress_report
from firstbites.core.reconciler import AchievementReconciler
from firstbites.core.settings import EngineSettings

CRITERIA = CriterionCatalog.from_dicts(
    [
        {"id": "first_bite", "criteria": {"type": "total_logs", "value": 1}},
        {"id": "two_logs", "criteria": {"type": "total_logs", "value": 2}},
        {"id": "two_foods", "criteria": {"type": "unique_foods", "value": 2}},
        {"id": "ten_logs", "criteria": {"type": "total_logs", "value": 10}},
    ]
)

EVENTS = [
    FeedingEvent(event_id="e1", subject_id="ava", food_id="apple", logged_date="2024-01-01"),
    FeedingEvent(event_id="e2", subject_id="ava", custom_food_name="Lamb", logged_date="2024-01-02"),
]


class RecordingSink:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def celebrate(self, subject_id: str, criterion: Criterion, award: Award) -> None:
        self.calls.append((subject_id, criterion.criterion_id))


def _report(ledger: AwardLedger):
    context = EvaluationContext(foods=FoodCatalog(), today=date(2024, 1, 2))
    return build_progress_report("ava", EVENTS, CRITERIA, context, awards=ledger.awards_for("ava"))


def test_one_award_per_pass_in_catalog_order() -> None:
    ledger = AwardLedger(sleep=lambda _: None)
    sink = RecordingSink()
    reconciler = AchievementReconciler(ledger, CRITERIA, sink)

    report = _report(ledger)
    assert reconciler.pending(report) == ["first_bite", "two_logs", "two_foods"]

    first = reconciler.reconcile(report, triggering_event_id="e2")
    assert first is not None and first.created
    assert first.award.criterion_id == "first_bite"
    assert first.award.triggering_event_id == "e2"
    assert [a.criterion_id for a in ledger.awards_for("ava")] == ["first_bite"]

    second = reconciler.reconcile(_report(ledger))
    assert second is not None
    assert second.award.criterion_id == "two_logs"

    third = reconciler.reconcile(_report(ledger))
    assert third is not None
    assert third.award.criterion_id == "two_foods"

    assert reconciler.reconcile(_report(ledger)) is None
    assert sink.calls == [("ava", "first_bite"), ("ava", "two_logs"), ("ava", "two_foods")]


def test_stale_report_does_not_celebrate_twice() -> None:
    ledger = AwardLedger(sleep=lambda _: None)
    sink = RecordingSink()
    reconciler = AchievementReconciler(ledger, CRITERIA, sink)
    report = _report(ledger)

    # Another writer records the award between report and reconcile.
    ledger.record_award("ava", "first_bite")
    outcome = reconciler.reconcile(report)
    assert outcome is not None
    assert outcome.award.criterion_id == "two_logs"
    assert sink.calls == [("ava", "two_logs")]


def test_failed_write_leaves_criterion_pending() -> None:
    class DownStore(InMemoryAwardStore):
        def put_if_absent(self, award: Award) -> tuple[Award, bool]:
            raise TransientStoreError("offline")

    ledger = AwardLedger(
        store=DownStore(),
        settings=EngineSettings(award_write_attempts=2),
        sleep=lambda _: None,
    )
    reconciler = AchievementReconciler(ledger, CRITERIA, RecordingSink())
    report = _report(ledger)
    with pytest.raises(AwardWriteError):
        reconciler.reconcile(report)
    assert reconciler.pending(report)[0] == "first_bite"


def test_pending_survives_a_transient_read_failure() -> None:
    class SlowReadStore(InMemoryAwardStore):
        def __init__(self) -> None:
            super().__init__()
            self.failed = False

        def get(self, subject_id: str, criterion_id: str) -> Award | None:
            if not self.failed:
                self.failed = True
                raise TransientStoreError("read timed out")
            return super().get(subject_id, criterion_id)

    ledger = AwardLedger(store=SlowReadStore(), sleep=lambda _: None)
    reconciler = AchievementReconciler(ledger, CRITERIA, RecordingSink())
    outcome = reconciler.reconcile(_report(ledger))
    assert outcome is not None
    assert outcome.award.criterion_id == "first_bite"
