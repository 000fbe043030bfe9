"""Progress aggregation across the full criterion catalog."""

from __future__ import annotations

from typing import Iterable, Sequence

from firstbites.core.catalog import CriterionCatalog
from firstbites.core.evaluator import CriteriaEvaluator, EvaluationContext
from firstbites.core.models import Award, CriterionProgress, FeedingEvent, ProgressReport


def build_progress_report(
    subject_id: str,
    events: Sequence[FeedingEvent],
    criteria: CriterionCatalog,
    context: EvaluationContext,
    awards: Iterable[Award] = (),
    evaluator: CriteriaEvaluator | None = None,
) -> ProgressReport:
    """
    Evaluate every criterion for one subject, in catalog order.

    A row is reported earned when the ledger holds an award for it or the
    evaluator says it is earned now; awards therefore stay earned even if the
    data later stops satisfying the criterion.

    Args:
        subject_id: Subject the events belong to
        events: The subject's events, in log order
        criteria: Criterion catalog
        context: Foods, today and the subject's sync events
        awards: Awards already recorded for the subject
        evaluator: Evaluator stage (default CriteriaEvaluator)

    Returns:
        ProgressReport with one row per criterion
    """
    evaluator = evaluator or CriteriaEvaluator()
    awarded = {award.criterion_id: award for award in awards if award.subject_id == subject_id}

    report = ProgressReport(subject_id=subject_id)
    for criterion in criteria:
        result = evaluator.evaluate(events, criterion, context)
        award = awarded.get(criterion.criterion_id)
        report.rows.append(
            CriterionProgress(
                criterion_id=criterion.criterion_id,
                earned=award is not None or result.earned,
                current=result.current,
                target=result.target,
                progress_pct=result.progress_pct,
                evaluator_earned=result.earned,
                earned_date=award.earned_at if award else None,
            )
        )
    return report
