"""Achievement reconciliation: turn newly earned progress into awards, one per pass."""

from __future__ import annotations

import logging
from typing import Optional

from firstbites.core.catalog import CriterionCatalog
from firstbites.core.interfaces import CelebrationSink
from firstbites.core.ledger import AwardLedger, AwardOutcome
from firstbites.core.models import ProgressReport

logger = logging.getLogger(__name__)


class AchievementReconciler:
    """
    Diff a progress report against the ledger and award at most one criterion.

    Only one award is recorded per call so celebrations surface one at a time.
    Callers reconcile again (typically on the next log write) to pick up any
    other criteria that became eligible in the same pass.
    """

    def __init__(
        self,
        ledger: AwardLedger,
        criteria: CriterionCatalog,
        celebrations: Optional[CelebrationSink] = None,
    ) -> None:
        self.ledger = ledger
        self.criteria = criteria
        self.celebrations = celebrations

    def pending(self, report: ProgressReport) -> list[str]:
        """Criterion ids that are earned by the evaluator but not yet awarded, in catalog order."""
        return [
            row.criterion_id
            for row in report.rows
            if row.evaluator_earned and not self.ledger.has_award(report.subject_id, row.criterion_id)
        ]

    def reconcile(
        self,
        report: ProgressReport,
        triggering_event_id: str | None = None,
    ) -> AwardOutcome | None:
        """
        Award the first newly eligible criterion in catalog order.

        Returns:
            The outcome of the single award write, or None when nothing is pending

        Raises:
            AwardWriteError: If the write failed; the ledger is unchanged, so
                the next pass selects the same criterion again
        """
        pending = self.pending(report)
        if not pending:
            return None

        criterion_id = pending[0]
        outcome = self.ledger.record_award(report.subject_id, criterion_id, triggering_event_id)
        if len(pending) > 1:
            logger.debug(
                "Subject %s has %s more eligible criteria; deferring to the next pass",
                report.subject_id,
                len(pending) - 1,
            )

        criterion = self.criteria.get(criterion_id)
        if outcome.created and self.celebrations is not None and criterion is not None:
            self.celebrations.celebrate(report.subject_id, criterion, outcome.award)
        return outcome
