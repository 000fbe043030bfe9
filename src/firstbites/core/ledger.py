"""Award ledger: write-once record of earned criteria per subject."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

from firstbites.core.errors import AwardWriteError, TransientStoreError
from firstbites.core.interfaces import AwardStore
from firstbites.core.models import Award
from firstbites.core.settings import DEFAULT_SETTINGS, EngineSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class AwardOutcome:
    """Result of record_award: the single stored award and whether this call wrote it."""

    award: Award
    created: bool


class InMemoryAwardStore:
    """Thread-safe award store keyed by (subject, criterion)."""

    def __init__(self) -> None:
        self._awards: dict[tuple[str, str], Award] = {}
        self._lock = threading.Lock()

    def get(self, subject_id: str, criterion_id: str) -> Optional[Award]:
        with self._lock:
            return self._awards.get((subject_id, criterion_id))

    def put_if_absent(self, award: Award) -> tuple[Award, bool]:
        key = (award.subject_id, award.criterion_id)
        with self._lock:
            existing = self._awards.get(key)
            if existing is not None:
                return existing, False
            self._awards[key] = award
            return award, True

    def list_for_subject(self, subject_id: str) -> list[Award]:
        with self._lock:
            awards = [a for (subject, _), a in self._awards.items() if subject == subject_id]
        return sorted(awards, key=lambda a: a.earned_at)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AwardLedger:
    """
    Idempotent award recording on top of an AwardStore.

    Awards are sticky: the ledger never deletes or revokes them. Recording an
    award that already exists is a no-op that returns the existing record.
    """

    def __init__(
        self,
        store: AwardStore | None = None,
        settings: EngineSettings = DEFAULT_SETTINGS,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store if store is not None else InMemoryAwardStore()
        self.settings = settings
        self.clock = clock
        self.sleep = sleep

    def has_award(self, subject_id: str, criterion_id: str) -> bool:
        return self.get_award(subject_id, criterion_id) is not None

    def get_award(self, subject_id: str, criterion_id: str) -> Award | None:
        return self._with_retry(subject_id, criterion_id, lambda: self.store.get(subject_id, criterion_id))

    def awards_for(self, subject_id: str) -> list[Award]:
        return self.store.list_for_subject(subject_id)

    def record_award(
        self,
        subject_id: str,
        criterion_id: str,
        triggering_event_id: str | None = None,
    ) -> AwardOutcome:
        """
        Record that the subject earned the criterion, at most once.

        Both the existence check and the write are retried with linear backoff
        on transient store failures; the store's compare-and-set guarantees a
        retried write never produces a second award.

        Raises:
            AwardWriteError: If every attempt failed transiently
        """
        candidate = Award(
            subject_id=subject_id,
            criterion_id=criterion_id,
            earned_at=self.clock(),
            triggering_event_id=triggering_event_id,
        )

        def write() -> tuple[Award, bool]:
            existing = self.store.get(subject_id, criterion_id)
            if existing is not None:
                return existing, False
            return self.store.put_if_absent(candidate)

        stored, created = self._with_retry(subject_id, criterion_id, write)
        if created:
            logger.info("Recorded award %s for subject %s", criterion_id, subject_id)
        return AwardOutcome(award=stored, created=created)

    def _with_retry(self, subject_id: str, criterion_id: str, operation: Callable[[], T]) -> T:
        attempts = self.settings.award_write_attempts
        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except TransientStoreError as exc:
                logger.warning(
                    "Award store call %s/%s failed (attempt %s/%s): %s",
                    subject_id,
                    criterion_id,
                    attempt,
                    attempts,
                    exc,
                )
                if attempt == attempts:
                    raise AwardWriteError(subject_id, criterion_id, attempts) from exc
                self.sleep(self.settings.award_retry_backoff_seconds * attempt)
        raise AwardWriteError(subject_id, criterion_id, attempts)
