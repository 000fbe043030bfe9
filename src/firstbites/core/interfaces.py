"""Protocol definitions for snapshot adapters, stores and side-effect sinks."""

from typing import Any, Callable, Optional, Protocol, runtime_checkable

from firstbites.core.models import (
    AllergenOverride,
    AllergenType,
    Award,
    Criterion,
    FeedingEvent,
)


@runtime_checkable
class SnapshotAdapter(Protocol):
    """
    Adapter protocol: converts a raw log export into FeedingEvent records.

    Each adapter is responsible for:
    - Identifying whether it can parse given data
    - Extracting structure from the raw format
    - Producing immutable FeedingEvent records in log order
    """

    def source_id(self) -> str:
        """
        Return a unique identifier for this adapter's format.

        Examples: 'jsonl', 'csv'
        """
        ...

    def can_parse(self, metadata: dict[str, Any]) -> bool:
        """
        Determine if this adapter can parse data with the given metadata.

        Args:
            metadata: Context about the raw data (e.g., {'source': 'jsonl', 'file_path': 'log.jsonl'})

        Returns:
            True if this adapter recognizes the format, False otherwise.
        """
        ...

    def parse(self, raw_bytes: bytes, metadata: dict[str, Any]) -> list[FeedingEvent]:
        """
        Parse raw data and emit FeedingEvent records.

        Args:
            raw_bytes: Raw bytes of the export
            metadata: Context (file path, default subject id)

        Returns:
            Events in the order they appear in the export

        Raises:
            SnapshotParseError: If the payload cannot be decoded at all
        """
        ...


@runtime_checkable
class AwardStore(Protocol):
    """Persistence backend for the award ledger."""

    def get(self, subject_id: str, criterion_id: str) -> Optional[Award]:
        """Return the stored award for the pair, or None."""
        ...

    def put_if_absent(self, award: Award) -> tuple[Award, bool]:
        """
        Store the award unless one already exists for (subject, criterion).

        This is a compare-and-set: concurrent callers for the same pair all
        receive the single award that won, and only the winner sees True.

        Returns:
            (stored award, True if this call inserted it)

        Raises:
            TransientStoreError: If the write failed and may be retried
        """
        ...

    def list_for_subject(self, subject_id: str) -> list[Award]:
        """Return all awards recorded for a subject."""
        ...


@runtime_checkable
class OverrideStore(Protocol):
    """Persistence backend for allergen override records."""

    def get(self, subject_id: str, allergen_type: AllergenType) -> Optional[AllergenOverride]:
        ...

    def put(self, override: AllergenOverride) -> AllergenOverride:
        """Replace the live record for (subject, allergen type)."""
        ...

    def update(
        self,
        subject_id: str,
        allergen_type: AllergenType,
        mutate: Callable[[AllergenOverride], None],
        create: bool = True,
    ) -> Optional[AllergenOverride]:
        """
        Apply mutate to the live record atomically and return a copy of the result.

        A missing record starts from defaults when create is true; otherwise
        nothing is written and None is returned.
        """
        ...


@runtime_checkable
class CelebrationSink(Protocol):
    """Receives newly recorded awards (e.g. to show a celebration)."""

    def celebrate(self, subject_id: str, criterion: Criterion, award: Award) -> None:
        ...
