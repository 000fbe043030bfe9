"""Exception types raised by the engine and its stores."""

from __future__ import annotations

from typing import Any, Optional


class FirstBitesError(Exception):
    """Base class for all FirstBites errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class CatalogError(FirstBitesError):
    """A catalog or settings document could not be interpreted."""

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        super().__init__(message, details={"source": source} if source else {})


class EventEditError(FirstBitesError):
    """An edit tried to change a field outside the editable whitelist."""

    def __init__(self, event_id: str, fields: list[str]) -> None:
        message = f"Fields {sorted(fields)} of event '{event_id}' cannot be edited"
        super().__init__(message, details={"event_id": event_id, "fields": sorted(fields)})


class SnapshotParseError(FirstBitesError, ValueError):
    """A snapshot payload could not be decoded at all."""


class UnknownSourceError(FirstBitesError, ValueError):
    """No registered adapter accepts the snapshot metadata."""

    def __init__(self, metadata: dict[str, Any]) -> None:
        super().__init__(f"No snapshot adapter for {metadata}", details={"metadata": dict(metadata)})


class TransientStoreError(FirstBitesError):
    """A store write failed in a way that is safe to retry."""


class AwardWriteError(FirstBitesError):
    """Reading or recording an award failed after all retry attempts."""

    def __init__(self, subject_id: str, criterion_id: str, attempts: int) -> None:
        message = (
            f"Could not record award '{criterion_id}' for subject '{subject_id}' "
            f"after {attempts} attempts"
        )
        super().__init__(
            message,
            details={"subject_id": subject_id, "criterion_id": criterion_id, "attempts": attempts},
        )
