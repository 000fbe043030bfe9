"""CSV feeding-log snapshot adapter."""

from __future__ import annotations

import csv
import io
import logging
from typing import Any

from firstbites.adapters.records import event_from_dict
from firstbites.core.errors import SnapshotParseError
from firstbites.core.models import FeedingEvent

logger = logging.getLogger(__name__)


class CsvLogAdapter:
    """
    Adapter for log exports in CSV form.

    Expected columns (case/space tolerant, camelCase or snake_case):
    - id, babyId / subject_id
    - foodId, customFoodName
    - loggedDate
    - mealTime
    - servingMethods (comma or semicolon separated) and/or servingMethod
    - response, isFirstTime, notes, createdAt
    """

    def source_id(self) -> str:
        return "csv"

    def can_parse(self, metadata: dict[str, Any]) -> bool:
        return metadata.get("source") == "csv" or str(metadata.get("file_path") or "").endswith(".csv")

    def parse(self, raw_bytes: bytes, metadata: dict[str, Any]) -> list[FeedingEvent]:
        try:
            text = raw_bytes.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise SnapshotParseError(f"Failed to decode log CSV: {exc}") from exc

        reader = csv.DictReader(io.StringIO(text))
        if not reader.fieldnames:
            raise SnapshotParseError("Log CSV has no header row")

        default_subject = metadata.get("subject_id")
        events: list[FeedingEvent] = []
        for line_number, row in enumerate(reader, start=2):
            normalized = {self._normalize_header(k): v for k, v in row.items() if k is not None}
            try:
                events.append(event_from_dict(normalized, default_subject))
            except ValueError as exc:
                logger.warning("Skipping CSV line %s: %s", line_number, exc)
        return events

    def _normalize_header(self, value: str) -> str:
        header = value.strip()
        if " " in header:
            return "_".join(header.lower().split())
        return header
