"""JSON / JSON-lines feeding-log snapshot adapter."""

from __future__ import annotations

import json
import logging
from typing import Any

from firstbites.adapters.records import event_from_dict
from firstbites.core.errors import SnapshotParseError
from firstbites.core.models import FeedingEvent

logger = logging.getLogger(__name__)


class JsonLogAdapter:
    """
    Adapter for log exports as a JSON array, a {"logs": [...]} document, or JSON lines.

    Field names follow the app export (camelCase: babyId, foodId, loggedDate,
    servingMethods, isFirstTime, createdAt); snake_case is accepted too.
    Rows that cannot be interpreted are skipped with a warning.
    """

    def source_id(self) -> str:
        return "jsonl"

    def can_parse(self, metadata: dict[str, Any]) -> bool:
        if metadata.get("source") in {"jsonl", "json"}:
            return True
        path = str(metadata.get("file_path") or "")
        return path.endswith((".jsonl", ".json", ".ndjson"))

    def parse(self, raw_bytes: bytes, metadata: dict[str, Any]) -> list[FeedingEvent]:
        """
        Parse a JSON export into events, preserving row order.

        Args:
            raw_bytes: Raw JSON or JSON-lines bytes
            metadata: Context; 'subject_id' fills rows without one

        Returns:
            List of FeedingEvent records

        Raises:
            SnapshotParseError: If the payload is not decodable JSON
        """
        try:
            text = raw_bytes.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise SnapshotParseError(f"Failed to decode log export: {exc}") from exc

        rows = self._rows(text)
        default_subject = metadata.get("subject_id")
        events: list[FeedingEvent] = []
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                logger.warning("Skipping row %s: not an object", index)
                continue
            try:
                events.append(event_from_dict(row, default_subject))
            except ValueError as exc:
                logger.warning("Skipping row %s: %s", index, exc)
        return events

    def _rows(self, text: str) -> list[Any]:
        stripped = text.strip()
        if not stripped:
            return []
        if stripped[0] in "[{":
            try:
                document = json.loads(stripped)
            except json.JSONDecodeError:
                document = None
            if isinstance(document, list):
                return document
            if isinstance(document, dict):
                logs = document.get("logs")
                return logs if isinstance(logs, list) else [document]

        rows: list[Any] = []
        for number, line in enumerate(stripped.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                rows.append(json.loads(line))
            except json.JSONDecodeError as exc:
                raise SnapshotParseError(f"Invalid JSON on line {number}: {exc.msg}") from exc
        return rows
