"""Snapshot adapters keyed by source id, and the one place a raw export is matched to one."""

import logging
from typing import Any, Optional

from firstbites.core.errors import UnknownSourceError
from firstbites.core.interfaces import SnapshotAdapter
from firstbites.core.models import FeedingEvent

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """
    Snapshot adapters in registration order.

    Selection rules for a metadata dict:
    - a 'source' naming a registered adapter picks that adapter outright
    - otherwise the earliest-registered adapter whose can_parse accepts it
    """

    def __init__(self, *adapters: SnapshotAdapter) -> None:
        self._by_source: dict[str, SnapshotAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: SnapshotAdapter) -> None:
        source = adapter.source_id()
        if source in self._by_source:
            raise ValueError(f"Source '{source}' already has an adapter")
        self._by_source[source] = adapter

    def get(self, source_id: str) -> Optional[SnapshotAdapter]:
        return self._by_source.get(source_id)

    def sources(self) -> list[str]:
        return list(self._by_source)

    def find_compatible(self, metadata: dict[str, Any]) -> Optional[SnapshotAdapter]:
        explicit = self._by_source.get(metadata.get("source") or "")
        if explicit is not None:
            return explicit
        return next((a for a in self._by_source.values() if a.can_parse(metadata)), None)

    def select(self, metadata: dict[str, Any]) -> SnapshotAdapter:
        """Like find_compatible, but raises UnknownSourceError when nothing matches."""
        adapter = self.find_compatible(metadata)
        if adapter is None:
            raise UnknownSourceError(metadata)
        return adapter

    def parse(self, raw_bytes: bytes, metadata: dict[str, Any]) -> tuple[FeedingEvent, ...]:
        """Parse a raw export with the selected adapter, keeping log order."""
        adapter = self.select(metadata)
        events = tuple(adapter.parse(raw_bytes, metadata))
        logger.debug("Parsed %s events with the %s adapter", len(events), adapter.source_id())
        return events


def default_registry() -> AdapterRegistry:
    """Registry holding the bundled JSON and CSV snapshot adapters."""
    from firstbites.adapters.csv_log import CsvLogAdapter
    from firstbites.adapters.jsonl import JsonLogAdapter

    return AdapterRegistry(JsonLogAdapter(), CsvLogAdapter())
