"""CSV snapshot adapter."""

from firstbites.adapters.csv_log.adapter import CsvLogAdapter

__all__ = ["CsvLogAdapter"]
