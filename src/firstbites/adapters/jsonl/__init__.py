"""JSON / JSON-lines snapshot adapter."""

from firstbites.adapters.jsonl.adapter import JsonLogAdapter

__all__ = ["JsonLogAdapter"]
