"""Tests for the JSON and CSV snapshot adapters and the adapter registry."""

import json
from pathlib import Path

import pytest

from firstbites.adapters.csv_log import CsvLogAdapter
from firstbites.adapters.jsonl import JsonLogAdapter
from firstbites.adapters.records import event_from_dict
from firstbites.core.errors import SnapshotParseError, UnknownSourceError
from firstbites.core.interfaces import SnapshotAdapter
from firstbites.core.models import FeedingResponse, MealSlot, ServingMethod
from firstbites.core.registry import AdapterRegistry, default_registry

ADAPTERS = Path(__file__).resolve().parents[1] / "src" / "firstbites" / "adapters"
JSONL_FIXTURE = ADAPTERS / "jsonl" / "fixtures" / "sample_log.jsonl"
CSV_FIXTURE = ADAPTERS / "csv_log" / "fixtures" / "sample_log.csv"


def test_adapters_satisfy_protocol() -> None:
    assert isinstance(JsonLogAdapter(), SnapshotAdapter)
    assert isinstance(CsvLogAdapter(), SnapshotAdapter)


def test_jsonl_fixture_parses_in_order() -> None:
    events = JsonLogAdapter().parse(JSONL_FIXTURE.read_bytes(), {"source": "jsonl"})
    assert [e.event_id for e in events] == ["log1", "log2", "log3", "log4", "log5"]

    first = events[0]
    assert first.subject_id == "ava"
    assert first.food_id == "apple"
    assert first.meal_slot == MealSlot.BREAKFAST
    assert first.serving_methods == (ServingMethod.MASHED,)
    assert first.response == FeedingResponse.LOVED
    assert first.is_first_time
    assert first.created_at is not None

    assert events[1].custom_food_name == "Mango"
    assert events[1].serving_methods == (ServingMethod.STICK, ServingMethod.OTHER)
    assert events[3].logged_on is None


def test_jsonl_skips_rows_that_cannot_be_interpreted() -> None:
    rows = [
        {"id": "ok", "babyId": "ava", "foodId": "apple", "loggedDate": "2024-01-01"},
        {"babyId": "ava", "foodId": "apple"},
        {"id": "bad-response", "babyId": "ava", "foodId": "apple", "response": "ecstatic"},
        "not an object",
    ]
    payload = json.dumps({"logs": rows}).encode("utf-8")
    events = JsonLogAdapter().parse(payload, {})
    assert [e.event_id for e in events] == ["ok"]
    assert events[0].response == FeedingResponse.MEH


def test_jsonl_array_and_default_subject() -> None:
    payload = json.dumps([{"id": "a", "foodId": "egg", "loggedDate": "2024-01-01"}]).encode("utf-8")
    events = JsonLogAdapter().parse(payload, {"subject_id": "ben"})
    assert events[0].subject_id == "ben"


def test_jsonl_invalid_line_raises() -> None:
    with pytest.raises(SnapshotParseError):
        JsonLogAdapter().parse(b'{"id": "a", "babyId": "ava"}\n{broken\n', {})
    with pytest.raises(SnapshotParseError):
        JsonLogAdapter().parse(b"\xff\xfe\x00garbage", {})


def test_csv_fixture_parses_and_skips_rows_without_subject() -> None:
    events = CsvLogAdapter().parse(CSV_FIXTURE.read_bytes(), {"source": "csv"})
    assert [e.event_id for e in events] == ["log1", "log2"]
    assert events[0].serving_methods == (ServingMethod.STICK, ServingMethod.MASHED)
    assert events[0].meal_slot == MealSlot.DINNER
    assert events[0].notes == "flaked"
    assert events[1].food_id is None
    assert events[1].custom_food_name == "Lamb Kofta"
    assert events[1].meal_slot is None


def test_csv_default_subject_fills_missing_baby_id() -> None:
    events = CsvLogAdapter().parse(CSV_FIXTURE.read_bytes(), {"subject_id": "cal"})
    assert [e.subject_id for e in events] == ["ava", "ava", "cal"]


def test_csv_without_header_raises() -> None:
    with pytest.raises(SnapshotParseError):
        CsvLogAdapter().parse(b"", {})


def test_event_from_dict_merges_legacy_serving_method() -> None:
    event = event_from_dict(
        {
            "id": "x",
            "subject_id": "ava",
            "food_id": "apple",
            "servingMethod": "stick",
            "servingMethods": "mashed; stick",
            "isFirstTime": "yes",
        }
    )
    assert event.serving_methods == (ServingMethod.STICK, ServingMethod.MASHED)
    assert event.is_first_time


def test_registry_lookup() -> None:
    registry = default_registry()
    assert isinstance(registry.find_compatible({"file_path": "log.csv"}), CsvLogAdapter)
    assert isinstance(registry.find_compatible({"file_path": "log.jsonl"}), JsonLogAdapter)
    assert isinstance(registry.find_compatible({"source": "csv", "file_path": "log.txt"}), CsvLogAdapter)
    assert registry.find_compatible({"file_path": "log.xml"}) is None

    with pytest.raises(ValueError):
        registry.register(CsvLogAdapter())

    assert registry.sources() == ["jsonl", "csv"]
    empty = AdapterRegistry()
    assert empty.get("csv") is None
    assert empty.sources() == []


def test_registry_explicit_source_wins_over_suffix_match() -> None:
    registry = default_registry()
    assert isinstance(registry.select({"source": "csv", "file_path": "log.jsonl"}), CsvLogAdapter)
    with pytest.raises(UnknownSourceError):
        registry.select({"file_path": "log.xml"})
    events = registry.parse(CSV_FIXTURE.read_bytes(), {"source": "csv", "file_path": "log.jsonl"})
    assert events == tuple(CsvLogAdapter().parse(CSV_FIXTURE.read_bytes(), {}))
