"""CLI helpers for FirstBites."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from dateutil import parser as date_parser

from firstbites.core.catalog import CriterionCatalog, FoodCatalog
from firstbites.core.engine import FeedingEngine
from firstbites.core.errors import FirstBitesError
from firstbites.core.models import FeedingEvent, ProgressReport
from firstbites.core.settings import load_settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="firstbites")
    parser.add_argument("--source", choices=["jsonl", "csv"], default=None)
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument("--settings", default=None, help="YAML file with engine settings")
    subparsers = parser.add_subparsers(dest="command", required=True)

    progress_cmd = subparsers.add_parser("progress", help="Badge progress for one subject")
    _add_snapshot_args(progress_cmd)
    progress_cmd.add_argument("--templates", default=None)

    streak_cmd = subparsers.add_parser("streak", help="Logging streak for one subject")
    _add_snapshot_args(streak_cmd)

    allergens_cmd = subparsers.add_parser("allergens", help="Allergen maintenance status")
    _add_snapshot_args(allergens_cmd)
    allergens_cmd.add_argument("--templates", default=None)
    allergens_cmd.add_argument("--reminders", action="store_true", help="Only allergens due for re-exposure")

    foods_cmd = subparsers.add_parser("foods", help="Fuzzy-search the food catalog")
    foods_cmd.add_argument("query")
    foods_cmd.add_argument("--limit", type=int, default=10)
    foods_cmd.add_argument("--templates", default=None)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return _run(args)
    except (FirstBitesError, OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1


def _add_snapshot_args(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("file")
    cmd.add_argument("--subject", required=True)
    cmd.add_argument("--today", default=None, help="Evaluate as of this date (YYYY-MM-DD)")


def _run(args: argparse.Namespace) -> int:
    if args.command == "foods":
        foods = FoodCatalog.load(args.templates)
        matches = foods.search(args.query, limit=args.limit)
        _print_json([{"food": dataclass_to_dict(food), "score": round(score, 1)} for food, score in matches])
        return 0

    engine = _build_engine(args)
    snapshot = _read_snapshot(engine, args.file, args.source)

    if args.command == "progress":
        _print_json(progress_to_dict(engine.get_progress(snapshot, args.subject)))
        return 0

    if args.command == "streak":
        _print_json(dataclass_to_dict(engine.get_streak(snapshot, args.subject)))
        return 0

    if args.command == "allergens":
        if args.reminders:
            statuses = engine.get_maintenance_reminders(snapshot, args.subject)
        else:
            statuses = engine.tracker.get_all_statuses(snapshot, args.subject)
        _print_json([allergen_status_to_dict(status) for status in statuses])
        return 0

    return 1


def _build_engine(args: argparse.Namespace) -> FeedingEngine:
    templates = getattr(args, "templates", None)
    today = _parse_date(args.today) if args.today else date.today()
    return FeedingEngine(
        foods=FoodCatalog.load(templates),
        criteria=CriterionCatalog.load(templates),
        settings=load_settings(args.settings),
        today=lambda: today,
    )


def _read_snapshot(engine: FeedingEngine, file_path: str, source: str | None) -> tuple[FeedingEvent, ...]:
    metadata: dict[str, Any] = {"file_path": file_path}
    if source:
        metadata["source"] = source
    return engine.load_snapshot(Path(file_path).read_bytes(), metadata)


def _parse_date(value: str) -> date:
    try:
        return date_parser.isoparse(value).date()
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid date: {value!r}") from exc


def _print_json(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")


def progress_to_dict(report: ProgressReport) -> dict[str, Any]:
    next_up = report.next_up
    return {
        "subject_id": report.subject_id,
        "earned_count": report.earned_count,
        "total_count": report.total_count,
        "completion_pct": report.completion_pct,
        "next_up": next_up.criterion_id if next_up else None,
        "rows": [dataclass_to_dict(row) for row in report.rows],
    }


def allergen_status_to_dict(status: Any) -> dict[str, Any]:
    data = dataclass_to_dict(status)
    data["needs_maintenance"] = status.needs_maintenance
    return data


def dataclass_to_dict(obj: Any) -> Any:
    if obj is None:
        return None
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        data = asdict(obj)
        return {key: dataclass_to_dict(value) for key, value in data.items()}
    if isinstance(obj, (list, tuple)):
        return [dataclass_to_dict(value) for value in obj]
    if isinstance(obj, dict):
        return {key: dataclass_to_dict(value) for key, value in obj.items()}
    return obj


if __name__ == "__main__":
    raise SystemExit(main())
