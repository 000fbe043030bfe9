"""Calendar-date helpers shared by the date-based computations."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import Any, Iterable

from dateutil import parser as date_parser


# YYYY-MM-DD, optionally followed by a time part.
_CALENDAR_DATE = re.compile(r"\d{4}-\d{2}-\d{2}(?:T.*)?\Z")


@lru_cache(maxsize=4096)
def _parse_iso(value: str) -> date | None:
    if not _CALENDAR_DATE.match(value):
        return None
    try:
        return date_parser.isoparse(value).date()
    except (ValueError, TypeError, OverflowError):
        return None


def parse_logged_date(value: Any) -> date | None:
    """
    Parse a logged date into a calendar date.

    Accepts date/datetime objects and YYYY-MM-DD strings, optionally with a
    trailing time part. Anything else, including partial or week dates such
    as "2024-01" or "2024-W01-1", yields None so callers can drop the value.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return _parse_iso(str(value).strip())


def parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return date_parser.isoparse(str(value))
    except (ValueError, TypeError, OverflowError):
        return None


def days_between(earlier: date, later: date) -> int:
    """Whole calendar days from earlier to later (negative if reversed)."""
    return (later - earlier).days


def distinct_dates(values: Iterable[date | None]) -> list[date]:
    """Sorted distinct dates, dropping missing values."""
    return sorted({value for value in values if value is not None})


def longest_consecutive_run(dates: Iterable[date]) -> int:
    """
    Length of the longest run of dates that each follow the previous by one day.

    Duplicates are ignored; a gap of two or more days starts a new run.
    """
    ordered = distinct_dates(dates)
    longest = 0
    run = 0
    previous: date | None = None
    for current in ordered:
        if previous is not None and current - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = current
    return longest
