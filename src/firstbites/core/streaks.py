"""Day-based logging streaks."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

from firstbites.core.dates import distinct_dates, longest_consecutive_run
from firstbites.core.models import FeedingEvent, StreakReport


def calculate_streak(dates: Iterable[date | None], today: date) -> StreakReport:
    """
    Compute current and longest streaks from logged dates.

    The current streak counts back from today when today has an entry, or
    from yesterday when only yesterday does; otherwise it is 0. Missing
    (malformed) dates are ignored.
    """
    ordered = distinct_dates(dates)
    if not ordered:
        return StreakReport()

    logged = set(ordered)
    yesterday = today - timedelta(days=1)
    is_active_today = today in logged

    current = 0
    if is_active_today or yesterday in logged:
        cursor = today if is_active_today else yesterday
        while cursor in logged:
            current += 1
            cursor -= timedelta(days=1)

    return StreakReport(
        current=current,
        longest=longest_consecutive_run(ordered),
        last_active_date=ordered[-1],
        is_active_today=is_active_today,
    )


def streak_for_events(events: Iterable[FeedingEvent], today: date) -> StreakReport:
    return calculate_streak((event.logged_on for event in events), today)
