"""Cross-subject correlation: subjects trying the same new food on the same day."""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Iterable

from firstbites.core.models import FeedingEvent, SyncEvent


def find_sync_events(events: Iterable[FeedingEvent]) -> list[SyncEvent]:
    """
    Group first-time catalog-food events by (date, food id) across all subjects.

    A group holding at least two distinct subjects is a sync event. Events
    with a malformed date or without a food id never take part.
    """
    groups: dict[tuple[date, str], list[str]] = defaultdict(list)
    for event in events:
        if not event.is_first_time or not event.food_id:
            continue
        logged_on = event.logged_on
        if logged_on is None:
            continue
        subjects = groups[(logged_on, event.food_id)]
        if event.subject_id not in subjects:
            subjects.append(event.subject_id)

    syncs = [
        SyncEvent(logged_on=logged_on, food_id=food_id, subject_ids=tuple(subjects))
        for (logged_on, food_id), subjects in groups.items()
        if len(subjects) >= 2
    ]
    syncs.sort(key=lambda sync: (sync.logged_on, sync.food_id))
    return syncs


def sync_events_for(subject_id: str, syncs: Iterable[SyncEvent]) -> list[SyncEvent]:
    return [sync for sync in syncs if subject_id in sync.subject_ids]
