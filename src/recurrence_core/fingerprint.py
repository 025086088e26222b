"""Occurrence fingerprints and per-refresh deduplication.

The same real-world occurrence can arrive several times: once from a
local write, again from each external sync. Records are grouped by a
derived key and only the most recently touched record of each group is
kept.
"""

from __future__ import annotations

from collections.abc import Iterable

from ._time import floor_to_minute
from .const import DEFAULT_CALENDAR_ID, FALLBACK_SOURCE_ID
from .models import OccurrenceRecord


def recency_score(occurrence: OccurrenceRecord) -> int:
    """Latest of last-synced and updated, with missing values as 0."""
    return max(occurrence.last_synced_at or 0, occurrence.updated_at or 0)


def fingerprint(
    occurrence: OccurrenceRecord,
    *,
    default_calendar_id: str = DEFAULT_CALENDAR_ID,
) -> str:
    """Return the dedupe key of an occurrence.

    Externally identified occurrences are keyed on their *original* start
    minute, so a dragged copy and a fresh re-sync of the same instance
    collapse together. Everything else falls back to a composite of
    origin, source id, times and title.
    """
    if occurrence.external_id:
        minute = floor_to_minute(occurrence.occurrence_start_at)
        calendar_id = occurrence.calendar_id or default_calendar_id
        return (
            f"{occurrence.origin.value}:{calendar_id}:"
            f"{occurrence.external_id}:{minute}"
        )
    return (
        f"fallback:{occurrence.origin.value}:"
        f"{occurrence.source_id or FALLBACK_SOURCE_ID}:"
        f"{occurrence.start_at}:{occurrence.end_at}:{occurrence.title}"
    )


def deduplicate(
    occurrences: Iterable[OccurrenceRecord],
    *,
    default_calendar_id: str = DEFAULT_CALENDAR_ID,
) -> list[OccurrenceRecord]:
    """Keep the highest-recency record per fingerprint, sorted by start.

    On equal recency the first record seen wins.
    """
    kept: dict[str, OccurrenceRecord] = {}
    for occurrence in occurrences:
        key = fingerprint(occurrence, default_calendar_id=default_calendar_id)
        previous = kept.get(key)
        if previous is None or recency_score(occurrence) > recency_score(previous):
            kept[key] = occurrence
    return sorted(kept.values(), key=lambda o: o.start_at)
