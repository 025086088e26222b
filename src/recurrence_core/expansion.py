"""Expand a recurrence rule into concrete occurrence windows.

Uses ``dateutil.rrule`` on the encoded rule text. Expansion runs in UTC;
wall-clock preservation across DST changes is out of scope.
"""

from __future__ import annotations

import logging

from dateutil.rrule import rrulestr

from . import codec
from ._time import to_datetime, to_timestamp
from .models import Rule

_LOGGER = logging.getLogger(__name__)


def expand_rule(
    rule: Rule | None,
    anchor_start_at: int,
    duration_ms: int,
    range_start: int,
    range_end: int,
) -> list[tuple[int, int]]:
    """Return ``(start_at, end_at)`` windows of ``rule`` within a range.

    Args:
        rule: Decoded rule; ``None`` expands to nothing.
        anchor_start_at: Start of the first occurrence (Unix ms).
        duration_ms: Length of each occurrence; negative values clamp to 0.
        range_start: Inclusive lower bound for occurrence starts (Unix ms).
        range_end: Inclusive upper bound for occurrence starts (Unix ms).
    """
    if rule is None or range_end < range_start:
        return []

    text = codec.encode(rule)
    try:
        recurrence = rrulestr(text, dtstart=to_datetime(anchor_start_at))
    except (ValueError, TypeError):
        _LOGGER.debug("Failed to expand rule: %s", text)
        return []

    duration = max(0, duration_ms)
    starts = recurrence.between(
        to_datetime(range_start), to_datetime(range_end), inc=True
    )
    return [(to_timestamp(start), to_timestamp(start) + duration) for start in starts]
