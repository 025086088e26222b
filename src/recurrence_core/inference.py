"""Recurrence inference for series whose rule text is not available.

External calendars often ship the instances of a recurring appointment
without the rule, or the exemplar carrying the rule falls outside the
loaded window. The cadence is then guessed from the spacing of the
loaded instances. The result is for display and as an editing default,
never as a scheduling input.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Iterable
from datetime import tzinfo

from . import codec
from ._time import UTC, sort_weekdays, to_datetime, weekday_token
from .const import DAY_MS
from .models import DailyRule, MonthlyRule, OccurrenceRecord, Rule, WeeklyRule

_LOGGER = logging.getLogger(__name__)

_WEEKLY_GAPS = range(6, 9)
_MONTHLY_GAPS = range(27, 32)


def infer_rule(
    target: OccurrenceRecord,
    occurrences: Iterable[OccurrenceRecord],
    *,
    tz: tzinfo = UTC,
) -> str | None:
    """Infer rule text for ``target`` from the other instances of its series.

    Returns ``None`` when the target has no series id, fewer than two
    instances are loaded, or the dominant gap matches no supported cadence.
    """
    if not target.series_id:
        return None

    series = sorted(
        (o for o in occurrences if o.series_id == target.series_id),
        key=lambda o: o.start_at,
    )
    if len(series) < 2:
        return None

    gap = _dominant_gap(series)
    rule = _classify(gap, series, target, tz) if gap is not None else None
    if rule is None:
        _LOGGER.debug(
            "No cadence inferred for series %s (dominant gap: %s days)",
            target.series_id,
            gap,
        )
        return None
    return codec.encode(rule)


def _day_gaps(series: list[OccurrenceRecord]) -> list[int]:
    """Whole-day gaps between consecutive starts, rounded half-up."""
    return [
        math.floor((current.start_at - previous.start_at) / DAY_MS + 0.5)
        for previous, current in zip(series, series[1:])
    ]


def _dominant_gap(series: list[OccurrenceRecord]) -> int | None:
    """Most frequent positive gap; ties go to the smallest gap."""
    counts = Counter(gap for gap in _day_gaps(series) if gap > 0)
    if not counts:
        return None
    return min(counts, key=lambda gap: (-counts[gap], gap))


def _classify(
    gap: int,
    series: list[OccurrenceRecord],
    target: OccurrenceRecord,
    tz: tzinfo,
) -> Rule | None:
    if gap == 1:
        return DailyRule()
    if gap in _WEEKLY_GAPS:
        weekdays = sort_weekdays([weekday_token(o.start_at, tz) for o in series])
        return WeeklyRule(weekdays=weekdays)
    if gap in _MONTHLY_GAPS:
        return MonthlyRule(month_day=to_datetime(target.start_at, tz).day)
    return None
