"""Human-readable recurrence labels."""

from __future__ import annotations

from datetime import date, tzinfo

from . import codec
from ._time import UTC, to_datetime, weekday_token
from .const import (
    LABEL_DOES_NOT_REPEAT,
    LABEL_SERIES_FALLBACK,
    MONTH_LABELS,
    WEEKDAY_LABELS,
)
from .models import Count, DailyRule, MonthlyRule, Rule, Until, WeeklyRule


def format_rule_label(
    rule_text: str | None,
    anchor_start_at: int,
    series_fallback: bool = False,
    *,
    tz: tzinfo = UTC,
) -> str:
    """Render rule text as a display label such as ``Every week on Mon, Wed``.

    Args:
        rule_text: Rule text, possibly empty or undecodable.
        anchor_start_at: Start of the occurrence being labelled (Unix ms);
            supplies the weekday/day/month when the rule leaves them open.
        series_fallback: The caller knows the occurrence belongs to a series
            even though no rule could be decoded or inferred.
        tz: Timezone the anchor is read in.
    """
    rule = codec.decode(rule_text)
    if rule is None:
        return LABEL_SERIES_FALLBACK if series_fallback else LABEL_DOES_NOT_REPEAT
    return describe_rule(rule, anchor_start_at, tz=tz)


def describe_rule(rule: Rule, anchor_start_at: int, *, tz: tzinfo = UTC) -> str:
    """Label an already decoded rule."""
    label = _base_label(rule, anchor_start_at, tz)
    if isinstance(rule.termination, Until):
        label += f" until {format_month_day(rule.termination.date)}"
    elif isinstance(rule.termination, Count) and rule.termination.count > 0:
        label += f" ({rule.termination.count} times)"
    return label


def format_month_day(value: date) -> str:
    """``Mar 4`` style date, independent of the process locale."""
    return f"{MONTH_LABELS[value.month - 1]} {value.day}"


def _every(interval: int, unit: str) -> str:
    if interval == 1:
        return f"Every {unit}"
    return f"Every {interval} {unit}s"


def _base_label(rule: Rule, anchor_start_at: int, tz: tzinfo) -> str:
    anchor = to_datetime(anchor_start_at, tz)

    if isinstance(rule, DailyRule):
        return _every(rule.interval, "day")

    if isinstance(rule, WeeklyRule):
        weekdays = rule.weekdays or (weekday_token(anchor_start_at, tz),)
        days = ", ".join(WEEKDAY_LABELS[token] for token in weekdays)
        return f"{_every(rule.interval, 'week')} on {days}"

    if isinstance(rule, MonthlyRule):
        month_day = rule.month_day or anchor.day
        return f"{_every(rule.interval, 'month')} on day {month_day}"

    month = rule.month if rule.month and 1 <= rule.month <= 12 else anchor.month
    month_day = rule.month_day or anchor.day
    return (
        f"{_every(rule.interval, 'year')} on "
        f"{MONTH_LABELS[month - 1]} {month_day}"
    )
