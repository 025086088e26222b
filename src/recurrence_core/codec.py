"""Recurrence rule text codec.

Reads and writes the RRULE subset the scheduler understands: FREQ
(DAILY/WEEKLY/MONTHLY/YEARLY), INTERVAL, BYDAY, BYMONTHDAY, BYMONTH,
UNTIL and COUNT. Anything else is ignored. Text that has no usable FREQ
decodes to ``None``, which callers treat as "does not repeat".
"""

from __future__ import annotations

import logging
import re
from datetime import date

from dateutil.parser import isoparse

from ._time import sort_weekdays
from .const import RRULE_PREFIX, UNTIL_TIME_SUFFIX, WEEKDAY_TOKENS
from .models import (
    Count,
    DailyRule,
    Frequency,
    MonthlyRule,
    Rule,
    Termination,
    Until,
    WeeklyRule,
    YearlyRule,
)

_LOGGER = logging.getLogger(__name__)

_PREFIX_RE = re.compile(r"^RRULE:", re.IGNORECASE)
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def decode(text: str | None) -> Rule | None:
    """Parse rule text into a :data:`Rule`.

    Never raises on malformed input: unknown keys are skipped, unknown
    BYDAY tokens are dropped and unparseable numbers become absent.
    """
    if not text or not text.strip():
        return None

    fields = _split_fields(text)
    raw_freq = fields.get("FREQ")
    try:
        frequency = Frequency(raw_freq) if raw_freq else None
    except ValueError:
        frequency = None
    if frequency is None:
        _LOGGER.debug("No supported FREQ in rule text: %s", text)
        return None

    interval = max(1, _parse_int(fields.get("INTERVAL")) or 1)
    termination = _parse_termination(fields)

    if frequency is Frequency.DAILY:
        return DailyRule(interval=interval, termination=termination)

    if frequency is Frequency.WEEKLY:
        tokens = [
            token.strip()
            for token in (fields.get("BYDAY") or "").split(",")
            if token.strip() in WEEKDAY_TOKENS
        ]
        return WeeklyRule(
            interval=interval,
            weekdays=sort_weekdays(tokens),
            termination=termination,
        )

    month_day = _parse_int(fields.get("BYMONTHDAY"))
    if frequency is Frequency.MONTHLY:
        return MonthlyRule(
            interval=interval, month_day=month_day, termination=termination
        )

    return YearlyRule(
        interval=interval,
        month=_parse_int(fields.get("BYMONTH")),
        month_day=month_day,
        termination=termination,
    )


def encode(rule: Rule | None) -> str:
    """Serialize a rule to ``RRULE:`` text; ``None`` encodes to ``""``.

    UNTIL is widened to the end of its day. Only one termination field can
    be emitted since a rule holds at most one.
    """
    if rule is None:
        return ""

    parts = [f"FREQ={rule.frequency.value}"]
    if rule.interval > 1:
        parts.append(f"INTERVAL={rule.interval}")

    if isinstance(rule, WeeklyRule) and rule.weekdays:
        parts.append(f"BYDAY={','.join(rule.weekdays)}")
    elif isinstance(rule, MonthlyRule) and rule.month_day:
        parts.append(f"BYMONTHDAY={rule.month_day}")
    elif isinstance(rule, YearlyRule):
        if rule.month:
            parts.append(f"BYMONTH={rule.month}")
        if rule.month_day:
            parts.append(f"BYMONTHDAY={rule.month_day}")

    if isinstance(rule.termination, Until):
        parts.append(f"UNTIL={rule.termination.date:%Y%m%d}{UNTIL_TIME_SUFFIX}")
    elif isinstance(rule.termination, Count) and rule.termination.count > 0:
        parts.append(f"COUNT={rule.termination.count}")

    return RRULE_PREFIX + ";".join(parts)


# --------------------------------------------------------------------------- #
#  Parsing helpers
# --------------------------------------------------------------------------- #


def _split_fields(text: str) -> dict[str, str]:
    """Split ``KEY=VALUE;...`` into an upper-cased dict."""
    body = _PREFIX_RE.sub("", text.strip())
    fields: dict[str, str] = {}
    for chunk in body.split(";"):
        key, sep, value = chunk.partition("=")
        key = key.strip()
        value = value.strip()
        if not sep or not key or not value:
            continue
        fields[key.upper()] = value.upper()
    return fields


def _parse_int(value: str | None) -> int | None:
    """Parse the leading integer of ``value``; ``None`` when there is none."""
    if not value:
        return None
    match = _LEADING_INT_RE.match(value)
    if match is None:
        return None
    return int(match.group(1))


def _parse_until(value: str | None) -> date | None:
    """Read the calendar date from an UNTIL value (``YYYYMMDD[THHMMSSZ]``)."""
    raw = (value or "").strip()
    if len(raw) < 8:
        return None
    try:
        return isoparse(raw[:8]).date()
    except (ValueError, OverflowError):
        _LOGGER.debug("Ignoring unparseable UNTIL value: %s", raw)
        return None


def _parse_termination(fields: dict[str, str]) -> Termination:
    until = _parse_until(fields.get("UNTIL"))
    if until is not None:
        return Until(until)
    count = _parse_int(fields.get("COUNT"))
    if count is not None and count > 0:
        return Count(count)
    return None
