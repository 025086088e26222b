"""Rule construction from menu presets and custom recurrence drafts.

These are the only paths through which the product builds new rules, so
every rule they return survives a codec round-trip unchanged.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, tzinfo
from typing import Any

import voluptuous as vol
from dateutil.relativedelta import relativedelta

from ._time import UTC, sort_weekdays, to_datetime, weekday_token
from .const import (
    DEFAULT_DRAFT_COUNT,
    DEFAULT_DRAFT_UNTIL_MONTHS,
    LABEL_DOES_NOT_REPEAT,
    WEEKDAY_LABELS,
    WEEKDAY_TOKENS,
    WORKWEEK_TOKENS,
)
from .exceptions import ConfigError
from .labels import format_month_day
from .models import (
    Count,
    DailyRule,
    Frequency,
    MonthlyRule,
    Rule,
    Until,
    WeeklyRule,
    YearlyRule,
)


class RecurrencePreset(enum.StrEnum):
    """Entries of the quick recurrence menu."""

    NONE = "none"
    DAILY = "daily"
    WEEKDAYS = "weekdays"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class EndsMode(enum.StrEnum):
    NEVER = "never"
    ON = "on"
    AFTER = "after"


@dataclass(frozen=True)
class CustomRecurrenceDraft:
    """State of the custom recurrence editor."""

    interval: int
    frequency: Frequency
    weekdays: tuple[str, ...]
    ends_mode: EndsMode
    until_date: date
    count: int


# --------------------------------------------------------------------------- #
#  Presets
# --------------------------------------------------------------------------- #


def rule_from_preset(
    preset: RecurrencePreset,
    anchor_start_at: int,
    *,
    tz: tzinfo = UTC,
) -> Rule | None:
    """Build the rule a preset stands for, anchored on ``anchor_start_at``."""
    anchor = to_datetime(anchor_start_at, tz)
    weekday = weekday_token(anchor_start_at, tz)

    if preset is RecurrencePreset.DAILY:
        return DailyRule()
    if preset is RecurrencePreset.WEEKDAYS:
        return WeeklyRule(weekdays=WORKWEEK_TOKENS)
    if preset is RecurrencePreset.WEEKLY:
        return WeeklyRule(weekdays=(weekday,))
    if preset is RecurrencePreset.BIWEEKLY:
        return WeeklyRule(interval=2, weekdays=(weekday,))
    if preset is RecurrencePreset.MONTHLY:
        return MonthlyRule(month_day=anchor.day)
    if preset is RecurrencePreset.YEARLY:
        return YearlyRule(month=anchor.month, month_day=anchor.day)
    return None


def preset_label(
    preset: RecurrencePreset,
    anchor_start_at: int,
    *,
    tz: tzinfo = UTC,
) -> str:
    """Menu label of a preset for the given anchor."""
    anchor = to_datetime(anchor_start_at, tz)
    weekday = WEEKDAY_LABELS[weekday_token(anchor_start_at, tz)]
    labels = {
        RecurrencePreset.NONE: LABEL_DOES_NOT_REPEAT,
        RecurrencePreset.DAILY: "Every day",
        RecurrencePreset.WEEKDAYS: "Every weekday Mon-Fri",
        RecurrencePreset.WEEKLY: f"Every week on {weekday}",
        RecurrencePreset.BIWEEKLY: f"Every 2 weeks on {weekday}",
        RecurrencePreset.MONTHLY: f"Every month on the {ordinal(anchor.day)}",
        RecurrencePreset.YEARLY: f"Every year on {format_month_day(anchor.date())}",
    }
    return labels[preset]


def ordinal(value: int) -> str:
    """``1st``, ``2nd``, ``11th``, ``23rd`` ..."""
    if 11 <= abs(value) % 100 <= 13:
        return f"{value}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(abs(value) % 10, "th")
    return f"{value}{suffix}"


_LEGACY_FREQUENCIES: dict[str, Rule] = {
    "daily": DailyRule(),
    "weekly": WeeklyRule(),
    "biweekly": WeeklyRule(interval=2),
    "monthly": MonthlyRule(),
}


def rule_from_legacy_frequency(frequency: str | None) -> Rule:
    """Map a legacy habit frequency name to a rule; unknown names are weekly."""
    return _LEGACY_FREQUENCIES.get((frequency or "").strip().lower(), WeeklyRule())


# --------------------------------------------------------------------------- #
#  Custom drafts
# --------------------------------------------------------------------------- #


def default_until_date(anchor_start_at: int, *, tz: tzinfo = UTC) -> date:
    """Until date offered by the editor: three months after the anchor."""
    anchor = to_datetime(anchor_start_at, tz).date()
    return anchor + relativedelta(months=DEFAULT_DRAFT_UNTIL_MONTHS)


def draft_from_rule(
    rule: Rule | None,
    anchor_start_at: int,
    *,
    tz: tzinfo = UTC,
) -> CustomRecurrenceDraft:
    """Seed the custom editor from an existing rule (weekly when there is none)."""
    fallback_weekday = weekday_token(anchor_start_at, tz)
    frequency = rule.frequency if rule is not None else Frequency.WEEKLY

    weekdays: tuple[str, ...] = (fallback_weekday,)
    if isinstance(rule, WeeklyRule) and rule.weekdays:
        weekdays = rule.weekdays

    termination = rule.termination if rule is not None else None
    if isinstance(termination, Count):
        ends_mode = EndsMode.AFTER
    elif isinstance(termination, Until):
        ends_mode = EndsMode.ON
    else:
        ends_mode = EndsMode.NEVER

    return CustomRecurrenceDraft(
        interval=rule.interval if rule is not None else 1,
        frequency=frequency,
        weekdays=weekdays,
        ends_mode=ends_mode,
        until_date=(
            termination.date
            if isinstance(termination, Until)
            else default_until_date(anchor_start_at, tz=tz)
        ),
        count=termination.count if isinstance(termination, Count) else DEFAULT_DRAFT_COUNT,
    )


def rule_from_draft(
    draft: CustomRecurrenceDraft,
    anchor_start_at: int,
    *,
    tz: tzinfo = UTC,
) -> Rule:
    """Turn a saved custom draft into a rule.

    Day-of-month and month come from the anchor; an empty weekly day
    selection falls back to the anchor's weekday.
    """
    anchor = to_datetime(anchor_start_at, tz)
    interval = max(1, draft.interval)

    termination: Until | Count | None = None
    if draft.ends_mode is EndsMode.ON:
        termination = Until(draft.until_date)
    elif draft.ends_mode is EndsMode.AFTER:
        termination = Count(max(1, draft.count))

    if draft.frequency is Frequency.DAILY:
        return DailyRule(interval=interval, termination=termination)
    if draft.frequency is Frequency.WEEKLY:
        weekdays = [token for token in draft.weekdays if token in WEEKDAY_TOKENS]
        if not weekdays:
            weekdays = [weekday_token(anchor_start_at, tz)]
        return WeeklyRule(
            interval=interval,
            weekdays=sort_weekdays(weekdays),
            termination=termination,
        )
    if draft.frequency is Frequency.MONTHLY:
        return MonthlyRule(
            interval=interval, month_day=anchor.day, termination=termination
        )
    return YearlyRule(
        interval=interval,
        month=anchor.month,
        month_day=anchor.day,
        termination=termination,
    )


DRAFT_SCHEMA = vol.Schema(
    {
        vol.Optional("interval", default=1): vol.All(vol.Coerce(int), vol.Range(min=1)),
        vol.Required("frequency"): vol.All(vol.Strip, vol.Upper, vol.Coerce(Frequency)),
        vol.Optional("weekdays", default=list): [
            vol.All(vol.Strip, vol.Upper, vol.In(WEEKDAY_TOKENS))
        ],
        vol.Optional("ends_mode", default=EndsMode.NEVER.value): vol.All(
            vol.Strip, vol.Lower, vol.Coerce(EndsMode)
        ),
        vol.Optional("until_date"): vol.Any(None, vol.Date()),
        vol.Optional("count", default=DEFAULT_DRAFT_COUNT): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
    }
)


def draft_from_dict(
    data: dict[str, Any],
    anchor_start_at: int,
    *,
    tz: tzinfo = UTC,
) -> CustomRecurrenceDraft:
    """Validate a draft submitted by the editor form.

    Raises:
        ConfigError: If the payload does not match the draft schema.
    """
    try:
        valid = DRAFT_SCHEMA(data)
    except vol.Invalid as err:
        raise ConfigError(f"Invalid recurrence draft: {err}") from err

    until_raw = valid.get("until_date")
    until_date = (
        date.fromisoformat(until_raw)
        if until_raw
        else default_until_date(anchor_start_at, tz=tz)
    )
    return CustomRecurrenceDraft(
        interval=valid["interval"],
        frequency=valid["frequency"],
        weekdays=tuple(valid["weekdays"]),
        ends_mode=valid["ends_mode"],
        until_date=until_date,
        count=valid["count"],
    )
