"""Data models for occurrences, recurrence rules and edit scopes."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date
from typing import Any, ClassVar


class Origin(enum.StrEnum):
    """Where an occurrence record came from.

    ``TASK`` and ``HABIT`` are blocks generated by the scheduler.
    """

    MANUAL = "manual"
    EXTERNAL = "external"
    TASK = "task"
    HABIT = "habit"

    @property
    def is_generated(self) -> bool:
        return self in (Origin.TASK, Origin.HABIT)


class EditScope(enum.StrEnum):
    """Blast radius of a mutation to a recurring occurrence."""

    SINGLE = "single"
    FOLLOWING = "following"
    SERIES = "series"


class Frequency(enum.StrEnum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


# --------------------------------------------------------------------------- #
#  Recurrence rules
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class Until:
    """Series ends on this calendar date (inclusive)."""

    date: date


@dataclass(frozen=True)
class Count:
    """Series ends after this many occurrences."""

    count: int


Termination = Until | Count | None


@dataclass(frozen=True)
class DailyRule:
    interval: int = 1
    termination: Termination = None

    frequency: ClassVar[Frequency] = Frequency.DAILY


@dataclass(frozen=True)
class WeeklyRule:
    """Weekly rule. An empty ``weekdays`` tuple means the anchor's weekday."""

    interval: int = 1
    weekdays: tuple[str, ...] = ()
    termination: Termination = None

    frequency: ClassVar[Frequency] = Frequency.WEEKLY


@dataclass(frozen=True)
class MonthlyRule:
    interval: int = 1
    month_day: int | None = None
    termination: Termination = None

    frequency: ClassVar[Frequency] = Frequency.MONTHLY


@dataclass(frozen=True)
class YearlyRule:
    interval: int = 1
    month: int | None = None
    month_day: int | None = None
    termination: Termination = None

    frequency: ClassVar[Frequency] = Frequency.YEARLY


Rule = DailyRule | WeeklyRule | MonthlyRule | YearlyRule


# --------------------------------------------------------------------------- #
#  Occurrences
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class OccurrenceRecord:
    """One concrete time block, possibly part of a recurring series."""

    id: str
    start_at: int  # Unix milliseconds
    end_at: int  # Unix milliseconds
    title: str = ""
    origin: Origin = Origin.MANUAL
    series_id: str | None = None
    source_id: str | None = None
    external_id: str | None = None
    original_start_at: int | None = None  # Pre-edit start of an external occurrence
    recurrence_rule: str | None = None  # Only set on the series exemplar
    last_synced_at: int | None = None
    updated_at: int | None = None
    calendar_id: str | None = None
    color: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> OccurrenceRecord:
        """Construct from a snake_case payload.

        A payload that carries a rule but no series id is treated as the
        exemplar of its own series.
        """
        occurrence_id = str(data["id"])
        rule = (data.get("recurrence_rule") or "").strip() or None
        series_id = data.get("series_id")
        if rule and not series_id:
            series_id = occurrence_id
        return cls(
            id=occurrence_id,
            start_at=int(data["start_at"]),
            end_at=int(data["end_at"]),
            title=data.get("title") or "",
            origin=_parse_origin(data.get("origin")),
            series_id=str(series_id) if series_id else None,
            source_id=data.get("source_id"),
            external_id=data.get("external_id"),
            original_start_at=data.get("original_start_at"),
            recurrence_rule=rule,
            last_synced_at=data.get("last_synced_at"),
            updated_at=data.get("updated_at"),
            calendar_id=data.get("calendar_id"),
            color=data.get("color"),
        )

    @property
    def is_recurring(self) -> bool:
        """Whether this occurrence belongs to a series."""
        return bool(self.recurrence_rule or self.series_id)

    @property
    def duration_ms(self) -> int:
        """Duration, clamped to zero for inverted records."""
        return max(0, self.end_at - self.start_at)

    @property
    def occurrence_start_at(self) -> int:
        """The series anchor of this occurrence, ignoring later drags."""
        if self.original_start_at is not None:
            return self.original_start_at
        return self.start_at


@dataclass(frozen=True)
class OccurrenceMutation:
    """Fields to create or patch an occurrence.

    Unset (``None``) fields are left untouched by updates. Use
    ``dataclasses.replace()`` to derive modified copies.
    """

    title: str | None = None
    start_at: int | None = None
    end_at: int | None = None
    recurrence_rule: str | None = None
    calendar_id: str | None = None
    color: str | None = None
    series_id: str | None = None
    origin: Origin | None = None

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to a snake_case request body holding only the set fields."""
        body: dict[str, Any] = {
            "title": self.title,
            "start_at": self.start_at,
            "end_at": self.end_at,
            "recurrence_rule": self.recurrence_rule,
            "calendar_id": self.calendar_id,
            "color": self.color,
            "series_id": self.series_id,
            "origin": self.origin.value if self.origin is not None else None,
        }
        return {key: value for key, value in body.items() if value is not None}


def _parse_origin(value: Any) -> Origin:
    """Parse an origin, defaulting to MANUAL for unknown values."""
    if value is None:
        return Origin.MANUAL
    try:
        return Origin(str(value).lower())
    except ValueError:
        return Origin.MANUAL
