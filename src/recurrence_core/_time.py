"""Conversions between Unix-millisecond timestamps and calendar values."""

from __future__ import annotations

from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from .const import MINUTE_MS, WEEKDAY_TOKENS

UTC = ZoneInfo("UTC")


def to_datetime(ts_ms: int, tz: tzinfo = UTC) -> datetime:
    """Convert a Unix-ms timestamp to a tz-aware datetime."""
    return datetime.fromtimestamp(ts_ms / 1000, tz=tz)


def to_timestamp(dt: datetime) -> int:
    """Convert a datetime to Unix milliseconds, treating naive values as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return round(dt.timestamp() * 1000)


def floor_to_minute(ts_ms: int) -> int:
    return (ts_ms // MINUTE_MS) * MINUTE_MS


def weekday_token(ts_ms: int, tz: tzinfo = UTC) -> str:
    """BYDAY token (``MO`` .. ``SU``) of the local day the timestamp falls on."""
    return WEEKDAY_TOKENS[to_datetime(ts_ms, tz).weekday()]


def sort_weekdays(tokens: list[str] | tuple[str, ...]) -> tuple[str, ...]:
    """De-duplicate weekday tokens and order them Monday-first."""
    return tuple(sorted(set(tokens), key=WEEKDAY_TOKENS.index))
