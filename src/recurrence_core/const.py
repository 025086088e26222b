"""Constants for the recurrence core."""

from typing import Final

__version__ = "0.1.0"

RRULE_PREFIX: Final = "RRULE:"

# Monday-first, matches the BYDAY token order used for sorting.
WEEKDAY_TOKENS: Final = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")
WEEKDAY_LABELS: Final = {
    "MO": "Mon",
    "TU": "Tue",
    "WE": "Wed",
    "TH": "Thu",
    "FR": "Fri",
    "SA": "Sat",
    "SU": "Sun",
}
WORKWEEK_TOKENS: Final = ("MO", "TU", "WE", "TH", "FR")
MONTH_LABELS: Final = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

MINUTE_MS: Final = 60 * 1000
DAY_MS: Final = 24 * 60 * MINUTE_MS

# UNTIL is widened to the last second of the day on encode.
UNTIL_TIME_SUFFIX: Final = "T235959Z"

LABEL_DOES_NOT_REPEAT: Final = "Does not repeat"
LABEL_SERIES_FALLBACK: Final = "Part of recurring series"

DEFAULT_CALENDAR_ID: Final = "primary"
FALLBACK_SOURCE_ID: Final = "none"
DEFAULT_PREFERRED_SCOPE_TTL_MS: Final = 300
DEFAULT_TIMEZONE: Final = "UTC"

DEFAULT_DRAFT_COUNT: Final = 10
DEFAULT_DRAFT_UNTIL_MONTHS: Final = 3

# External calendar propagation API
OCCURRENCES_ENDPOINT: Final = "/v1/occurrences"
OCCURRENCE_DETAIL_ENDPOINT: Final = "/v1/occurrences/{occurrence_id}"
OCCURRENCE_MOVE_ENDPOINT: Final = "/v1/occurrences/{occurrence_id}/move"

DEFAULT_THROTTLE_SECONDS: Final = 0.1
DEFAULT_REQUEST_TIMEOUT_SECONDS: Final = 30.0
