"""Recurrence rules, occurrence deduplication and edit-scope resolution."""

from .const import __version__
from ._client import ExternalCalendarClient
from .codec import decode, encode
from .config import CoreConfig, PropagationConfig, load_config
from .coordinator import OccurrenceCoordinator
from .exceptions import (
    ApiConnectionError,
    ApiResponseError,
    AuthenticationError,
    ConfigError,
    InvalidTransitionError,
    OccurrenceNotFoundError,
    PersistenceError,
    PropagationError,
    RateLimitError,
    RecurrenceCoreError,
)
from .expansion import expand_rule
from .fingerprint import deduplicate, fingerprint
from .inference import infer_rule
from .labels import format_rule_label
from .models import (
    Count,
    DailyRule,
    EditScope,
    MonthlyRule,
    OccurrenceMutation,
    OccurrenceRecord,
    Origin,
    Rule,
    Until,
    WeeklyRule,
    YearlyRule,
)
from .resolver import (
    ApplyResult,
    EditScopeResolver,
    InteractionMode,
    PendingMove,
    PreferredScopeToken,
    resolve_interaction,
)
from .store import InMemoryOccurrenceStore

__all__ = [
    "__version__",
    "ExternalCalendarClient",
    "decode",
    "encode",
    "CoreConfig",
    "PropagationConfig",
    "load_config",
    "OccurrenceCoordinator",
    "ApiConnectionError",
    "ApiResponseError",
    "AuthenticationError",
    "ConfigError",
    "InvalidTransitionError",
    "OccurrenceNotFoundError",
    "PersistenceError",
    "PropagationError",
    "RateLimitError",
    "RecurrenceCoreError",
    "expand_rule",
    "deduplicate",
    "fingerprint",
    "infer_rule",
    "format_rule_label",
    "Count",
    "DailyRule",
    "EditScope",
    "MonthlyRule",
    "OccurrenceMutation",
    "OccurrenceRecord",
    "Origin",
    "Rule",
    "Until",
    "WeeklyRule",
    "YearlyRule",
    "ApplyResult",
    "EditScopeResolver",
    "InteractionMode",
    "PendingMove",
    "PreferredScopeToken",
    "resolve_interaction",
    "InMemoryOccurrenceStore",
]
