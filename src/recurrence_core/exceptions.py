"""Exception hierarchy for the recurrence core.

Malformed input data (garbled rule text, missing series ids, empty
occurrence lists) never raises. These exceptions cover collaborator
failures, invalid configuration and contract violations by the caller.
"""

from __future__ import annotations


class RecurrenceCoreError(Exception):
    """Base exception for all recurrence core errors."""


class ConfigError(RecurrenceCoreError):
    """Configuration failed validation."""


class InvalidTransitionError(RecurrenceCoreError):
    """The edit-scope resolver was driven through a transition it does not allow.

    This is a programmer error, e.g. confirming a move that is not pending.
    """


class PersistenceError(RecurrenceCoreError):
    """The persistence collaborator rejected a mutation."""


class OccurrenceNotFoundError(PersistenceError):
    """No stored occurrence matches the requested id.

    Attributes:
        occurrence_id: The id that was looked up.
    """

    def __init__(self, occurrence_id: str) -> None:
        super().__init__(f"Occurrence not found: {occurrence_id}")
        self.occurrence_id = occurrence_id


class PropagationError(RecurrenceCoreError):
    """Pushing a mutation to the external calendar failed."""


class AuthenticationError(PropagationError):
    """The external calendar rejected our credentials."""


class ApiConnectionError(PropagationError):
    """External calendar API is unreachable (network error, DNS, timeout)."""


class ApiResponseError(PropagationError):
    """External calendar API returned an unexpected error response.

    Attributes:
        status_code: HTTP status code, if available.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ApiResponseError):
    """External calendar API returned 429 Too Many Requests.

    Attributes:
        retry_after: Seconds to wait before retrying, if provided by the server.
    """

    def __init__(
        self,
        message: str = "Rate limited",
        *,
        status_code: int = 429,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after
