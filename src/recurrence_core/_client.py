"""External calendar API client used for propagation."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import aiohttp

from ._serialization import decamelize, mutation_to_payload, record_to_payload
from ._throttle import RequestThrottle
from .config import PropagationConfig
from .const import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_THROTTLE_SECONDS,
    OCCURRENCE_DETAIL_ENDPOINT,
    OCCURRENCE_MOVE_ENDPOINT,
    OCCURRENCES_ENDPOINT,
)
from .exceptions import (
    ApiConnectionError,
    ApiResponseError,
    AuthenticationError,
    RateLimitError,
)
from .models import EditScope, OccurrenceMutation, OccurrenceRecord

_LOGGER = logging.getLogger(__name__)


class ExternalCalendarClient:
    """Async client mirroring occurrence mutations to an external calendar.

    Usage::

        async with ExternalCalendarClient(base_url, token) as client:
            resolver = EditScopeResolver(store, client)

    If no session is provided, the client creates and manages its own.
    The caller is responsible for calling ``async_close()`` when done
    (or use the client as an async context manager).
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        session: aiohttp.ClientSession | None = None,
        *,
        request_interval: float = DEFAULT_THROTTLE_SECONDS,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._owns_session = session is None
        self._session = session or aiohttp.ClientSession()
        self._throttle = RequestThrottle(min_interval=request_interval)
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @classmethod
    def from_config(
        cls,
        config: PropagationConfig,
        session: aiohttp.ClientSession | None = None,
    ) -> ExternalCalendarClient:
        return cls(
            config.base_url,
            config.token,
            session,
            request_interval=config.request_interval,
            timeout=config.timeout,
        )

    async def __aenter__(self) -> ExternalCalendarClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.async_close()

    async def async_close(self) -> None:
        """Close the HTTP session if the client owns it."""
        if self._owns_session:
            await self._session.close()

    # ------------------------------------------------------------------ #
    #  Reading
    # ------------------------------------------------------------------ #

    async def async_get_occurrences(
        self, window_start: int, window_end: int
    ) -> list[OccurrenceRecord]:
        """Fetch the occurrences overlapping a window."""
        data = await self._request(
            "GET",
            OCCURRENCES_ENDPOINT,
            params={"start": str(window_start), "end": str(window_end)},
        )
        if data is None:
            return []
        if isinstance(data, dict):
            data = data.get("occurrences", [])
        if not isinstance(data, list):
            raise ApiResponseError("Unexpected occurrence listing payload")
        try:
            return [OccurrenceRecord.from_api_response(item) for item in data]
        except (AttributeError, KeyError, TypeError, ValueError) as err:
            raise ApiResponseError(f"Malformed occurrence payload: {err!r}") from err

    # ------------------------------------------------------------------ #
    #  Propagation
    # ------------------------------------------------------------------ #

    async def async_create_occurrence(self, record: OccurrenceRecord) -> None:
        await self._request(
            "POST", OCCURRENCES_ENDPOINT, json_body=record_to_payload(record)
        )

    async def async_update_occurrence(
        self, occurrence_id: str, mutation: OccurrenceMutation, scope: EditScope
    ) -> None:
        url = OCCURRENCE_DETAIL_ENDPOINT.format(occurrence_id=occurrence_id)
        await self._request(
            "PATCH",
            url,
            params={"scope": scope.value},
            json_body=mutation_to_payload(mutation),
        )

    async def async_delete_occurrence(
        self, occurrence_id: str, scope: EditScope
    ) -> None:
        url = OCCURRENCE_DETAIL_ENDPOINT.format(occurrence_id=occurrence_id)
        await self._request("DELETE", url, params={"scope": scope.value})

    async def async_move_or_resize(
        self, occurrence_id: str, start_at: int, end_at: int, scope: EditScope
    ) -> None:
        url = OCCURRENCE_MOVE_ENDPOINT.format(occurrence_id=occurrence_id)
        await self._request(
            "POST",
            url,
            json_body={"startAt": start_at, "endAt": end_at, "scope": scope.value},
        )

    # ------------------------------------------------------------------ #
    #  Internal HTTP layer
    # ------------------------------------------------------------------ #

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """Execute an API request with throttling, auth, and serialization.

        Outgoing bodies are expected camelCase already; incoming JSON is
        decamelized.

        Raises:
            AuthenticationError: On 401/403 responses.
            RateLimitError: On 429 responses.
            ApiResponseError: On other non-2xx responses.
            ApiConnectionError: On network errors and timeouts.
        """
        await self._throttle.acquire()

        kwargs: dict[str, Any] = {
            "headers": {
                "Authorization": f"Bearer {self._token}",
                "Accept": "application/json",
            },
            "timeout": self._timeout,
        }
        if params:
            kwargs["params"] = params
        if json_body is not None:
            kwargs["json"] = json_body

        _LOGGER.debug("%s %s", method, path)
        try:
            async with self._session.request(
                method, f"{self._base_url}{path}", **kwargs
            ) as resp:
                if resp.status in (401, 403):
                    raise AuthenticationError(
                        f"Authentication failed: HTTP {resp.status}"
                    )

                if resp.status == 429:
                    raise RateLimitError(
                        retry_after=_parse_retry_after(resp.headers.get("Retry-After")),
                    )

                if resp.status == 204:
                    return None

                if resp.status >= 400:
                    body = await resp.text()
                    raise ApiResponseError(
                        f"API error: HTTP {resp.status} - {body}",
                        status_code=resp.status,
                    )

                if not await resp.read():
                    return None
                try:
                    data = await resp.json(content_type=None)
                except ValueError as err:
                    raise ApiResponseError(
                        f"API error: HTTP {resp.status} - body is not JSON",
                        status_code=resp.status,
                    ) from err
                return decamelize(data)

        except aiohttp.ClientError as err:
            raise ApiConnectionError(f"Connection error: {err}") from err
        except TimeoutError as err:
            raise ApiConnectionError(f"Request timed out: {path}") from err


def _parse_retry_after(value: str | None) -> float | None:
    """Seconds to wait from a Retry-After header (delay or HTTP date)."""
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(0.0, (when - datetime.now(UTC)).total_seconds())
