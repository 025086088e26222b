"""Shared fakes for the persistence and propagation collaborators.

Both fakes append to one call log so tests can assert the order in which
the resolver reaches them.
"""

from __future__ import annotations

from typing import Any

import pytest

from recurrence_core.exceptions import ApiConnectionError, PersistenceError
from recurrence_core.models import EditScope, OccurrenceMutation, OccurrenceRecord
from recurrence_core.store import InMemoryOccurrenceStore

FIXED_NOW = 1_800_000_000_000


class RecordingStore(InMemoryOccurrenceStore):
    """In-memory store that logs calls and can be told to fail."""

    def __init__(self, call_log: list[tuple[Any, ...]], **kwargs: Any) -> None:
        super().__init__(clock=lambda: FIXED_NOW, **kwargs)
        self.call_log = call_log
        self.fail_on: set[str] = set()

    def _log(self, operation: str, *args: Any) -> None:
        self.call_log.append(("persist", operation, *args))
        if operation in self.fail_on:
            raise PersistenceError(f"{operation} rejected")

    async def async_create_occurrence(
        self, mutation: OccurrenceMutation
    ) -> OccurrenceRecord:
        self._log("create")
        return await super().async_create_occurrence(mutation)

    async def async_update_occurrence(
        self, occurrence_id: str, mutation: OccurrenceMutation, scope: EditScope
    ) -> OccurrenceRecord:
        self._log("update", occurrence_id, scope)
        return await super().async_update_occurrence(occurrence_id, mutation, scope)

    async def async_delete_occurrence(
        self, occurrence_id: str, scope: EditScope
    ) -> None:
        self._log("delete", occurrence_id, scope)
        await super().async_delete_occurrence(occurrence_id, scope)

    async def async_move_or_resize(
        self, occurrence_id: str, start_at: int, end_at: int, scope: EditScope
    ) -> OccurrenceRecord:
        self._log("move", occurrence_id, scope)
        return await super().async_move_or_resize(
            occurrence_id, start_at, end_at, scope
        )


class RecordingPropagation:
    """Propagation collaborator that logs calls and can be told to fail."""

    def __init__(self, call_log: list[tuple[Any, ...]]) -> None:
        self.call_log = call_log
        self.fail_on: set[str] = set()

    def _log(self, operation: str, *args: Any) -> None:
        self.call_log.append(("propagate", operation, *args))
        if operation in self.fail_on:
            raise ApiConnectionError(f"{operation} unreachable")

    async def async_create_occurrence(self, record: OccurrenceRecord) -> None:
        self._log("create", record.id)

    async def async_update_occurrence(
        self, occurrence_id: str, mutation: OccurrenceMutation, scope: EditScope
    ) -> None:
        self._log("update", occurrence_id, scope)

    async def async_delete_occurrence(
        self, occurrence_id: str, scope: EditScope
    ) -> None:
        self._log("delete", occurrence_id, scope)

    async def async_move_or_resize(
        self, occurrence_id: str, start_at: int, end_at: int, scope: EditScope
    ) -> None:
        self._log("move", occurrence_id, scope)


@pytest.fixture
def call_log() -> list[tuple[Any, ...]]:
    return []


@pytest.fixture
def store(call_log: list[tuple[Any, ...]]) -> RecordingStore:
    return RecordingStore(call_log)


@pytest.fixture
def propagation(call_log: list[tuple[Any, ...]]) -> RecordingPropagation:
    return RecordingPropagation(call_log)
