"""Contracts of the collaborators the core calls out to.

Persistence is the source of truth; propagation mirrors the same
operations to an external calendar on a best-effort basis; the reader
supplies the occurrence set for a window. The core never fetches on its
own.
"""

from __future__ import annotations

from typing import Protocol

from .models import EditScope, OccurrenceMutation, OccurrenceRecord


class OccurrencePersistence(Protocol):
    """Scope-aware local store. Failures raise ``PersistenceError``."""

    async def async_create_occurrence(
        self, mutation: OccurrenceMutation
    ) -> OccurrenceRecord: ...

    async def async_update_occurrence(
        self, occurrence_id: str, mutation: OccurrenceMutation, scope: EditScope
    ) -> OccurrenceRecord: ...

    async def async_delete_occurrence(
        self, occurrence_id: str, scope: EditScope
    ) -> None: ...

    async def async_move_or_resize(
        self, occurrence_id: str, start_at: int, end_at: int, scope: EditScope
    ) -> OccurrenceRecord: ...


class OccurrencePropagation(Protocol):
    """Mirror of the persistence operations toward an external calendar.

    Failures raise ``PropagationError``. Creation receives the record the
    persistence layer produced so the external copy can carry its id.
    """

    async def async_create_occurrence(self, record: OccurrenceRecord) -> None: ...

    async def async_update_occurrence(
        self, occurrence_id: str, mutation: OccurrenceMutation, scope: EditScope
    ) -> None: ...

    async def async_delete_occurrence(
        self, occurrence_id: str, scope: EditScope
    ) -> None: ...

    async def async_move_or_resize(
        self, occurrence_id: str, start_at: int, end_at: int, scope: EditScope
    ) -> None: ...


class OccurrenceReader(Protocol):
    """Supplies the current occurrence set for a time window."""

    async def async_get_occurrences(
        self, window_start: int, window_end: int
    ) -> list[OccurrenceRecord]: ...
