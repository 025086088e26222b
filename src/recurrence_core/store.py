"""In-memory, scope-aware occurrence store.

Implements both the persistence and the reader contract. Scope handling
follows the product backend:

- ``single`` (or an occurrence outside any series) touches one record.
- ``series`` touches every record of the series.
- ``following`` touches the records whose occurrence start is at or after
  the target's.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import replace

from .exceptions import OccurrenceNotFoundError, PersistenceError
from .models import EditScope, OccurrenceMutation, OccurrenceRecord

_LOGGER = logging.getLogger(__name__)

_SHARED_FIELDS = ("title", "calendar_id", "color")
_PATCHABLE_FIELDS = (*_SHARED_FIELDS, "start_at", "end_at", "recurrence_rule")


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class InMemoryOccurrenceStore:
    """Keeps occurrence records in a dict keyed by id."""

    def __init__(
        self,
        records: Iterable[OccurrenceRecord] = (),
        *,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._clock = clock
        self._records: dict[str, OccurrenceRecord] = {}
        self.add(*records)

    def add(self, *records: OccurrenceRecord) -> None:
        """Insert or replace records as-is (used when seeding from a sync)."""
        for record in records:
            self._records[record.id] = record

    def get(self, occurrence_id: str) -> OccurrenceRecord | None:
        return self._records.get(occurrence_id)

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------ #
    #  Reader
    # ------------------------------------------------------------------ #

    async def async_get_occurrences(
        self, window_start: int, window_end: int
    ) -> list[OccurrenceRecord]:
        """Records overlapping ``[window_start, window_end]``, sorted by start."""
        found = [
            record
            for record in self._records.values()
            if record.start_at <= window_end
            and max(record.end_at, record.start_at) >= window_start
        ]
        return sorted(found, key=lambda r: r.start_at)

    # ------------------------------------------------------------------ #
    #  Persistence
    # ------------------------------------------------------------------ #

    async def async_create_occurrence(
        self, mutation: OccurrenceMutation
    ) -> OccurrenceRecord:
        if mutation.start_at is None or mutation.end_at is None:
            raise PersistenceError("start_at and end_at are required to create")

        record = OccurrenceRecord.from_api_response(
            {
                **mutation.to_api_dict(),
                "id": uuid.uuid4().hex,
                "updated_at": self._clock(),
            }
        )
        self._records[record.id] = record
        _LOGGER.debug("Created occurrence %s", record.id)
        return record

    async def async_update_occurrence(
        self, occurrence_id: str, mutation: OccurrenceMutation, scope: EditScope
    ) -> OccurrenceRecord:
        target = self._require(occurrence_id)
        now = self._clock()

        if scope is EditScope.SINGLE or not target.series_id:
            changes = {
                key: value
                for key, value in mutation.to_api_dict().items()
                if key in _PATCHABLE_FIELDS
            }
            if "recurrence_rule" in changes:
                changes["recurrence_rule"] = changes["recurrence_rule"].strip() or None
                if changes["recurrence_rule"] and not target.series_id:
                    changes["series_id"] = target.id
            updated = replace(target, **changes, updated_at=now)
            self._records[updated.id] = updated
            return updated

        shared = {
            key: getattr(mutation, key)
            for key in _SHARED_FIELDS
            if getattr(mutation, key) is not None
        }
        for record in self._scoped(target, scope):
            self._records[record.id] = replace(record, **shared, updated_at=now)

        times = {
            key: getattr(mutation, key)
            for key in ("start_at", "end_at")
            if getattr(mutation, key) is not None
        }
        if times:
            self._records[target.id] = replace(self._records[target.id], **times)

        if mutation.recurrence_rule is not None:
            exemplar = self._exemplar(target) or self._records[target.id]
            self._records[exemplar.id] = replace(
                exemplar,
                recurrence_rule=mutation.recurrence_rule or None,
                updated_at=now,
            )
        return self._records[target.id]

    async def async_delete_occurrence(
        self, occurrence_id: str, scope: EditScope
    ) -> None:
        target = self._require(occurrence_id)
        if scope is EditScope.SINGLE or not target.series_id:
            doomed = [target]
        else:
            doomed = self._scoped(target, scope)
        for record in doomed:
            self._records.pop(record.id, None)
        _LOGGER.debug(
            "Deleted %d occurrence(s) for %s (scope=%s)", len(doomed), target.id, scope
        )

    async def async_move_or_resize(
        self, occurrence_id: str, start_at: int, end_at: int, scope: EditScope
    ) -> OccurrenceRecord:
        target = self._require(occurrence_id)
        now = self._clock()

        if scope is EditScope.SINGLE or not target.series_id:
            moved = replace(target, start_at=start_at, end_at=end_at, updated_at=now)
            self._records[moved.id] = moved
            return moved

        delta_start = start_at - target.start_at
        delta_end = end_at - target.end_at
        for record in self._scoped(target, scope):
            self._records[record.id] = replace(
                record,
                start_at=record.start_at + delta_start,
                end_at=record.end_at + delta_end,
                updated_at=now,
            )
        return self._records[target.id]

    # ------------------------------------------------------------------ #
    #  Internal helpers
    # ------------------------------------------------------------------ #

    def _require(self, occurrence_id: str) -> OccurrenceRecord:
        record = self._records.get(occurrence_id)
        if record is None:
            raise OccurrenceNotFoundError(occurrence_id)
        return record

    def _scoped(
        self, target: OccurrenceRecord, scope: EditScope
    ) -> list[OccurrenceRecord]:
        """Records of the target's series that ``scope`` reaches."""
        base = target.occurrence_start_at
        return [
            record
            for record in self._records.values()
            if record.series_id == target.series_id
            and (scope is not EditScope.FOLLOWING or record.occurrence_start_at >= base)
        ]

    def _exemplar(self, target: OccurrenceRecord) -> OccurrenceRecord | None:
        for record in self._records.values():
            if record.series_id == target.series_id and record.recurrence_rule:
                return record
        return None
