"""Holds the deduplicated occurrence set for the visible window."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .collaborators import OccurrenceReader
from .config import CoreConfig
from .fingerprint import deduplicate
from .inference import infer_rule
from .labels import format_rule_label
from .models import OccurrenceRecord

_LOGGER = logging.getLogger(__name__)


class OccurrenceCoordinator:
    """Keeps the kept set of one refresh and answers rule/label lookups.

    Every refresh replaces the previous set wholesale; nothing is merged.
    """

    def __init__(
        self,
        reader: OccurrenceReader,
        config: CoreConfig | None = None,
    ) -> None:
        self._reader = reader
        self._config = config or CoreConfig()
        self._occurrences: list[OccurrenceRecord] = []
        self._by_id: dict[str, OccurrenceRecord] = {}

    @property
    def occurrences(self) -> list[OccurrenceRecord]:
        """Kept occurrences, sorted by start."""
        return list(self._occurrences)

    async def async_refresh(
        self, window_start: int, window_end: int
    ) -> list[OccurrenceRecord]:
        """Read the window from the reader and rebuild the kept set."""
        records = await self._reader.async_get_occurrences(window_start, window_end)
        return self.load(records)

    def load(self, records: Iterable[OccurrenceRecord]) -> list[OccurrenceRecord]:
        """Deduplicate already-fetched records and store the result."""
        records = list(records)
        kept = deduplicate(
            records, default_calendar_id=self._config.default_calendar_id
        )
        _LOGGER.debug(
            "Kept %d of %d occurrence records", len(kept), len(records)
        )
        self._occurrences = kept
        self._by_id = {occurrence.id: occurrence for occurrence in kept}
        return self.occurrences

    def get(self, occurrence_id: str) -> OccurrenceRecord | None:
        return self._by_id.get(occurrence_id)

    def series(self, series_id: str) -> list[OccurrenceRecord]:
        return [o for o in self._occurrences if o.series_id == series_id]

    def resolve_rule_text(self, occurrence: OccurrenceRecord) -> str | None:
        """Rule text for an occurrence.

        Order of preference: the occurrence's own rule, the rule of the
        series exemplar among the kept set, then a rule inferred from the
        spacing of the kept instances.
        """
        if occurrence.recurrence_rule:
            return occurrence.recurrence_rule
        if not occurrence.series_id:
            return None

        series = self.series(occurrence.series_id)
        for member in series:
            if member.recurrence_rule:
                return member.recurrence_rule
        return infer_rule(occurrence, series, tz=self._config.tzinfo)

    def recurrence_label(self, occurrence: OccurrenceRecord) -> str:
        return format_rule_label(
            self.resolve_rule_text(occurrence),
            occurrence.start_at,
            series_fallback=bool(occurrence.series_id),
            tz=self._config.tzinfo,
        )
