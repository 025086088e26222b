"""Edit-scope resolution for mutations to recurring occurrences.

A drag or resize on an occurrence that belongs to a series is held as a
``PendingMove`` until the caller confirms a scope. Bare occurrences and
edits made from an explicit edit view are applied at once.

Applying persists first and then propagates, except for deletion which
propagates first so an external failure leaves the local record in place.
Persistence failures abort the mutation; propagation failures on
create/update/move only produce a warning.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Final

from .collaborators import OccurrencePersistence, OccurrencePropagation
from .const import DEFAULT_PREFERRED_SCOPE_TTL_MS
from .exceptions import InvalidTransitionError, PersistenceError, PropagationError
from .models import EditScope, OccurrenceMutation, OccurrenceRecord

_LOGGER = logging.getLogger(__name__)

MOVE_SCOPES: Final = (EditScope.SINGLE, EditScope.SERIES)


class ResolverState(enum.StrEnum):
    IDLE = "idle"
    PENDING_CONFIRMATION = "pending_confirmation"
    APPLYING = "applying"


class MutationKind(enum.StrEnum):
    CREATE = "create"
    UPDATE = "update"
    MOVE = "move"
    DELETE = "delete"


class InteractionMode(enum.StrEnum):
    """How the caller should open an occurrence that was clicked."""

    EDIT = "edit"
    DETAILS = "details"


@dataclass(frozen=True)
class PendingMove:
    """A move/resize awaiting a scope choice."""

    occurrence_id: str
    start_at: int
    end_at: int
    scopes: tuple[EditScope, ...] = MOVE_SCOPES


@dataclass(frozen=True)
class ApplyResult:
    """Outcome of one applied mutation.

    ``ok`` is False only when nothing was committed locally. ``warning`` is
    set when the local change stuck but the external calendar was not
    updated.
    """

    ok: bool
    kind: MutationKind
    scope: EditScope
    occurrence_id: str | None = None
    record: OccurrenceRecord | None = None
    error: str | None = None
    warning: str | None = None


# --------------------------------------------------------------------------- #
#  Preferred interaction token
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class PreferredScopeToken:
    """Short-lived hint that the next click on an occurrence means "edit".

    Issued when an edit gesture fires just before the click that follows
    it, and handed back by the caller on that click.
    """

    occurrence_id: str
    expires_at: int

    @classmethod
    def issue(
        cls,
        occurrence_id: str,
        now: int,
        ttl_ms: int = DEFAULT_PREFERRED_SCOPE_TTL_MS,
    ) -> PreferredScopeToken:
        return cls(occurrence_id=occurrence_id, expires_at=now + ttl_ms)

    def is_active(self, occurrence_id: str, now: int) -> bool:
        return self.occurrence_id == occurrence_id and now < self.expires_at


def resolve_interaction(
    token: PreferredScopeToken | None, occurrence_id: str, now: int
) -> tuple[InteractionMode, PreferredScopeToken | None]:
    """Pick the mode for a click and return the token the caller keeps.

    A live token for the clicked occurrence opens the editor and is
    consumed. Any other click opens the details view and leaves the token
    as it was.
    """
    if token is not None and token.is_active(occurrence_id, now):
        return InteractionMode.EDIT, None
    return InteractionMode.DETAILS, token


# --------------------------------------------------------------------------- #
#  Resolver
# --------------------------------------------------------------------------- #


class EditScopeResolver:
    """Per-occurrence state machine driving persist/propagate calls.

    Usage::

        resolver = EditScopeResolver(store, client)
        outcome = await resolver.async_request_move(occurrence, start, end)
        if isinstance(outcome, PendingMove):
            result = await resolver.async_confirm_move(
                occurrence.id, EditScope.SERIES
            )

    ``propagation`` may be omitted to run against local persistence only.
    """

    def __init__(
        self,
        persistence: OccurrencePersistence,
        propagation: OccurrencePropagation | None = None,
        *,
        preferred_scope_ttl_ms: int = DEFAULT_PREFERRED_SCOPE_TTL_MS,
    ) -> None:
        self._persistence = persistence
        self._propagation = propagation
        self._preferred_scope_ttl_ms = preferred_scope_ttl_ms
        self._pending: dict[str, PendingMove] = {}
        self._applying: set[str] = set()

    def state(self, occurrence_id: str) -> ResolverState:
        if occurrence_id in self._applying:
            return ResolverState.APPLYING
        if occurrence_id in self._pending:
            return ResolverState.PENDING_CONFIRMATION
        return ResolverState.IDLE

    def pending(self, occurrence_id: str) -> PendingMove | None:
        return self._pending.get(occurrence_id)

    def prefer_edit(self, occurrence_id: str, now: int) -> PreferredScopeToken:
        """Issue a preferred-scope token with the configured lifetime."""
        return PreferredScopeToken.issue(
            occurrence_id, now, self._preferred_scope_ttl_ms
        )

    # ------------------------------------------------------------------ #
    #  Move / resize
    # ------------------------------------------------------------------ #

    async def async_request_move(
        self, occurrence: OccurrenceRecord, start_at: int, end_at: int
    ) -> PendingMove | ApplyResult:
        """Start a move/resize gesture.

        Returns the ``ApplyResult`` directly for a bare occurrence, or the
        ``PendingMove`` the caller must confirm or cancel. A new request
        replaces any move already pending on the same occurrence.

        Raises:
            InvalidTransitionError: If the occurrence is being applied.
        """
        self._ensure_not_applying(occurrence.id)

        if not occurrence.is_recurring:
            return await self._async_apply_move(
                occurrence.id, start_at, end_at, EditScope.SINGLE
            )

        if occurrence.id in self._pending:
            _LOGGER.debug("Replacing pending move for %s", occurrence.id)
        pending = PendingMove(
            occurrence_id=occurrence.id, start_at=start_at, end_at=end_at
        )
        self._pending[occurrence.id] = pending
        return pending

    async def async_confirm_move(
        self, occurrence_id: str, scope: EditScope
    ) -> ApplyResult:
        """Apply the pending move with the chosen scope.

        Raises:
            InvalidTransitionError: If no move is pending or ``scope`` is
                not one of the offered scopes.
        """
        pending = self._pending.get(occurrence_id)
        if pending is None:
            raise InvalidTransitionError(f"No move pending for {occurrence_id}")
        if scope not in pending.scopes:
            raise InvalidTransitionError(
                f"Scope {scope} is not offered for moving {occurrence_id}"
            )
        del self._pending[occurrence_id]
        return await self._async_apply_move(
            occurrence_id, pending.start_at, pending.end_at, scope
        )

    def cancel_move(self, occurrence_id: str) -> PendingMove:
        """Discard the pending move and return it.

        Raises:
            InvalidTransitionError: If no move is pending.
        """
        pending = self._pending.pop(occurrence_id, None)
        if pending is None:
            raise InvalidTransitionError(f"No move pending for {occurrence_id}")
        return pending

    # ------------------------------------------------------------------ #
    #  Direct edits
    # ------------------------------------------------------------------ #

    async def async_create(self, mutation: OccurrenceMutation) -> ApplyResult:
        try:
            record = await self._persistence.async_create_occurrence(mutation)
        except PersistenceError as err:
            return self._failed(MutationKind.CREATE, EditScope.SINGLE, None, err)

        warning = await self._async_propagate(
            MutationKind.CREATE,
            EditScope.SINGLE,
            record.id,
            lambda propagation: propagation.async_create_occurrence(record),
        )
        return ApplyResult(
            ok=True,
            kind=MutationKind.CREATE,
            scope=EditScope.SINGLE,
            occurrence_id=record.id,
            record=record,
            warning=warning,
        )

    async def async_update(
        self,
        occurrence: OccurrenceRecord,
        mutation: OccurrenceMutation,
        scope: EditScope = EditScope.SINGLE,
    ) -> ApplyResult:
        """Apply a field edit from the edit view with any scope."""
        scope = _effective_scope(occurrence, scope)
        with self._applying_guard(occurrence.id):
            try:
                record = await self._persistence.async_update_occurrence(
                    occurrence.id, mutation, scope
                )
            except PersistenceError as err:
                return self._failed(MutationKind.UPDATE, scope, occurrence.id, err)

            warning = await self._async_propagate(
                MutationKind.UPDATE,
                scope,
                occurrence.id,
                lambda propagation: propagation.async_update_occurrence(
                    occurrence.id, mutation, scope
                ),
            )
        # A drag still awaiting its scope was made against the old fields.
        self._pending.pop(occurrence.id, None)
        return ApplyResult(
            ok=True,
            kind=MutationKind.UPDATE,
            scope=scope,
            occurrence_id=occurrence.id,
            record=record,
            warning=warning,
        )

    async def async_delete(
        self,
        occurrence: OccurrenceRecord,
        scope: EditScope = EditScope.SINGLE,
    ) -> ApplyResult:
        """Delete with any scope, propagating before the local delete."""
        scope = _effective_scope(occurrence, scope)
        with self._applying_guard(occurrence.id):
            if self._propagation is not None:
                try:
                    await self._propagation.async_delete_occurrence(
                        occurrence.id, scope
                    )
                except PropagationError as err:
                    _LOGGER.warning(
                        "Propagating delete of %s (scope=%s) failed: %s",
                        occurrence.id,
                        scope,
                        err,
                    )
                    return ApplyResult(
                        ok=False,
                        kind=MutationKind.DELETE,
                        scope=scope,
                        occurrence_id=occurrence.id,
                        error=f"External calendar rejected the delete: {err}",
                    )

            try:
                await self._persistence.async_delete_occurrence(occurrence.id, scope)
            except PersistenceError as err:
                return self._failed(MutationKind.DELETE, scope, occurrence.id, err)

        self._pending.pop(occurrence.id, None)
        return ApplyResult(
            ok=True,
            kind=MutationKind.DELETE,
            scope=scope,
            occurrence_id=occurrence.id,
        )

    # ------------------------------------------------------------------ #
    #  Internal helpers
    # ------------------------------------------------------------------ #

    async def _async_apply_move(
        self, occurrence_id: str, start_at: int, end_at: int, scope: EditScope
    ) -> ApplyResult:
        with self._applying_guard(occurrence_id):
            try:
                record = await self._persistence.async_move_or_resize(
                    occurrence_id, start_at, end_at, scope
                )
            except PersistenceError as err:
                return self._failed(MutationKind.MOVE, scope, occurrence_id, err)

            warning = await self._async_propagate(
                MutationKind.MOVE,
                scope,
                occurrence_id,
                lambda propagation: propagation.async_move_or_resize(
                    occurrence_id, start_at, end_at, scope
                ),
            )
        return ApplyResult(
            ok=True,
            kind=MutationKind.MOVE,
            scope=scope,
            occurrence_id=occurrence_id,
            record=record,
            warning=warning,
        )

    async def _async_propagate(
        self,
        kind: MutationKind,
        scope: EditScope,
        occurrence_id: str,
        call: Callable[[OccurrencePropagation], Awaitable[Any]],
    ) -> str | None:
        """Run a propagation call, turning failure into a warning message."""
        if self._propagation is None:
            return None
        try:
            await call(self._propagation)
        except PropagationError as err:
            _LOGGER.warning(
                "Propagating %s of %s (scope=%s) failed: %s",
                kind,
                occurrence_id,
                scope,
                err,
            )
            return f"Saved locally, but the external calendar was not updated: {err}"
        return None

    def _failed(
        self,
        kind: MutationKind,
        scope: EditScope,
        occurrence_id: str | None,
        err: PersistenceError,
    ) -> ApplyResult:
        _LOGGER.warning(
            "Persisting %s of %s (scope=%s) failed: %s",
            kind,
            occurrence_id or "new occurrence",
            scope,
            err,
        )
        return ApplyResult(
            ok=False,
            kind=kind,
            scope=scope,
            occurrence_id=occurrence_id,
            error=str(err),
        )

    def _ensure_not_applying(self, occurrence_id: str) -> None:
        if occurrence_id in self._applying:
            raise InvalidTransitionError(
                f"Occurrence {occurrence_id} is already being applied"
            )

    @contextmanager
    def _applying_guard(self, occurrence_id: str) -> Iterator[None]:
        self._ensure_not_applying(occurrence_id)
        self._applying.add(occurrence_id)
        try:
            yield
        finally:
            self._applying.discard(occurrence_id)


def _effective_scope(occurrence: OccurrenceRecord, scope: EditScope) -> EditScope:
    """Occurrences outside any series only ever change alone."""
    return scope if occurrence.is_recurring else EditScope.SINGLE
