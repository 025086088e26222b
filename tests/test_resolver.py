"""Tests for the edit-scope resolver state machine."""

from __future__ import annotations

import asyncio

import pytest

from recurrence_core.exceptions import InvalidTransitionError
from recurrence_core.models import EditScope, OccurrenceMutation, OccurrenceRecord
from recurrence_core.resolver import (
    ApplyResult,
    EditScopeResolver,
    InteractionMode,
    MutationKind,
    PendingMove,
    PreferredScopeToken,
    ResolverState,
    resolve_interaction,
)

HOUR_MS = 3_600_000
DAY_MS = 24 * HOUR_MS
BASE = 1_772_445_600_000  # Monday 2026-03-02 10:00 UTC


def _make_occurrence(
    occurrence_id: str,
    start_at: int = BASE,
    *,
    series_id: str | None = None,
    recurrence_rule: str | None = None,
) -> OccurrenceRecord:
    return OccurrenceRecord(
        id=occurrence_id,
        start_at=start_at,
        end_at=start_at + HOUR_MS,
        title="Review",
        series_id=series_id,
        recurrence_rule=recurrence_rule,
    )


@pytest.fixture
def bare(store) -> OccurrenceRecord:
    occurrence = _make_occurrence("bare")
    store.add(occurrence)
    return occurrence


@pytest.fixture
def series(store) -> list[OccurrenceRecord]:
    occurrences = [
        _make_occurrence(
            "s1", BASE, series_id="s", recurrence_rule="RRULE:FREQ=WEEKLY;BYDAY=MO"
        ),
        _make_occurrence("s2", BASE + 7 * DAY_MS, series_id="s"),
        _make_occurrence("s3", BASE + 14 * DAY_MS, series_id="s"),
    ]
    store.add(*occurrences)
    return occurrences


@pytest.fixture
def resolver(store, propagation) -> EditScopeResolver:
    return EditScopeResolver(store, propagation)


# =========================================================================== #
#  1. Move confirmation
# =========================================================================== #


class TestMoveConfirmation:
    """Series-linked moves always wait for a scope; bare moves never do."""

    @pytest.mark.asyncio
    async def test_bare_move_applies_at_once(self, resolver, bare, store, call_log):
        result = await resolver.async_request_move(bare, BASE + HOUR_MS, BASE + 2 * HOUR_MS)

        assert isinstance(result, ApplyResult)
        assert result.ok
        assert result.scope is EditScope.SINGLE
        assert result.warning is None
        assert store.get("bare").start_at == BASE + HOUR_MS
        assert resolver.state("bare") is ResolverState.IDLE
        assert call_log == [
            ("persist", "move", "bare", EditScope.SINGLE),
            ("propagate", "move", "bare", EditScope.SINGLE),
        ]

    @pytest.mark.asyncio
    async def test_series_move_waits_for_scope(self, resolver, series, store, call_log):
        target = series[1]
        pending = await resolver.async_request_move(target, target.start_at + HOUR_MS, target.end_at + HOUR_MS)

        assert isinstance(pending, PendingMove)
        assert pending.scopes == (EditScope.SINGLE, EditScope.SERIES)
        assert resolver.state("s2") is ResolverState.PENDING_CONFIRMATION
        assert resolver.pending("s2") == pending
        assert call_log == []
        assert store.get("s2").start_at == target.start_at

    @pytest.mark.asyncio
    async def test_rule_alone_marks_occurrence_as_recurring(self, resolver, store):
        occurrence = _make_occurrence("r", recurrence_rule="RRULE:FREQ=DAILY")
        store.add(occurrence)
        outcome = await resolver.async_request_move(occurrence, BASE + 1, BASE + 2)
        assert isinstance(outcome, PendingMove)

    @pytest.mark.asyncio
    async def test_confirm_series_shifts_whole_pattern(self, resolver, series, store):
        target = series[1]
        await resolver.async_request_move(target, target.start_at + HOUR_MS, target.end_at + HOUR_MS)
        result = await resolver.async_confirm_move("s2", EditScope.SERIES)

        assert result.ok
        assert result.kind is MutationKind.MOVE
        assert result.record.start_at == target.start_at + HOUR_MS
        assert [store.get(o.id).start_at for o in series] == [o.start_at + HOUR_MS for o in series]
        assert resolver.state("s2") is ResolverState.IDLE

    @pytest.mark.asyncio
    async def test_confirm_single_moves_one(self, resolver, series, store):
        target = series[1]
        await resolver.async_request_move(target, target.start_at + HOUR_MS, target.end_at + HOUR_MS)
        await resolver.async_confirm_move("s2", EditScope.SINGLE)

        assert store.get("s1").start_at == series[0].start_at
        assert store.get("s2").start_at == target.start_at + HOUR_MS

    @pytest.mark.asyncio
    async def test_following_is_not_offered(self, resolver, series):
        target = series[1]
        await resolver.async_request_move(target, target.start_at + 1, target.end_at + 1)
        with pytest.raises(InvalidTransitionError):
            await resolver.async_confirm_move("s2", EditScope.FOLLOWING)
        assert resolver.state("s2") is ResolverState.PENDING_CONFIRMATION

    @pytest.mark.asyncio
    async def test_second_move_replaces_pending(self, resolver, series):
        target = series[0]
        await resolver.async_request_move(target, BASE + 1, BASE + HOUR_MS + 1)
        second = await resolver.async_request_move(target, BASE + 2, BASE + HOUR_MS + 2)
        assert resolver.pending("s1") == second

        result = await resolver.async_confirm_move("s1", EditScope.SINGLE)
        assert result.record.start_at == BASE + 2

    @pytest.mark.asyncio
    async def test_cancel_discards(self, resolver, series, store, call_log):
        target = series[0]
        pending = await resolver.async_request_move(target, BASE + 1, BASE + 2)
        assert resolver.cancel_move("s1") == pending
        assert resolver.state("s1") is ResolverState.IDLE
        assert store.get("s1").start_at == BASE
        assert call_log == []

    @pytest.mark.asyncio
    async def test_confirm_or_cancel_without_pending(self, resolver):
        with pytest.raises(InvalidTransitionError):
            await resolver.async_confirm_move("ghost", EditScope.SINGLE)
        with pytest.raises(InvalidTransitionError):
            resolver.cancel_move("ghost")

    @pytest.mark.asyncio
    async def test_new_mutation_while_applying_is_rejected(self, store, propagation, bare):
        gate = asyncio.Event()

        class _SlowStore:
            async def async_move_or_resize(self, *args):
                await gate.wait()
                return await store.async_move_or_resize(*args)

        resolver = EditScopeResolver(_SlowStore(), propagation)
        task = asyncio.create_task(resolver.async_request_move(bare, BASE + 1, BASE + 2))
        await asyncio.sleep(0)

        assert resolver.state("bare") is ResolverState.APPLYING
        with pytest.raises(InvalidTransitionError):
            await resolver.async_request_move(bare, BASE + 3, BASE + 4)

        gate.set()
        result = await task
        assert result.ok
        assert resolver.state("bare") is ResolverState.IDLE


# =========================================================================== #
#  2. Failure handling
# =========================================================================== #


class TestFailures:
    """Persist failures abort; propagate failures only warn, except on delete."""

    @pytest.mark.asyncio
    async def test_persist_failure_aborts_move(self, resolver, series, store, call_log):
        store.fail_on.add("move")
        target = series[1]
        await resolver.async_request_move(target, target.start_at + 1, target.end_at + 1)
        result = await resolver.async_confirm_move("s2", EditScope.SERIES)

        assert not result.ok
        assert result.error == "move rejected"
        assert result.record is None
        assert [entry[0] for entry in call_log] == ["persist"]
        assert store.get("s2").start_at == target.start_at
        assert resolver.state("s2") is ResolverState.IDLE

    @pytest.mark.asyncio
    async def test_propagate_failure_on_move_warns(self, resolver, bare, store, propagation):
        propagation.fail_on.add("move")
        result = await resolver.async_request_move(bare, BASE + HOUR_MS, BASE + 2 * HOUR_MS)

        assert result.ok
        assert result.error is None
        assert "move unreachable" in result.warning
        assert store.get("bare").start_at == BASE + HOUR_MS

    @pytest.mark.asyncio
    async def test_propagate_failure_on_update_warns(self, resolver, bare, store, propagation):
        propagation.fail_on.add("update")
        result = await resolver.async_update(bare, OccurrenceMutation(title="Renamed"))

        assert result.ok
        assert result.warning
        assert store.get("bare").title == "Renamed"

    @pytest.mark.asyncio
    async def test_propagate_failure_on_create_warns(self, resolver, store, propagation):
        propagation.fail_on.add("create")
        result = await resolver.async_create(
            OccurrenceMutation(title="New", start_at=BASE, end_at=BASE + HOUR_MS)
        )

        assert result.ok
        assert result.warning
        assert store.get(result.occurrence_id) == result.record

    @pytest.mark.asyncio
    async def test_propagate_failure_on_delete_keeps_record(self, resolver, bare, store, propagation, call_log):
        propagation.fail_on.add("delete")
        result = await resolver.async_delete(bare)

        assert not result.ok
        assert result.error
        assert store.get("bare") == bare
        assert call_log == [("propagate", "delete", "bare", EditScope.SINGLE)]

    @pytest.mark.asyncio
    async def test_persist_failure_on_create(self, resolver, store, call_log):
        store.fail_on.add("create")
        result = await resolver.async_create(
            OccurrenceMutation(start_at=BASE, end_at=BASE + HOUR_MS)
        )
        assert not result.ok
        assert result.occurrence_id is None
        assert len(store) == 0
        assert call_log == [("persist", "create")]


# =========================================================================== #
#  3. Direct edits
# =========================================================================== #


class TestDirectEdits:
    """Edits from the edit view skip confirmation and accept any scope."""

    @pytest.mark.asyncio
    async def test_update_with_following_scope(self, resolver, series, store, call_log):
        result = await resolver.async_update(
            series[1], OccurrenceMutation(title="Retro"), EditScope.FOLLOWING
        )
        assert result.ok
        assert result.scope is EditScope.FOLLOWING
        assert [store.get(o.id).title for o in series] == ["Review", "Retro", "Retro"]
        assert call_log[-1] == ("propagate", "update", "s2", EditScope.FOLLOWING)

    @pytest.mark.asyncio
    async def test_bare_scope_is_coerced_to_single(self, resolver, bare, call_log):
        result = await resolver.async_update(
            bare, OccurrenceMutation(title="x"), EditScope.SERIES
        )
        assert result.scope is EditScope.SINGLE
        assert call_log[0] == ("persist", "update", "bare", EditScope.SINGLE)

    @pytest.mark.asyncio
    async def test_update_discards_pending_move(self, resolver, series, store):
        target = series[1]
        await resolver.async_request_move(target, target.start_at + HOUR_MS, target.end_at + HOUR_MS)

        result = await resolver.async_update(target, OccurrenceMutation(title="Retro"))

        assert result.ok
        assert resolver.state("s2") is ResolverState.IDLE
        assert resolver.pending("s2") is None
        with pytest.raises(InvalidTransitionError):
            await resolver.async_confirm_move("s2", EditScope.SINGLE)
        assert store.get("s2").start_at == target.start_at

    @pytest.mark.asyncio
    async def test_failed_update_keeps_pending_move(self, resolver, series, store):
        store.fail_on.add("update")
        target = series[1]
        pending = await resolver.async_request_move(target, target.start_at + HOUR_MS, target.end_at + HOUR_MS)

        result = await resolver.async_update(target, OccurrenceMutation(title="Retro"))

        assert not result.ok
        assert resolver.pending("s2") == pending

    @pytest.mark.asyncio
    async def test_delete_propagates_before_persisting(self, resolver, series, store, call_log):
        result = await resolver.async_delete(series[0], EditScope.SERIES)

        assert result.ok
        assert call_log == [
            ("propagate", "delete", "s1", EditScope.SERIES),
            ("persist", "delete", "s1", EditScope.SERIES),
        ]
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_create_passes_persisted_record_on(self, resolver, call_log):
        result = await resolver.async_create(
            OccurrenceMutation(title="New", start_at=BASE, end_at=BASE + HOUR_MS)
        )
        assert result.ok
        assert call_log == [
            ("persist", "create"),
            ("propagate", "create", result.occurrence_id),
        ]

    @pytest.mark.asyncio
    async def test_without_propagation(self, store, bare):
        resolver = EditScopeResolver(store)
        result = await resolver.async_delete(bare)
        assert result.ok
        assert result.warning is None
        assert store.get("bare") is None


# =========================================================================== #
#  4. Preferred interaction token
# =========================================================================== #


class TestPreferredScopeToken:
    """An edit gesture right before a click opens the editor once."""

    def test_live_token_opens_editor_and_is_consumed(self):
        token = PreferredScopeToken.issue("occ", now=1_000)
        mode, left = resolve_interaction(token, "occ", now=1_100)
        assert mode is InteractionMode.EDIT
        assert left is None

    def test_expired_token_opens_details(self):
        token = PreferredScopeToken.issue("occ", now=1_000)
        assert token.expires_at == 1_300
        mode, left = resolve_interaction(token, "occ", now=1_300)
        assert mode is InteractionMode.DETAILS
        assert left == token

    def test_token_for_other_occurrence_is_kept(self):
        token = PreferredScopeToken.issue("occ", now=1_000)
        mode, left = resolve_interaction(token, "other", now=1_001)
        assert mode is InteractionMode.DETAILS
        assert left == token

    def test_no_token(self):
        assert resolve_interaction(None, "occ", now=0) == (InteractionMode.DETAILS, None)

    def test_resolver_issues_with_configured_ttl(self, store):
        resolver = EditScopeResolver(store, preferred_scope_ttl_ms=50)
        assert resolver.prefer_edit("occ", now=10) == PreferredScopeToken("occ", 60)
