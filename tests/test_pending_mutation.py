"""Tests for PendingMutation's state machine."""

from __future__ import annotations

import asyncio
import threading
from typing import Any

import pytest

from crud_admin.primitives.exceptions import EntryStateError, InvalidMutationRequestError
from crud_admin.undo.entry import (
    EntryState,
    MutationOutcome,
    PendingMutation,
    SettlementTrigger,
    default_stream,
)


def _pending(**kwargs: Any) -> tuple[PendingMutation, list[str]]:
    calls: list[str] = []

    async def mutation_fn() -> str:
        calls.append("called")
        return "done"

    kwargs.setdefault("record_id", 1)
    return PendingMutation("posts", mutation_fn, **kwargs), calls


def test_default_stream_single_and_bulk() -> None:
    assert default_stream("posts", 1) == "posts:1"
    assert default_stream("posts", record_ids=[3, "1", 2]) == "posts:1,2,3"
    assert default_stream("posts") == "posts"


def test_pending_mutation_requires_resource() -> None:
    async def noop() -> None:
        return None

    with pytest.raises(InvalidMutationRequestError):
        PendingMutation("", noop)


def test_new_pending_mutation_is_queued() -> None:
    pending, _ = _pending()
    assert pending.state is EntryState.QUEUED
    assert pending.stream == "posts:1"
    assert not pending.is_terminal
    assert pending.call_time_info is None


def test_illegal_transition_raises() -> None:
    pending, _ = _pending()
    with pytest.raises(EntryStateError):
        pending._compare_and_set(EntryState.CANCELLED, EntryState.QUEUED)


@pytest.mark.asyncio
async def test_execute_requires_take() -> None:
    pending, calls = _pending()
    with pytest.raises(EntryStateError):
        await pending.execute()
    assert calls == []
    assert pending.state is EntryState.QUEUED


@pytest.mark.asyncio
async def test_execute_runs_once_and_commits() -> None:
    outcomes: list[MutationOutcome] = []
    pending, calls = _pending(on_settled=outcomes.append)

    assert pending._mark_taken(SettlementTrigger.EXPIRY)
    outcome = await pending.execute()

    assert outcome.succeeded
    assert outcome.result == "done"
    assert outcome.trigger is SettlementTrigger.EXPIRY
    assert pending.state is EntryState.COMMITTED
    assert pending.call_time_info is not None and pending.call_time_info.expired
    assert calls == ["called"]
    assert outcomes == [outcome]

    with pytest.raises(EntryStateError):
        await pending.execute()
    assert calls == ["called"]


@pytest.mark.asyncio
async def test_failed_side_effect_still_commits() -> None:
    async def failing() -> None:
        raise RuntimeError("boom")

    outcomes: list[MutationOutcome] = []
    pending = PendingMutation("posts", failing, record_id=1, on_settled=outcomes.append)

    outcome = await pending.run_now()

    assert not outcome.succeeded
    assert isinstance(outcome.error, RuntimeError)
    assert pending.state is EntryState.COMMITTED
    assert outcomes == [outcome]


@pytest.mark.asyncio
async def test_async_on_settled_is_awaited() -> None:
    seen: list[str] = []

    async def on_settled(outcome: MutationOutcome) -> None:
        await asyncio.sleep(0)
        seen.append(outcome.mutation_id)

    pending, _ = _pending(on_settled=on_settled, mutation_id="m-1")
    await pending.run_now()
    assert seen == ["m-1"]


@pytest.mark.asyncio
async def test_failing_on_settled_does_not_corrupt_state(caplog: pytest.LogCaptureFixture) -> None:
    def on_settled(_outcome: MutationOutcome) -> None:
        raise ValueError("hook broke")

    pending, _ = _pending(on_settled=on_settled)
    outcome = await pending.run_now()

    assert outcome.succeeded
    assert pending.state is EntryState.COMMITTED
    assert "on_settled hook failed" in caplog.text


@pytest.mark.asyncio
async def test_run_now_rejects_cancelled_mutation() -> None:
    pending, calls = _pending()
    assert pending._compare_and_set(EntryState.QUEUED, EntryState.CANCELLED)
    with pytest.raises(EntryStateError):
        await pending.run_now()
    assert calls == []


def test_cancel_and_take_race_has_exactly_one_winner() -> None:
    for _ in range(200):
        pending, _ = _pending()
        barrier = threading.Barrier(2)
        results: dict[str, bool] = {}

        def cancel(p: PendingMutation = pending, b: threading.Barrier = barrier) -> None:
            b.wait()
            results["cancel"] = p._compare_and_set(EntryState.QUEUED, EntryState.CANCELLED)

        def take(p: PendingMutation = pending, b: threading.Barrier = barrier) -> None:
            b.wait()
            results["take"] = p._mark_taken(SettlementTrigger.EXPIRY)

        threads = [threading.Thread(target=cancel), threading.Thread(target=take)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results["cancel"] != results["take"]
        expected = EntryState.CANCELLED if results["cancel"] else EntryState.EXECUTING
        assert pending.state is expected
