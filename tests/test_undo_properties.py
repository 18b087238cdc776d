"""Property-based tests: randomized interleavings on the undo queue."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from crud_admin.undo.entry import EntryHandle, EntryState, PendingMutation
from crud_admin.undo.queue import ConflictPolicy, UndoQueue

ENTRY_COUNT = 4

operations = st.lists(
    st.tuples(
        st.sampled_from(["cancel", "expire", "commit", "take"]),
        st.integers(min_value=0, max_value=ENTRY_COUNT - 1),
    ),
    max_size=30,
)


class _Timer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback: Callable[[], None] | None = callback

    def start(self) -> None:
        return None

    def cancel(self) -> bool:
        return self.callback is not None

    def dispose(self) -> None:
        self.callback = None

    def fire(self) -> None:
        if self.callback is not None:
            self.callback()


async def _run(script: list[tuple[str, int]], *, shared_streams: bool) -> None:
    timers: list[_Timer] = []

    def factory(delay: float, callback: Callable[[], None]) -> _Timer:
        timer = _Timer(delay, callback)
        timers.append(timer)
        return timer

    queue = UndoQueue(conflict_policy=ConflictPolicy.FORCE_SETTLE, timer_factory=factory)
    calls = [0] * ENTRY_COUNT
    cancels = [0] * ENTRY_COUNT
    settles = [0] * ENTRY_COUNT
    entries: list[PendingMutation] = []
    handles: list[EntryHandle] = []

    for index in range(ENTRY_COUNT):

        async def mutation_fn(i: int = index) -> int:
            calls[i] += 1
            await asyncio.sleep(0)
            return i

        def on_cancel(i: int = index) -> None:
            cancels[i] += 1

        def on_settled(_outcome: object, i: int = index) -> None:
            settles[i] += 1

        pending = PendingMutation(
            "posts",
            mutation_fn,
            record_id=index % 2 if shared_streams else index,
            on_cancel=on_cancel,
            on_settled=on_settled,
        )
        entries.append(pending)
        handles.append(await queue.enqueue(pending))

    in_flight: list[asyncio.Task[object]] = []
    for operation, index in script:
        handle = handles[index]
        if operation == "cancel":
            queue.cancel(handle)
        elif operation == "expire":
            timers[index].fire()
        elif operation == "commit":
            in_flight.append(asyncio.ensure_future(queue.commit(handle)))
        else:
            taken = queue.take(handle)
            if taken is not None:
                in_flight.append(asyncio.ensure_future(taken.execute()))
        await asyncio.sleep(0)

    await asyncio.gather(*in_flight)
    await queue.aclose()

    for index, pending in enumerate(entries):
        assert pending.state in (EntryState.CANCELLED, EntryState.COMMITTED)
        if pending.state is EntryState.CANCELLED:
            assert (calls[index], cancels[index], settles[index]) == (0, 1, 0)
        else:
            assert (calls[index], cancels[index], settles[index]) == (1, 0, 1)
    assert len(queue) == 0


@given(script=operations)
@settings(
    max_examples=200, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture]
)
def test_every_entry_is_cancelled_or_committed_exactly_once(
    script: list[tuple[str, int]],
) -> None:
    asyncio.run(_run(script, shared_streams=False))


@given(script=operations)
@settings(
    max_examples=200, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture]
)
def test_force_settled_entries_are_committed_exactly_once(
    script: list[tuple[str, int]],
) -> None:
    # Entries 0/2 and 1/3 share a stream: enqueueing 2 and 3 force-settles 0 and 1.
    asyncio.run(_run(script, shared_streams=True))
