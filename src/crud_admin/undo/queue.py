"""UndoQueue — holds undoable mutations through their grace period."""

from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..instrumentation import UndoEvent, emit_undo_event
from ..ports.undo import IUndoQueue
from ..primitives.exceptions import EntryStateError, QueueConflictError
from .entry import EntryHandle, EntryState, SettlementTrigger
from .timer import CancellableTimer

if TYPE_CHECKING:
    from ..ports.undo import ITimer, ITimerFactory
    from .entry import MutationOutcome, PendingMutation

logger = logging.getLogger("crud_admin.undo")

DEFAULT_GRACE_PERIOD = 5.0


class ConflictPolicy(str, Enum):
    """What happens when a mutation is enqueued on a stream that is still live.

    - **FORCE_SETTLE**: execute the live entry now (or wait for it if it is
      already executing), then accept the new one. The earlier entry is
      always ``committed`` before the new one is accepted.
    - **REJECT**: refuse the new entry with :class:`QueueConflictError`.
    """

    FORCE_SETTLE = "force_settle"
    REJECT = "reject"


@dataclass(eq=False)
class UndoQueueEntry:
    """A pending mutation plus the timer enforcing its grace period."""

    handle: EntryHandle
    pending: PendingMutation
    timer: ITimer
    grace_period: float
    settled: asyncio.Event = field(default_factory=asyncio.Event)


class UndoQueue(IUndoQueue):
    """In-process undo queue driven by the running event loop.

    At most one live (queued or executing) entry exists per stream. The
    queue owns every entry's lifecycle: no other component flips a
    mutation's state.

    Example::

        queue = UndoQueue(grace_period=5.0)
        handle = await queue.enqueue(PendingMutation("posts", delete_post, record_id=1))

        queue.cancel(handle)          # user clicked "undo": nothing is sent
        await queue.commit(handle)    # or: notification dismissed, send now
        await queue.aclose()          # page unload: send everything pending
    """

    def __init__(
        self,
        *,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        conflict_policy: ConflictPolicy = ConflictPolicy.FORCE_SETTLE,
        timer_factory: ITimerFactory | None = None,
    ) -> None:
        if grace_period < 0:
            raise ValueError(f"grace_period must be >= 0, got {grace_period}")
        self.grace_period = grace_period
        self.conflict_policy = conflict_policy
        self._timer_factory: ITimerFactory = (
            timer_factory if timer_factory is not None else CancellableTimer
        )
        self._entries: dict[str, UndoQueueEntry] = {}
        self._live: dict[str, UndoQueueEntry] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def closed(self) -> bool:
        return self._closed

    def has_live(self, stream: str) -> bool:
        return stream in self._live

    def live_handles(self) -> list[EntryHandle]:
        return [entry.handle for entry in self._live.values()]

    def get_pending(self, handle: EntryHandle) -> PendingMutation | None:
        entry = self._entries.get(handle.entry_id)
        return entry.pending if entry else None

    # ── Enqueue ──────────────────────────────────────────────────

    async def enqueue(
        self, pending: PendingMutation, grace_period: float | None = None
    ) -> EntryHandle:
        """Register *pending* and start its countdown.

        Raises:
            QueueConflictError: Under ``ConflictPolicy.REJECT`` when the
                stream already has a live entry.
            EntryStateError: If the queue is closed or *pending* was already
                queued or settled.
        """
        self._ensure_acceptable(pending)
        stream = pending.stream

        while (live := self._live.get(stream)) is not None:
            if self.conflict_policy is ConflictPolicy.REJECT:
                logger.warning(
                    "Rejected undoable mutation on %s: entry %s is still live",
                    stream,
                    live.handle.entry_id,
                )
                raise QueueConflictError(stream)
            logger.info(
                "Force-settling live entry %s on %s before accepting %s",
                live.handle.entry_id,
                stream,
                pending.mutation_id,
            )
            await self._force_settle(live)
            self._ensure_acceptable(pending)

        # No await from here on: registration is atomic on the loop.
        delay = self.grace_period if grace_period is None else grace_period
        handle = EntryHandle(entry_id=pending.mutation_id, stream=stream)
        timer = self._timer_factory(delay, functools.partial(self._on_expiry, handle))
        entry = UndoQueueEntry(handle=handle, pending=pending, timer=timer, grace_period=delay)
        pending._add_settle_listener(functools.partial(self._on_committed, entry))
        self._entries[handle.entry_id] = entry
        self._live[stream] = entry
        timer.start()

        logger.debug("Enqueued %r with %.3fs grace period", pending, delay)
        emit_undo_event(
            UndoEvent.ENQUEUED, resource=pending.resource, stream=stream, grace_period=delay
        )
        return handle

    def _ensure_acceptable(self, pending: PendingMutation) -> None:
        if self._closed:
            raise EntryStateError("Undo queue is closed")
        if pending.state is not EntryState.QUEUED:
            raise EntryStateError(f"{pending!r} is not in the queued state")
        if pending.mutation_id in self._entries:
            raise EntryStateError(f"{pending!r} is already enqueued")

    async def _force_settle(self, entry: UndoQueueEntry) -> None:
        pending = self.take(entry.handle, SettlementTrigger.FORCED)
        if pending is not None:
            await pending.execute()
        else:
            await entry.settled.wait()

    # ── Cancel / take / commit ───────────────────────────────────

    def cancel(self, handle: EntryHandle) -> bool:
        """Cancel the entry if it is still queued.

        Idempotent: returns *False* (and changes nothing) when the entry is
        unknown, already cancelled, executing or committed.
        """
        entry = self._entries.get(handle.entry_id)
        if entry is None:
            return False
        pending = entry.pending
        if not pending._compare_and_set(EntryState.QUEUED, EntryState.CANCELLED):
            return False

        entry.timer.dispose()
        self._release(entry)
        pending._run_cancel_hook()
        logger.info("Cancelled undoable mutation %s on %s", handle.entry_id, handle.stream)
        emit_undo_event(UndoEvent.CANCELLED, resource=pending.resource, stream=handle.stream)
        return True

    def take(
        self, handle: EntryHandle, trigger: SettlementTrigger | None = None
    ) -> PendingMutation | None:
        """Atomically claim a queued mutation for execution.

        The returned mutation is ``executing``; the caller must await its
        :meth:`~PendingMutation.execute`. The stream stays live until it
        settles. Returns *None* if the entry is no longer queued.
        """
        entry = self._entries.get(handle.entry_id)
        if entry is None:
            return None
        pending = entry.pending
        if not pending._mark_taken(trigger or SettlementTrigger.EXPLICIT):
            return None
        entry.timer.dispose()
        return pending

    async def commit(self, handle: EntryHandle) -> MutationOutcome | None:
        """Execute now. Returns *None* if the entry was not queued anymore."""
        pending = self.take(handle, SettlementTrigger.EXPLICIT)
        if pending is None:
            return None
        return await pending.execute()

    async def flush(self) -> list[MutationOutcome]:
        """Commit every live entry and wait for in-flight executions."""
        outcomes: list[MutationOutcome] = []
        for entry in list(self._live.values()):
            pending = self.take(entry.handle, SettlementTrigger.FLUSH)
            if pending is not None:
                outcomes.append(await pending.execute())
            else:
                await entry.settled.wait()
        await self.drain()
        return outcomes

    async def aclose(self) -> None:
        self._closed = True
        outcomes = await self.flush()
        logger.debug("Undo queue closed, flushed %d entries", len(outcomes))

    # ── Internals ────────────────────────────────────────────────

    def _on_expiry(self, handle: EntryHandle) -> None:
        pending = self.take(handle, SettlementTrigger.EXPIRY)
        if pending is None:
            return
        logger.debug("Grace period elapsed for %s on %s", handle.entry_id, handle.stream)
        task = asyncio.get_running_loop().create_task(pending.execute())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_committed(self, entry: UndoQueueEntry) -> None:
        entry.timer.dispose()
        self._release(entry)
        outcome = entry.pending.outcome
        emit_undo_event(
            UndoEvent.COMMITTED,
            resource=entry.pending.resource,
            stream=entry.handle.stream,
            succeeded=outcome.succeeded if outcome else None,
        )

    def _release(self, entry: UndoQueueEntry) -> None:
        self._entries.pop(entry.handle.entry_id, None)
        if self._live.get(entry.handle.stream) is entry:
            del self._live[entry.handle.stream]
        entry.settled.set()

    async def drain(self) -> None:
        """Wait for executions started by grace-period expiry."""
        while self._tasks:
            results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
            for result in results:
                if isinstance(result, BaseException) and not isinstance(
                    result, asyncio.CancelledError
                ):
                    logger.error("Undo execution task failed", exc_info=result)
