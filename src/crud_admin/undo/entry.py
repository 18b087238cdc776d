"""PendingMutation — one deferred side effect and its state machine.

State machine::

    queued --cancel--> cancelled            (terminal)
    queued --take----> executing --settle--> committed   (terminal)

Every transition is a single compare-and-set under a lock, so a cancel and
a take racing on the same entry can never both win.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..primitives.exceptions import EntryStateError, InvalidMutationRequestError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..primitives.identifiers import Identifier

logger = logging.getLogger("crud_admin.undo")


class EntryState(str, Enum):
    QUEUED = "queued"
    EXECUTING = "executing"
    CANCELLED = "cancelled"
    COMMITTED = "committed"


_TRANSITIONS: dict[EntryState, frozenset[EntryState]] = {
    EntryState.QUEUED: frozenset({EntryState.CANCELLED, EntryState.EXECUTING}),
    EntryState.EXECUTING: frozenset({EntryState.COMMITTED}),
    EntryState.CANCELLED: frozenset(),
    EntryState.COMMITTED: frozenset(),
}


class SettlementTrigger(str, Enum):
    """What caused a pending mutation to be taken for execution."""

    EXPIRY = "expiry"
    EXPLICIT = "explicit"
    FORCED = "forced"
    FLUSH = "flush"


@dataclass(frozen=True)
class CallTimeInfo:
    """Recorded when a pending mutation is taken for execution."""

    trigger: SettlementTrigger
    taken_at: float

    @property
    def expired(self) -> bool:
        return self.trigger is SettlementTrigger.EXPIRY


@dataclass(frozen=True)
class MutationOutcome:
    """Result of running a pending mutation's side effect exactly once."""

    mutation_id: str
    trigger: SettlementTrigger
    result: Any = None
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class EntryHandle:
    """Opaque token returned by the undo queue for one enqueued mutation."""

    entry_id: str
    stream: str


def default_stream(
    resource: str,
    record_id: Identifier | None = None,
    record_ids: list[Identifier] | None = None,
) -> str:
    """Stream key for a mutation: ``posts:1`` or ``posts:1,2,3``."""
    if record_ids:
        return f"{resource}:{','.join(sorted(str(i) for i in record_ids))}"
    if record_id is not None:
        return f"{resource}:{record_id}"
    return resource


class PendingMutation:
    """A deferred provider call plus the hooks that reconcile its outcome.

    Args:
        resource: Target resource name.
        mutation_fn: Zero-argument coroutine function performing the actual
            provider call. Invoked at most once.
        record_id: Target record, for single-record mutations.
        record_ids: Target records, for bulk mutations.
        record: The target record itself, when known.
        stream: Logical action stream; at most one live entry per stream.
            Defaults to :func:`default_stream`.
        on_cancel: Called once if the mutation is cancelled (undo).
        on_settled: Called once with the :class:`MutationOutcome` after the
            side effect settled. May be sync or async.
    """

    def __init__(
        self,
        resource: str,
        mutation_fn: Callable[[], Awaitable[Any]],
        *,
        record_id: Identifier | None = None,
        record_ids: list[Identifier] | None = None,
        record: dict[str, Any] | None = None,
        stream: str | None = None,
        on_cancel: Callable[[], None] | None = None,
        on_settled: Callable[[MutationOutcome], Any] | None = None,
        mutation_id: str | None = None,
    ) -> None:
        if not resource:
            raise InvalidMutationRequestError({"resource": ["must not be empty"]})
        self.resource = resource
        self.mutation_fn = mutation_fn
        self.record_id = record_id
        self.record_ids = list(record_ids) if record_ids is not None else None
        self.record = record
        self.stream = stream or default_stream(resource, record_id, record_ids)
        self.on_cancel = on_cancel
        self.on_settled = on_settled
        self.mutation_id = mutation_id or str(uuid.uuid4())
        self.call_time_info: CallTimeInfo | None = None
        self.outcome: MutationOutcome | None = None

        self._state = EntryState.QUEUED
        self._lock = threading.Lock()
        self._started = False
        self._settle_listeners: list[Callable[[], None]] = []

    def __repr__(self) -> str:
        return (
            f"PendingMutation(id={self.mutation_id!r}, stream={self.stream!r}, "
            f"state={self._state.value})"
        )

    @property
    def state(self) -> EntryState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self._state]

    def _compare_and_set(self, expected: EntryState, new: EntryState) -> bool:
        """Atomically move from *expected* to *new*; False if someone else won."""
        if new not in _TRANSITIONS[expected]:
            raise EntryStateError(f"Illegal transition {expected.value} -> {new.value}")
        with self._lock:
            if self._state is not expected:
                return False
            self._state = new
        logger.debug("%r: %s -> %s", self, expected.value, new.value)
        return True

    def _mark_taken(self, trigger: SettlementTrigger) -> bool:
        if not self._compare_and_set(EntryState.QUEUED, EntryState.EXECUTING):
            return False
        self.call_time_info = CallTimeInfo(trigger=trigger, taken_at=time.monotonic())
        return True

    def _add_settle_listener(self, listener: Callable[[], None]) -> None:
        self._settle_listeners.append(listener)

    async def execute(self) -> MutationOutcome:
        """Run the side effect. Only valid once, and only after being taken.

        The entry ends in ``committed`` whatever the side effect does: the
        action was attempted exactly once. Failures are reported through the
        returned outcome and ``on_settled``; they are never retried.

        Raises:
            EntryStateError: If the mutation was not taken, or already ran.
        """
        with self._lock:
            if self._state is not EntryState.EXECUTING or self._started:
                raise EntryStateError(
                    f"{self!r} cannot execute (state={self._state.value}, "
                    f"started={self._started})"
                )
            self._started = True

        info = self.call_time_info
        trigger = info.trigger if info else SettlementTrigger.EXPLICIT
        cancelled: asyncio.CancelledError | None = None
        try:
            result = await self.mutation_fn()
        except asyncio.CancelledError as exc:
            cancelled = exc
            outcome = MutationOutcome(self.mutation_id, trigger, error=exc)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Pending mutation %s on %s failed: %s", self.mutation_id, self.stream, exc
            )
            outcome = MutationOutcome(self.mutation_id, trigger, error=exc)
        else:
            outcome = MutationOutcome(self.mutation_id, trigger, result=result)

        self._compare_and_set(EntryState.EXECUTING, EntryState.COMMITTED)
        self.outcome = outcome
        await self._notify_settled(outcome)
        if cancelled is not None:
            raise cancelled
        return outcome

    async def run_now(self) -> MutationOutcome:
        """Take and execute a mutation that never went through an undo queue.

        Used for optimistic mutations, which have no grace period.
        """
        if not self._mark_taken(SettlementTrigger.EXPLICIT):
            raise EntryStateError(f"{self!r} is not in the queued state")
        return await self.execute()

    async def _notify_settled(self, outcome: MutationOutcome) -> None:
        if self.on_settled is not None:
            try:
                maybe_awaitable = self.on_settled(outcome)
                if inspect.isawaitable(maybe_awaitable):
                    await maybe_awaitable
            except Exception:
                logger.exception("on_settled hook failed for %r", self)
        for listener in self._settle_listeners:
            listener()

    def _run_cancel_hook(self) -> None:
        if self.on_cancel is None:
            return
        try:
            self.on_cancel()
        except Exception:
            logger.exception("on_cancel hook failed for %r", self)
