"""IUndoQueue / ITimer — deferred mutation protocols."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..undo.entry import (
        EntryHandle,
        MutationOutcome,
        PendingMutation,
        SettlementTrigger,
    )


@runtime_checkable
class ITimer(Protocol):
    """Port for the grace-period countdown."""

    def start(self) -> None: ...

    def cancel(self) -> bool: ...

    def dispose(self) -> None: ...


class ITimerFactory(Protocol):
    """Builds a timer that calls *callback* after *delay* seconds."""

    def __call__(self, delay: float, callback: Callable[[], None]) -> ITimer: ...


@runtime_checkable
class IUndoQueue(Protocol):
    """
    Port for the queue holding undoable mutations during their grace period.

    Guarantees that each enqueued mutation either gets cancelled or gets
    executed, exactly once.
    """

    async def enqueue(
        self, pending: PendingMutation, grace_period: float | None = None
    ) -> EntryHandle:
        """Register *pending* and start its grace period countdown."""
        ...

    def cancel(self, handle: EntryHandle) -> bool:
        """Cancel if still queued. Idempotent; *False* once terminal."""
        ...

    def take(
        self, handle: EntryHandle, trigger: SettlementTrigger | None = None
    ) -> PendingMutation | None:
        """Atomically claim a queued mutation for execution."""
        ...

    async def commit(self, handle: EntryHandle) -> MutationOutcome | None:
        """Take and execute now, skipping the rest of the grace period."""
        ...

    async def flush(self) -> list[MutationOutcome]:
        """Commit every live entry."""
        ...

    async def drain(self) -> None:
        """Wait for executions started by grace-period expiry."""
        ...

    async def aclose(self) -> None:
        """Flush, then refuse new entries."""
        ...

