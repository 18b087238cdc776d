"""Undo queue: deferred mutations with exactly-once settlement."""

from __future__ import annotations

from .entry import (
    CallTimeInfo,
    EntryHandle,
    EntryState,
    MutationOutcome,
    PendingMutation,
    SettlementTrigger,
    default_stream,
)
from .queue import DEFAULT_GRACE_PERIOD, ConflictPolicy, UndoQueue, UndoQueueEntry
from .timer import CancellableTimer

__all__ = [
    "DEFAULT_GRACE_PERIOD",
    "CallTimeInfo",
    "CancellableTimer",
    "ConflictPolicy",
    "EntryHandle",
    "EntryState",
    "MutationOutcome",
    "PendingMutation",
    "SettlementTrigger",
    "UndoQueue",
    "UndoQueueEntry",
    "default_stream",
]
