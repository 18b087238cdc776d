"""Mutation settings passed explicitly to the coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field

from .data.types import MutationMode
from .undo.queue import DEFAULT_GRACE_PERIOD, ConflictPolicy


@dataclass(frozen=True)
class MessageKeys:
    """Notification message keys; the catalog itself lives in the UI."""

    created: str = "notification.created"
    deleted: str = "notification.deleted"
    updated: str = "notification.updated"
    http_error: str = "notification.http_error"
    conflict: str = "notification.conflict"


def default_message_keys() -> MessageKeys:
    return MessageKeys()


@dataclass(frozen=True)
class MutationSettings:
    """Coordinator-wide defaults.

    Attributes:
        default_mode: Mode used when ``execute`` is called without one.
        undo_grace_period: Seconds an undoable mutation stays cancellable.
        conflict_policy: Used when the coordinator builds its own undo queue.
        notify_on_settle: Also notify success when an undoable mutation
            settles. Failures are always notified.
        messages: Notification message keys.
    """

    default_mode: MutationMode = MutationMode.UNDOABLE
    undo_grace_period: float = DEFAULT_GRACE_PERIOD
    conflict_policy: ConflictPolicy = ConflictPolicy.FORCE_SETTLE
    notify_on_settle: bool = False
    messages: MessageKeys = field(default_factory=default_message_keys)

    def __post_init__(self) -> None:
        if self.undo_grace_period < 0:
            raise ValueError(f"undo_grace_period must be >= 0, got {self.undo_grace_period}")
        # Accept plain strings such as "optimistic".
        object.__setattr__(self, "default_mode", MutationMode(self.default_mode))
        object.__setattr__(self, "conflict_policy", ConflictPolicy(self.conflict_policy))
