"""Notification channel port and message shapes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..undo.entry import EntryHandle


class NotificationType(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def default_args_factory() -> dict[str, Any]:
    return {}


@dataclass(frozen=True)
class NotificationOptions:
    """Rendering hints attached to a notification.

    ``undo_handle`` is set on undoable notifications; the UI passes it back to
    the undo queue to cancel (undo) or commit (dismiss) the pending mutation.
    """

    message_args: dict[str, Any] = field(default_factory=default_args_factory)
    auto_hide_duration: float | None = None
    multi_line: bool = False
    undoable: bool = False
    undo_handle: EntryHandle | None = None


@dataclass(frozen=True)
class Notification:
    """A user-facing message: a catalog key (or text), a severity and options."""

    message: str
    type: NotificationType = NotificationType.INFO
    options: NotificationOptions = field(default_factory=NotificationOptions)


@runtime_checkable
class INotificationChannel(Protocol):
    """Process-wide queue of user-facing messages.

    Any component may push; the UI renders from it in FIFO order.
    """

    @property
    def notifications(self) -> tuple[Notification, ...]:
        """Notifications not yet taken, oldest first."""
        ...

    def add(self, notification: Notification) -> None:
        """Append a notification."""
        ...

    def take(self) -> Notification | None:
        """Remove and return the oldest notification, or *None*."""
        ...

    def reset(self) -> None:
        """Drop every queued notification."""
        ...


def notify(
    channel: INotificationChannel,
    message: str,
    *,
    type: NotificationType = NotificationType.INFO,  # noqa: A002
    message_args: dict[str, Any] | None = None,
    undoable: bool = False,
    undo_handle: EntryHandle | None = None,
    auto_hide_duration: float | None = None,
    multi_line: bool = False,
) -> Notification:
    """Build a :class:`Notification` and push it to *channel*."""
    notification = Notification(
        message=message,
        type=type,
        options=NotificationOptions(
            message_args=dict(message_args or {}),
            auto_hide_duration=auto_hide_duration,
            multi_line=multi_line,
            undoable=undoable,
            undo_handle=undo_handle,
        ),
    )
    channel.add(notification)
    return notification
