"""In-memory notification channel with test assertion helpers."""

from __future__ import annotations

import logging
from collections import deque

from ...ports.notification import INotificationChannel, Notification, NotificationType

logger = logging.getLogger("crud_admin.notifications")


class InMemoryNotificationChannel(INotificationChannel):
    """
    FIFO of notifications. The UI (or a test) takes them in order.

    Every notification ever added is also kept in ``history`` so that tests
    can assert on messages the UI already consumed.
    """

    def __init__(self) -> None:
        self._queue: deque[Notification] = deque()
        self.history: list[Notification] = []

    @property
    def notifications(self) -> tuple[Notification, ...]:
        return tuple(self._queue)

    def add(self, notification: Notification) -> None:
        logger.debug(
            "Notification [%s] %s %s",
            notification.type.value,
            notification.message,
            notification.options.message_args,
        )
        self._queue.append(notification)
        self.history.append(notification)

    def take(self) -> Notification | None:
        if not self._queue:
            return None
        return self._queue.popleft()

    def reset(self) -> None:
        self._queue.clear()

    # ── Test helpers ─────────────────────────────────────────────

    def messages(self, type: NotificationType | None = None) -> list[str]:  # noqa: A002
        """Messages of every notification in ``history``, optionally by type."""
        return [n.message for n in self.history if type is None or n.type is type]

    def assert_notified(
        self,
        message: str,
        type: NotificationType | None = None,  # noqa: A002
        count: int = 1,
    ) -> None:
        """Helper for test assertions."""
        matches = [
            n
            for n in self.history
            if n.message == message and (type is None or n.type is type)
        ]
        if len(matches) != count:
            raise AssertionError(
                f"Expected {count} notifications {message!r}, but found {len(matches)}: "
                f"{[(n.message, n.type.value) for n in self.history]}"
            )

    def clear(self) -> None:
        """Clear the queue and the history."""
        self._queue.clear()
        self.history.clear()
