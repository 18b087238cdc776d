"""Per-record mutation versions and pending counters."""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from typing import TYPE_CHECKING

from ..primitives.identifiers import RecordKey

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ..primitives.identifiers import Identifier

logger = logging.getLogger("crud_admin.mutations")

Versions = dict[RecordKey, int]


class PendingMutationRegistry:
    """Tracks which records have a mutation in flight.

    Every mutation takes a new version of each record it touches when it is
    issued. Its settlement may write the cache only while it still holds the
    latest version of every one of those records; otherwise a later mutation
    owns the cached value.

    Subscribers of a record are told when it becomes pending and when its
    last pending mutation ends.
    """

    def __init__(self) -> None:
        self._versions: dict[RecordKey, int] = {}
        self._pending: Counter[RecordKey] = Counter()
        self._subscribers: dict[str, tuple[RecordKey, Callable[[bool], None]]] = {}

    def begin(self, keys: Iterable[RecordKey]) -> Versions:
        versions: Versions = {}
        for key in keys:
            version = self._versions.get(key, 0) + 1
            self._versions[key] = version
            versions[key] = version
            self._pending[key] += 1
            if self._pending[key] == 1:
                self._publish(key, True)
        return versions

    def end(self, keys: Iterable[RecordKey]) -> None:
        for key in keys:
            if self._pending[key] <= 0:
                logger.warning("Ended a mutation on %s that was not pending", key)
                continue
            self._pending[key] -= 1
            if self._pending[key] == 0:
                del self._pending[key]
                self._publish(key, False)

    def is_latest(self, versions: Versions) -> bool:
        return all(self._versions.get(key) == version for key, version in versions.items())

    def current_version(self, key: RecordKey) -> int:
        return self._versions.get(key, 0)

    def is_pending(self, resource: str, record_id: Identifier) -> bool:
        return self._pending[RecordKey.of(resource, record_id)] > 0

    def subscribe(
        self, resource: str, record_id: Identifier, callback: Callable[[bool], None]
    ) -> Callable[[], None]:
        """Call ``callback(is_pending)`` on every transition; return an unsubscriber."""
        subscription_id = str(uuid.uuid4())
        self._subscribers[subscription_id] = (RecordKey.of(resource, record_id), callback)

        def unsubscribe() -> None:
            self._subscribers.pop(subscription_id, None)

        return unsubscribe

    def _publish(self, key: RecordKey, pending: bool) -> None:
        for subscription_id in list(self._subscribers):
            subscription = self._subscribers.get(subscription_id)
            if subscription is None or subscription[0] != key:
                continue
            try:
                subscription[1](pending)
            except Exception:
                logger.exception("Pending-state subscriber for %s failed", key)
