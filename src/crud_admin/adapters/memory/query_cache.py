"""InMemoryQueryCache — the shared read cache."""

from __future__ import annotations

import copy
import logging
import time
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ...ports.query_cache import CacheSnapshot, IQueryCache, QueryKey

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("crud_admin.cache")


def matches_prefix(key: QueryKey, prefix: QueryKey) -> bool:
    return key[: len(prefix)] == prefix


@dataclass
class CacheEntry:
    value: Any
    updated_at: float
    stale: bool = False


class InMemoryQueryCache(IQueryCache):
    """Dict-backed implementation of ``IQueryCache``.

    Values are stored as given; :meth:`snapshot` deep-copies them so that a
    restore brings back the exact pre-mutation state even if a writer mutated
    a value in place.
    """

    def __init__(self) -> None:
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._listeners: dict[str, tuple[QueryKey, Callable[[QueryKey, Any], None]]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> list[QueryKey]:
        return list(self._entries)

    def get_query_data(self, key: QueryKey) -> Any | None:
        entry = self._entries.get(key)
        return entry.value if entry else None

    def set_query_data(self, key: QueryKey, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, updated_at=time.monotonic())
        self._publish(key, value)

    def update_query_data(
        self, key: QueryKey, updater: Callable[[Any], Any]
    ) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        entry.value = updater(entry.value)
        entry.updated_at = time.monotonic()
        self._publish(key, entry.value)
        return True

    def get_queries_data(self, prefix: QueryKey) -> list[tuple[QueryKey, Any]]:
        return [
            (key, entry.value)
            for key, entry in self._entries.items()
            if matches_prefix(key, prefix)
        ]

    def set_queries_data(
        self, prefix: QueryKey, updater: Callable[[Any], Any]
    ) -> int:
        keys = [key for key in self._entries if matches_prefix(key, prefix)]
        for key in keys:
            self.update_query_data(key, updater)
        return len(keys)

    def invalidate_queries(self, prefix: QueryKey) -> int:
        count = 0
        for key, entry in self._entries.items():
            if matches_prefix(key, prefix):
                entry.stale = True
                count += 1
        if count:
            logger.debug("Invalidated %d queries under %r", count, prefix)
        return count

    def is_stale(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        return entry is None or entry.stale

    def remove_queries(self, prefix: QueryKey) -> int:
        keys = [key for key in self._entries if matches_prefix(key, prefix)]
        for key in keys:
            del self._entries[key]
            self._publish(key, None)
        return len(keys)

    def snapshot(self, prefixes: list[QueryKey]) -> CacheSnapshot:
        entries = [
            (key, copy.deepcopy(entry.value))
            for key, entry in self._entries.items()
            if any(matches_prefix(key, prefix) for prefix in prefixes)
        ]
        return CacheSnapshot(prefixes=tuple(prefixes), entries=entries)

    def restore(self, snapshot: CacheSnapshot) -> None:
        """Write back every snapshotted value.

        Entries created under the snapshot's prefixes after it was taken are
        dropped, so the cache ends up exactly as it was.
        """
        snapshotted = {key for key, _ in snapshot.entries}
        for key in list(self._entries):
            if key not in snapshotted and any(
                matches_prefix(key, prefix) for prefix in snapshot.prefixes
            ):
                del self._entries[key]
                self._publish(key, None)
        for key, value in snapshot.entries:
            self.set_query_data(key, copy.deepcopy(value))
        logger.debug("Restored %d cache entries", len(snapshot))

    def subscribe(
        self, prefix: QueryKey, listener: Callable[[QueryKey, Any], None]
    ) -> Callable[[], None]:
        listener_id = str(uuid.uuid4())
        self._listeners[listener_id] = (prefix, listener)

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return unsubscribe

    def clear(self) -> None:
        self._entries.clear()

    def _publish(self, key: QueryKey, value: Any) -> None:
        for listener_id in list(self._listeners):
            registration = self._listeners.get(listener_id)
            if registration is None or not matches_prefix(key, registration[0]):
                continue
            try:
                registration[1](key, value)
            except Exception:
                logger.exception("Cache listener for %r failed", registration[0])
