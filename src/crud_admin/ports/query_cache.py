"""IQueryCache — the shared read-side cache every controller reads from."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable

QueryKey = tuple[Any, ...]
"""Tuple key such as ``("posts", "getOne", "1")``.

Operations taking a *prefix* match every key that starts with it, so
``("posts", "getList")`` addresses every cached page of the posts list.
"""


def default_entries_factory() -> list[tuple[QueryKey, Any]]:
    return []


@dataclass(frozen=True)
class CacheSnapshot:
    """Deep copy of every cache entry matching a set of prefixes.

    Taken before a speculative update so that it can be reverted to the
    last known-good values.
    """

    prefixes: tuple[QueryKey, ...]
    entries: list[tuple[QueryKey, Any]] = field(default_factory=default_entries_factory)

    def __len__(self) -> int:
        return len(self.entries)


@runtime_checkable
class IQueryCache(Protocol):
    """
    Synchronous keyed cache of query results.

    Synchronous on purpose: on a single event loop a snapshot followed by a
    speculative write can then never interleave with another writer.
    """

    def get_query_data(self, key: QueryKey) -> Any | None:
        """Return the cached value for *key*, or *None*."""
        ...

    def set_query_data(self, key: QueryKey, value: Any) -> None:
        """Store *value* under *key* and mark it fresh."""
        ...

    def update_query_data(
        self, key: QueryKey, updater: Callable[[Any], Any]
    ) -> bool:
        """Replace an existing value with ``updater(old)``.

        Returns *False* (and does nothing) when *key* is not cached.
        """
        ...

    def get_queries_data(self, prefix: QueryKey) -> list[tuple[QueryKey, Any]]:
        """Return ``(key, value)`` pairs for every key under *prefix*."""
        ...

    def set_queries_data(
        self, prefix: QueryKey, updater: Callable[[Any], Any]
    ) -> int:
        """Apply *updater* to every value under *prefix*; return the count."""
        ...

    def invalidate_queries(self, prefix: QueryKey) -> int:
        """Mark every entry under *prefix* stale so readers refetch."""
        ...

    def is_stale(self, key: QueryKey) -> bool:
        """Return *True* if *key* is missing or was invalidated."""
        ...

    def remove_queries(self, prefix: QueryKey) -> int:
        """Drop every entry under *prefix*."""
        ...

    def snapshot(self, prefixes: list[QueryKey]) -> CacheSnapshot:
        """Deep-copy every entry under any of *prefixes*."""
        ...

    def restore(self, snapshot: CacheSnapshot) -> None:
        """Write every snapshotted value back."""
        ...

    def subscribe(
        self, prefix: QueryKey, listener: Callable[[QueryKey, Any], None]
    ) -> Callable[[], None]:
        """Call *listener* on every write under *prefix*; return an unsubscriber."""
        ...
