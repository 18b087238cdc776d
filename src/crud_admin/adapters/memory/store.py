"""MemoryStore — dict-backed UI preference store."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from ...ports.store import IStore

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("crud_admin.store")


class MemoryStore(IStore):
    """In-memory implementation of ``IStore``.

    Keys are flat strings; dots are not treated as nested paths. Writes made
    before :meth:`setup` are kept aside and applied (and published) once the
    store is set up, since views may write before the store is ready.

    Example::

        store = MemoryStore({"theme": "dark"})
        store.setup()
        unsubscribe = store.subscribe("posts.listParams", print)
        store.set_item("posts.listParams", {"page": 2})
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._initial = dict(initial or {})
        self._storage: dict[str, Any] = dict(self._initial)
        self._subscriptions: dict[str, tuple[str, Callable[[Any], None]]] = {}
        self._initialized = False
        self._deferred: dict[str, Any] = {}

    @property
    def initialized(self) -> bool:
        return self._initialized

    def setup(self) -> None:
        self._storage = dict(self._initial)
        deferred, self._deferred = self._deferred, {}
        for key, value in deferred.items():
            self._storage[key] = value
            self._publish(key, value)
        self._initialized = True

    def teardown(self) -> None:
        self._storage.clear()

    def get_item(self, key: str, default: Any = None) -> Any:
        return self._storage.get(key, default)

    def set_item(self, key: str, value: Any) -> None:
        if not self._initialized:
            self._deferred[key] = value
            return
        self._storage[key] = value
        self._publish(key, value)

    def remove_item(self, key: str) -> None:
        self._storage.pop(key, None)
        self._publish(key, None)

    def remove_items(self, key_prefix: str) -> None:
        for key in [k for k in self._storage if k.startswith(key_prefix)]:
            del self._storage[key]
            self._publish(key, None)

    def reset(self) -> None:
        keys = list(self._storage)
        self._storage.clear()
        for key in keys:
            self._publish(key, None)

    def subscribe(
        self, key: str, callback: Callable[[Any], None]
    ) -> Callable[[], None]:
        subscription_id = str(uuid.uuid4())
        self._subscriptions[subscription_id] = (key, callback)

        def unsubscribe() -> None:
            self._subscriptions.pop(subscription_id, None)

        return unsubscribe

    def _publish(self, key: str, value: Any) -> None:
        # A subscriber may unsubscribe others while being notified.
        for subscription_id in list(self._subscriptions):
            subscription = self._subscriptions.get(subscription_id)
            if subscription is None or subscription[0] != key:
                continue
            try:
                subscription[1](value)
            except Exception:
                logger.exception("Store subscriber for %r failed", key)
