"""IStore — key/value store for UI preferences (list params, selection)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable


@runtime_checkable
class IStore(Protocol):
    """Port for persisting small pieces of UI state by key."""

    def setup(self) -> None:
        """Initialise the backing storage; writes before setup are deferred."""
        ...

    def teardown(self) -> None:
        """Release the backing storage."""
        ...

    def get_item(self, key: str, default: Any = None) -> Any:
        """Return the value for *key*, or *default*."""
        ...

    def set_item(self, key: str, value: Any) -> None:
        """Store *value* and notify subscribers of *key*."""
        ...

    def remove_item(self, key: str) -> None:
        """Remove *key* and notify its subscribers with *None*."""
        ...

    def remove_items(self, key_prefix: str) -> None:
        """Remove every key starting with *key_prefix*."""
        ...

    def reset(self) -> None:
        """Remove every key."""
        ...

    def subscribe(
        self, key: str, callback: Callable[[Any], None]
    ) -> Callable[[], None]:
        """Call *callback* with the new value of *key*; return an unsubscriber."""
        ...
