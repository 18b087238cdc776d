"""Record selection of a list view, persisted in the store."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..primitives.identifiers import same_id

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ..ports.store import IStore
    from ..primitives.identifiers import Identifier


class RecordSelection:
    """Selected identifiers of one resource, kept under ``<resource>.selectedIds``."""

    def __init__(self, resource: str, store: IStore) -> None:
        self.resource = resource
        self.store = store
        self.key = f"{resource}.selectedIds"

    @property
    def selected_ids(self) -> list[Identifier]:
        return list(self.store.get_item(self.key, []))

    def is_selected(self, record_id: Identifier) -> bool:
        return any(same_id(record_id, i) for i in self.selected_ids)

    def select(self, ids: Iterable[Identifier]) -> None:
        """Replace the selection."""
        self.store.set_item(self.key, _unique(ids))

    def toggle(self, record_id: Identifier) -> None:
        if self.is_selected(record_id):
            self.unselect([record_id])
        else:
            self.store.set_item(self.key, [*self.selected_ids, record_id])

    def unselect(self, ids: Iterable[Identifier]) -> None:
        removed = list(ids)
        remaining = [i for i in self.selected_ids if not any(same_id(i, r) for r in removed)]
        self.store.set_item(self.key, remaining)

    def unselect_all(self) -> None:
        self.store.set_item(self.key, [])

    def subscribe(self, callback: Callable[[list[Identifier] | None], None]) -> Callable[[], None]:
        return self.store.subscribe(self.key, callback)


def _unique(ids: Iterable[Identifier]) -> list[Identifier]:
    result: list[Identifier] = []
    for record_id in ids:
        if not any(same_id(record_id, existing) for existing in result):
            result.append(record_id)
    return result
