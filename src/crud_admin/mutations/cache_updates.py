"""How each mutation action rewrites the shared read cache.

A plan knows which query keys its action touches (what to snapshot and
invalidate), the speculative update applied before the provider answers,
how to fold the provider's answer back in and how to revert its own
records. Both cache updates are idempotent, so folding a result over an
already speculated cache is safe.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from ..data.query_keys import get_one_key, list_prefixes
from ..data.types import (
    CreateParams,
    DeleteManyParams,
    DeleteParams,
    UpdateManyParams,
    UpdateParams,
)
from ..primitives.identifiers import RecordKey, same_id
from ..undo.entry import default_stream
from .types import MutationAction

if TYPE_CHECKING:
    from ..data.types import Record
    from ..ports.data_provider import IDataProvider
    from ..ports.query_cache import CacheSnapshot, IQueryCache, QueryKey
    from ..primitives.identifiers import Identifier


def _contains(ids: list[Identifier], record: Any) -> bool:
    return isinstance(record, dict) and any(same_id(record.get("id"), i) for i in ids)


def _replace(value: Any, **changes: Any) -> Any:
    """Copy of a list-shaped cache value (pydantic result or dict) with *changes*."""
    if isinstance(value, dict):
        return {**value, **changes}
    return value.model_copy(update=changes)


def _records_of(value: Any) -> list[Record] | None:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return value.get("data")
    return getattr(value, "data", None)


def remove_records(value: Any, ids: list[Identifier]) -> Any:
    """Drop *ids* from a cached collection, decrementing its ``total``."""
    records = _records_of(value)
    if not records:
        return value
    remaining = [record for record in records if not _contains(ids, record)]
    removed = len(records) - len(remaining)
    if not removed:
        return value
    if isinstance(value, list):
        return remaining
    total = value.get("total") if isinstance(value, dict) else getattr(value, "total", None)
    return _replace(
        value,
        data=remaining,
        total=max(total - removed, 0) if total is not None else None,
    )


def patch_records(value: Any, ids: list[Identifier], patch: Record) -> Any:
    """Merge *patch* into every record of *ids* found in a cached collection."""
    records = _records_of(value)
    if not records or not any(_contains(ids, record) for record in records):
        return value
    patched = [
        {**record, **copy.deepcopy(patch)} if _contains(ids, record) else record
        for record in records
    ]
    if isinstance(value, list):
        return patched
    return _replace(value, data=patched)


def restore_records(value: Any, saved: Any, ids: list[Identifier]) -> Any:
    """Put the *saved* versions of *ids* back into a cached collection.

    Only the records of *ids* change: a patched record gets its saved
    version back, a removed one is reinserted at its saved position and
    ``total`` grows accordingly. Other records keep their current value.
    """
    current = _records_of(value)
    previous = _records_of(saved)
    if current is None or not previous:
        return value
    versions = {str(r["id"]): r for r in previous if _contains(ids, r)}
    if not versions:
        return value

    restored = [
        copy.deepcopy(versions[str(record["id"])])
        if _contains(ids, record) and str(record["id"]) in versions
        else record
        for record in current
    ]
    present = {str(r.get("id")) for r in restored if isinstance(r, dict)}
    inserted = 0
    for index, record in enumerate(previous):
        if _contains(ids, record) and str(record["id"]) not in present:
            restored.insert(min(index, len(restored)), copy.deepcopy(record))
            inserted += 1
    if isinstance(value, list):
        return restored
    total = value.get("total") if isinstance(value, dict) else getattr(value, "total", None)
    return _replace(
        value,
        data=restored,
        total=total + inserted if total is not None else None,
    )


def _remove_from_collections(cache: IQueryCache, resource: str, ids: list[Identifier]) -> None:
    for prefix in list_prefixes(resource):
        cache.set_queries_data(prefix, lambda value: remove_records(value, ids))


def _forget_records(cache: IQueryCache, resource: str, ids: list[Identifier]) -> None:
    _remove_from_collections(cache, resource, ids)
    for record_id in ids:
        cache.remove_queries(get_one_key(resource, record_id))


class CachePlan:
    """Base plan; subclasses fill in the action-specific parts."""

    action: MutationAction
    previous_data: Record | None = None

    def __init__(self, resource: str, ids: list[Identifier], meta: dict[str, Any] | None) -> None:
        self.resource = resource
        self.ids = ids
        self.meta = meta

    @property
    def record_keys(self) -> list[RecordKey]:
        return sorted({RecordKey.of(self.resource, i) for i in self.ids})

    @property
    def stream(self) -> str:
        if self.action.is_bulk:
            return default_stream(self.resource, record_ids=self.ids)
        return default_stream(self.resource, record_id=self.ids[0])

    @property
    def count(self) -> int:
        return len(self.ids)

    @property
    def query_keys(self) -> list[QueryKey]:
        return [get_one_key(self.resource, i) for i in self.ids] + list_prefixes(self.resource)

    def apply_speculative(self, cache: IQueryCache) -> Any:
        raise NotImplementedError

    def apply_result(self, cache: IQueryCache, data: Any) -> None:
        raise NotImplementedError

    def rollback(self, cache: IQueryCache, snapshot: CacheSnapshot) -> None:
        """Revert this plan's records to their *snapshot* values.

        Records of other mutations sharing the same lists are left alone, so
        undoing one mutation never reverts another one still in flight.
        """
        saved = dict(snapshot.entries)
        prefixes = list_prefixes(self.resource)
        for key, value in snapshot.entries:
            if key[:2] in prefixes:
                cache.update_query_data(
                    key, lambda current, value=value: restore_records(current, value, self.ids)
                )
        for record_id in self.ids:
            key = get_one_key(self.resource, record_id)
            if key in saved:
                cache.set_query_data(key, copy.deepcopy(saved[key]))
            else:
                cache.remove_queries(key)

    async def call(self, provider: IDataProvider) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(resource={self.resource!r}, ids={self.ids!r})"


class CreatePlan(CachePlan):
    """Creates one record.

    The speculative write only fills the new record's ``getOne`` entry, which
    needs a client-side ``id``. Collections are left to the refetch that
    follows settlement since the record's position in them is unknown.
    """

    action = MutationAction.CREATE

    def __init__(
        self, resource: str, data: Record, *, meta: dict[str, Any] | None = None
    ) -> None:
        ids = [data["id"]] if data.get("id") is not None else []
        super().__init__(resource, ids, meta)
        self.data = data

    @property
    def stream(self) -> str:
        return default_stream(self.resource, record_id=self.ids[0] if self.ids else None)

    @property
    def count(self) -> int:
        return 1

    def apply_speculative(self, cache: IQueryCache) -> Any:
        record = copy.deepcopy(self.data)
        if self.ids:
            cache.set_query_data(get_one_key(self.resource, self.ids[0]), copy.deepcopy(record))
        return record

    def apply_result(self, cache: IQueryCache, data: Any) -> None:
        if isinstance(data, dict) and data.get("id") is not None:
            cache.set_query_data(get_one_key(self.resource, data["id"]), copy.deepcopy(data))

    async def call(self, provider: IDataProvider) -> Any:
        result = await provider.create(
            self.resource, CreateParams(data=self.data, meta=self.meta)
        )
        return result.data


class DeletePlan(CachePlan):
    action = MutationAction.DELETE

    def __init__(
        self,
        resource: str,
        record_id: Identifier,
        *,
        previous_data: Record | None = None,
        meta: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(resource, [record_id], meta)
        self.previous_data = previous_data

    def apply_speculative(self, cache: IQueryCache) -> Any:
        _remove_from_collections(cache, self.resource, self.ids)
        return self.previous_data

    def apply_result(self, cache: IQueryCache, data: Any) -> None:  # noqa: ARG002
        _forget_records(cache, self.resource, self.ids)

    async def call(self, provider: IDataProvider) -> Any:
        result = await provider.delete(
            self.resource,
            DeleteParams(id=self.ids[0], previous_data=self.previous_data, meta=self.meta),
        )
        return result.data


class DeleteManyPlan(CachePlan):
    action = MutationAction.DELETE_MANY

    def __init__(
        self, resource: str, ids: list[Identifier], *, meta: dict[str, Any] | None = None
    ) -> None:
        super().__init__(resource, list(ids), meta)

    def apply_speculative(self, cache: IQueryCache) -> Any:
        _remove_from_collections(cache, self.resource, self.ids)
        return list(self.ids)

    def apply_result(self, cache: IQueryCache, data: Any) -> None:  # noqa: ARG002
        _forget_records(cache, self.resource, self.ids)

    async def call(self, provider: IDataProvider) -> Any:
        result = await provider.delete_many(
            self.resource, DeleteManyParams(ids=self.ids, meta=self.meta)
        )
        return result.data


class UpdatePlan(CachePlan):
    action = MutationAction.UPDATE

    def __init__(
        self,
        resource: str,
        record_id: Identifier,
        data: Record,
        *,
        previous_data: Record,
        meta: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(resource, [record_id], meta)
        self.data = data
        self.previous_data = previous_data

    def _write(self, cache: IQueryCache, patch: Record) -> Record:
        record_id = self.ids[0]
        key = get_one_key(self.resource, record_id)
        current = cache.get_query_data(key)
        merged = {**(current or self.previous_data), **copy.deepcopy(patch)}
        cache.set_query_data(key, merged)
        for prefix in list_prefixes(self.resource):
            cache.set_queries_data(prefix, lambda value: patch_records(value, self.ids, patch))
        return merged

    def apply_speculative(self, cache: IQueryCache) -> Any:
        return self._write(cache, self.data)

    def apply_result(self, cache: IQueryCache, data: Any) -> None:
        self._write(cache, data if isinstance(data, dict) else self.data)

    async def call(self, provider: IDataProvider) -> Any:
        result = await provider.update(
            self.resource,
            UpdateParams(
                id=self.ids[0],
                data=self.data,
                previous_data=self.previous_data,
                meta=self.meta,
            ),
        )
        return result.data


class UpdateManyPlan(CachePlan):
    action = MutationAction.UPDATE_MANY

    def __init__(
        self,
        resource: str,
        ids: list[Identifier],
        data: Record,
        *,
        meta: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(resource, list(ids), meta)
        self.data = data

    def apply_speculative(self, cache: IQueryCache) -> Any:
        for record_id in self.ids:
            cache.update_query_data(
                get_one_key(self.resource, record_id),
                lambda record: {**record, **copy.deepcopy(self.data)},
            )
        for prefix in list_prefixes(self.resource):
            cache.set_queries_data(
                prefix, lambda value: patch_records(value, self.ids, self.data)
            )
        return list(self.ids)

    def apply_result(self, cache: IQueryCache, data: Any) -> None:  # noqa: ARG002
        self.apply_speculative(cache)

    async def call(self, provider: IDataProvider) -> Any:
        result = await provider.update_many(
            self.resource, UpdateManyParams(ids=self.ids, data=self.data, meta=self.meta)
        )
        return result.data
