"""QueryService — read-through access to the data provider via the cache."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .query_keys import (
    get_list_key,
    get_many_key,
    get_many_reference_key,
    get_one_key,
    resource_prefix,
)
from .types import (
    GetListParams,
    GetListResult,
    GetManyParams,
    GetManyReferenceParams,
    GetManyReferenceResult,
    GetOneParams,
    Record,
)

if TYPE_CHECKING:
    from ..mutations.pending import PendingMutationRegistry
    from ..ports.data_provider import IDataProvider
    from ..ports.query_cache import IQueryCache
    from ..primitives.identifiers import Identifier

logger = logging.getLogger("crud_admin.cache")


class QueryService:
    """Serves fresh cache entries and fetches (then caches) everything else.

    Records read through a list or ``get_many`` also seed their ``getOne``
    entry, so that opening a record from a list needs no extra request.
    Records with a mutation in flight are never re-seeded: while a mutation
    is pending the coordinator is the only writer of that record's entry.

    Provider errors propagate to the caller unchanged.
    """

    def __init__(
        self,
        provider: IDataProvider,
        cache: IQueryCache,
        *,
        pending: PendingMutationRegistry | None = None,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.pending = pending

    async def get_one(
        self, resource: str, record_id: Identifier, *, force: bool = False
    ) -> Record:
        key = get_one_key(resource, record_id)
        cached = self.cache.get_query_data(key)
        if cached is not None:
            if self._is_pending(resource, record_id):
                return cached
            if not force and not self.cache.is_stale(key):
                return cached
        logger.debug("Fetching %s/%s", resource, record_id)
        result = await self.provider.get_one(resource, GetOneParams(id=record_id))
        if not self._is_pending(resource, record_id):
            self.cache.set_query_data(key, result.data)
        return result.data

    async def get_list(
        self, resource: str, params: GetListParams | None = None, *, force: bool = False
    ) -> GetListResult:
        params = params or GetListParams()
        key = get_list_key(resource, params)
        cached = self.cache.get_query_data(key)
        if cached is not None and not force and not self.cache.is_stale(key):
            return cached
        logger.debug("Fetching %s list page %d", resource, params.pagination.page)
        result = await self.provider.get_list(resource, params)
        self.cache.set_query_data(key, result)
        self._seed_records(resource, result.data)
        return result

    async def get_many(
        self, resource: str, ids: list[Identifier], *, force: bool = False
    ) -> list[Record]:
        key = get_many_key(resource, ids)
        cached = self.cache.get_query_data(key)
        if cached is not None and not force and not self.cache.is_stale(key):
            return cached
        result = await self.provider.get_many(resource, GetManyParams(ids=list(ids)))
        self.cache.set_query_data(key, result.data)
        self._seed_records(resource, result.data)
        return result.data

    async def get_many_reference(
        self, resource: str, params: GetManyReferenceParams, *, force: bool = False
    ) -> GetManyReferenceResult:
        key = get_many_reference_key(resource, params)
        cached = self.cache.get_query_data(key)
        if cached is not None and not force and not self.cache.is_stale(key):
            return cached
        result = await self.provider.get_many_reference(resource, params)
        self.cache.set_query_data(key, result)
        self._seed_records(resource, result.data)
        return result

    def refresh(self, resource: str) -> int:
        """Mark every cached query of *resource* stale."""
        return self.cache.invalidate_queries(resource_prefix(resource))

    def _is_pending(self, resource: str, record_id: Identifier) -> bool:
        return self.pending is not None and self.pending.is_pending(resource, record_id)

    def _seed_records(self, resource: str, records: list[Record]) -> None:
        for record in records:
            record_id = record.get("id")
            if record_id is None or self._is_pending(resource, record_id):
                continue
            self.cache.set_query_data(get_one_key(resource, record_id), record)
