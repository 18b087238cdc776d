"""InMemoryDataProvider — dict-backed fake backend for tests and demos."""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import TYPE_CHECKING, Any

from ...data.types import (
    CreateParams,
    CreateResult,
    DeleteManyParams,
    DeleteManyResult,
    DeleteParams,
    DeleteResult,
    GetListParams,
    GetListResult,
    GetManyParams,
    GetManyReferenceParams,
    GetManyReferenceResult,
    GetManyResult,
    GetOneParams,
    GetOneResult,
    Record,
    SortPayload,
    UpdateManyParams,
    UpdateManyResult,
    UpdateParams,
    UpdateResult,
)
from ...ports.data_provider import IDataProvider
from ...primitives.exceptions import HttpError
from ...primitives.identifiers import same_id

if TYPE_CHECKING:
    from ...primitives.identifiers import Identifier

logger = logging.getLogger("crud_admin.data_provider")


def _matches(record: Record, filters: dict[str, Any]) -> bool:
    for name, expected in filters.items():
        if name == "q":
            needle = str(expected).lower()
            if not any(needle in str(value).lower() for value in record.values()):
                return False
        elif isinstance(expected, (list, tuple, set)):
            if not any(same_id(record.get(name), item) for item in expected):
                return False
        elif not same_id(record.get(name), expected):
            return False
    return True


def _sort_key(field: str) -> Any:
    def key(record: Record) -> tuple[bool, Any]:
        value = record.get(field)
        # None sorts last; mixed types compare by their text.
        if value is None:
            return (True, "")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (False, value)
        return (False, str(value))

    return key


class InMemoryDataProvider(IDataProvider):
    """In-memory implementation of ``IDataProvider``.

    Holds one list of records per resource. Supports equality filters
    (lists mean "any of"), a ``q`` full-text filter, sorting, pagination,
    reference lookups and auto-increment identifiers. Every returned record
    is a deep copy, so callers never alias stored data.

    Example::

        provider = InMemoryDataProvider({
            "posts": [{"id": 1, "title": "Hello"}, {"id": 2, "title": "World"}],
            "comments": [{"id": 1, "post_id": 1, "body": "Nice"}],
        })
        result = await provider.get_one("posts", GetOneParams(id=1))

    Args:
        data: Initial records per resource.
        logging_enabled: Log every request/response at INFO level.
        delay: Artificial latency in seconds applied to every call.
    """

    def __init__(
        self,
        data: dict[str, list[Record]] | None = None,
        *,
        logging_enabled: bool = False,
        delay: float | None = None,
    ) -> None:
        self._collections: dict[str, list[Record]] = {
            resource: [copy.deepcopy(record) for record in records]
            for resource, records in (data or {}).items()
        }
        self.logging_enabled = logging_enabled
        self.delay = delay
        self.calls: list[tuple[str, str, Any]] = []
        self._failures: dict[str, list[BaseException]] = {}

    # ── Reads ────────────────────────────────────────────────────

    async def get_list(self, resource: str, params: GetListParams) -> GetListResult:
        await self._begin("get_list", resource, params)
        matching = self._query(resource, params.filter, params.sort)
        page = self._paginate(matching, params.pagination.page, params.pagination.per_page)
        result = GetListResult(data=page, total=len(matching))
        return self._respond("get_list", resource, params, result)

    async def get_one(self, resource: str, params: GetOneParams) -> GetOneResult:
        await self._begin("get_one", resource, params)
        record = self._find(resource, params.id)
        if record is None:
            raise HttpError(f"Record {params.id} not found in {resource!r}", 404)
        result = GetOneResult(data=copy.deepcopy(record))
        return self._respond("get_one", resource, params, result)

    async def get_many(self, resource: str, params: GetManyParams) -> GetManyResult:
        await self._begin("get_many", resource, params)
        records = [self._find(resource, record_id) for record_id in params.ids]
        data = [copy.deepcopy(record) for record in records if record is not None]
        return self._respond(
            "get_many", resource, params, GetManyResult(data=data)
        )

    async def get_many_reference(
        self, resource: str, params: GetManyReferenceParams
    ) -> GetManyReferenceResult:
        await self._begin("get_many_reference", resource, params)
        filters = {**params.filter, params.target: params.id}
        matching = self._query(resource, filters, params.sort)
        page = self._paginate(matching, params.pagination.page, params.pagination.per_page)
        result = GetManyReferenceResult(data=page, total=len(matching))
        return self._respond("get_many_reference", resource, params, result)

    # ── Writes ───────────────────────────────────────────────────

    async def create(self, resource: str, params: CreateParams) -> CreateResult:
        await self._begin("create", resource, params)
        collection = self._collections.setdefault(resource, [])
        record = copy.deepcopy(params.data)
        if record.get("id") is None:
            record["id"] = self._next_id(collection)
        elif self._find(resource, record["id"]) is not None:
            raise HttpError(f"Duplicate id {record['id']} in {resource!r}", 409)
        collection.append(record)
        return self._respond(
            "create", resource, params, CreateResult(data=copy.deepcopy(record))
        )

    async def update(self, resource: str, params: UpdateParams) -> UpdateResult:
        await self._begin("update", resource, params)
        record = self._update_one(resource, params.id, params.data)
        return self._respond(
            "update", resource, params, UpdateResult(data=record)
        )

    async def update_many(
        self, resource: str, params: UpdateManyParams
    ) -> UpdateManyResult:
        await self._begin("update_many", resource, params)
        for record_id in params.ids:
            self._update_one(resource, record_id, params.data)
        return self._respond(
            "update_many",
            resource,
            params,
            UpdateManyResult(data=list(params.ids)),
        )

    async def delete(self, resource: str, params: DeleteParams) -> DeleteResult:
        await self._begin("delete", resource, params)
        record = self._remove_one(resource, params.id)
        return self._respond(
            "delete", resource, params, DeleteResult(data=record)
        )

    async def delete_many(
        self, resource: str, params: DeleteManyParams
    ) -> DeleteManyResult:
        await self._begin("delete_many", resource, params)
        for record_id in params.ids:
            self._remove_one(resource, record_id)
        return self._respond(
            "delete_many",
            resource,
            params,
            DeleteManyResult(data=list(params.ids)),
        )

    # ── Internals ────────────────────────────────────────────────

    def _collection(self, resource: str) -> list[Record]:
        collection = self._collections.get(resource)
        if collection is None:
            raise HttpError(f'Undefined collection "{resource}"', 404)
        return collection

    def _find(self, resource: str, record_id: Identifier) -> Record | None:
        for record in self._collection(resource):
            if same_id(record.get("id"), record_id):
                return record
        return None

    def _query(
        self, resource: str, filters: dict[str, Any], sort: SortPayload
    ) -> list[Record]:
        matching = [r for r in self._collection(resource) if _matches(r, filters)]
        return sorted(matching, key=_sort_key(sort.field), reverse=sort.order == "DESC")

    @staticmethod
    def _paginate(records: list[Record], page: int, per_page: int) -> list[Record]:
        start = (page - 1) * per_page
        return [copy.deepcopy(record) for record in records[start : start + per_page]]

    @staticmethod
    def _next_id(collection: list[Record]) -> int:
        numeric = [
            r["id"]
            for r in collection
            if isinstance(r.get("id"), int) and not isinstance(r.get("id"), bool)
        ]
        return max(numeric, default=-1) + 1

    def _update_one(
        self, resource: str, record_id: Identifier, data: Record
    ) -> Record:
        record = self._find(resource, record_id)
        if record is None:
            raise HttpError(f"Record {record_id} not found in {resource!r}", 404)
        patch = {k: copy.deepcopy(v) for k, v in data.items() if k != "id"}
        record.update(patch)
        return copy.deepcopy(record)

    def _remove_one(self, resource: str, record_id: Identifier) -> Record:
        collection = self._collection(resource)
        for index, record in enumerate(collection):
            if same_id(record.get("id"), record_id):
                return collection.pop(index)
        raise HttpError(f"Record {record_id} not found in {resource!r}", 404)

    async def _begin(self, action: str, resource: str, params: Any) -> None:
        self.calls.append((action, resource, params))
        if self.delay:
            await asyncio.sleep(self.delay)
        failures = self._failures.get(action)
        if failures:
            raise failures.pop(0)

    def _respond(
        self,
        action: str,
        resource: str,
        params: Any,
        result: Any,
    ) -> Any:
        if self.logging_enabled:
            logger.info(
                "InMemoryDataProvider %s %s %s -> %s",
                action,
                resource,
                params.model_dump(exclude_none=True),
                result.model_dump(exclude_none=True),
            )
        return result

    # ── Test helpers ─────────────────────────────────────────────

    def calls_for(self, action: str, resource: str | None = None) -> list[Any]:
        """Return the params of every recorded *action* call."""
        return [
            params
            for name, res, params in self.calls
            if name == action and (resource is None or res == resource)
        ]

    def records(self, resource: str) -> list[Record]:
        return copy.deepcopy(self._collections.get(resource, []))

    def fail_next(self, action: str, error: BaseException) -> None:
        """Make the next *action* call raise *error* instead of running."""
        self._failures.setdefault(action, []).append(error)

    def clear_calls(self) -> None:
        self.calls.clear()
