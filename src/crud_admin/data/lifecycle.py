"""Lifecycle callbacks around any data provider.

Wraps an :class:`~crud_admin.ports.data_provider.IDataProvider` and runs
per-resource callbacks before and after each call. Every callback receives
``(value, provider, resource)`` and returns the (possibly replaced) value;
callbacks may be plain functions or coroutines.

Example::

    def add_slug(data, provider, resource):
        return {**data, "slug": slugify(data["title"])}

    async def delete_comments(params, provider, resource):
        comments = await provider.get_many_reference(
            "comments", GetManyReferenceParams(target="post_id", id=params.id)
        )
        if comments.data:
            await provider.delete_many(
                "comments", DeleteManyParams(ids=[c["id"] for c in comments.data])
            )
        return params

    provider = LifecycleCallbacksDataProvider(
        InMemoryDataProvider(data),
        [ResourceCallbacks("posts", before_save=add_slug, before_delete=delete_comments)],
    )
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any, Callable, TypeVar, Union

from ..ports.data_provider import IDataProvider

if TYPE_CHECKING:
    from .types import (
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
        UpdateManyParams,
        UpdateManyResult,
        UpdateParams,
        UpdateResult,
    )

logger = logging.getLogger("crud_admin.data_provider")

T = TypeVar("T")

ResourceCallback = Callable[[Any, IDataProvider, str], Any]
CallbacksValue = Union[ResourceCallback, list[ResourceCallback], None]

WILDCARD = "*"


@dataclass
class ResourceCallbacks:
    """Callbacks for one resource, or for every resource with ``"*"``.

    Each hook accepts a single callback or a list run in order.
    """

    resource: str
    before_get_list: CallbacksValue = None
    after_get_list: CallbacksValue = None
    before_get_one: CallbacksValue = None
    after_get_one: CallbacksValue = None
    before_get_many: CallbacksValue = None
    after_get_many: CallbacksValue = None
    before_get_many_reference: CallbacksValue = None
    after_get_many_reference: CallbacksValue = None
    before_create: CallbacksValue = None
    after_create: CallbacksValue = None
    before_update: CallbacksValue = None
    after_update: CallbacksValue = None
    before_update_many: CallbacksValue = None
    after_update_many: CallbacksValue = None
    before_delete: CallbacksValue = None
    after_delete: CallbacksValue = None
    before_delete_many: CallbacksValue = None
    after_delete_many: CallbacksValue = None
    before_save: CallbacksValue = None
    after_save: CallbacksValue = None
    after_read: CallbacksValue = None

    def applies_to(self, resource: str) -> bool:
        return self.resource in (resource, WILDCARD)


HOOK_NAMES = frozenset(f.name for f in fields(ResourceCallbacks) if f.name != "resource")


class LifecycleCallbacksDataProvider(IDataProvider):
    """Decorates *inner* with the callbacks declared in *handlers*.

    Handlers run in declaration order. ``before_save``/``after_save`` wrap the
    record data of ``create`` and ``update``; ``after_read`` runs on every
    record returned by the four read operations.
    """

    def __init__(self, inner: IDataProvider, handlers: list[ResourceCallbacks]) -> None:
        self.inner = inner
        self.handlers = list(handlers)

    async def apply_callbacks(self, name: str, value: T, resource: str) -> T:
        """Thread *value* through every ``name`` callback registered for *resource*."""
        if name not in HOOK_NAMES:
            raise ValueError(f"Unknown lifecycle hook {name!r}")
        for handler in self.handlers:
            if not handler.applies_to(resource):
                continue
            callbacks = getattr(handler, name)
            if callbacks is None:
                continue
            for callback in callbacks if isinstance(callbacks, list) else [callbacks]:
                logger.debug("Running %s callback on %s", name, resource)
                value = callback(value, self.inner, resource)
                if inspect.isawaitable(value):
                    value = await value
        return value

    async def _read_records(self, records: list[dict[str, Any]], resource: str) -> list[dict[str, Any]]:
        return [await self.apply_callbacks("after_read", record, resource) for record in records]

    # ── Reads ────────────────────────────────────────────────────

    async def get_list(self, resource: str, params: GetListParams) -> GetListResult:
        params = await self.apply_callbacks("before_get_list", params, resource)
        result = await self.inner.get_list(resource, params)
        result = await self.apply_callbacks("after_get_list", result, resource)
        data = await self._read_records(result.data, resource)
        return result.model_copy(update={"data": data})

    async def get_one(self, resource: str, params: GetOneParams) -> GetOneResult:
        params = await self.apply_callbacks("before_get_one", params, resource)
        result = await self.inner.get_one(resource, params)
        result = await self.apply_callbacks("after_get_one", result, resource)
        data = await self.apply_callbacks("after_read", result.data, resource)
        return result.model_copy(update={"data": data})

    async def get_many(self, resource: str, params: GetManyParams) -> GetManyResult:
        params = await self.apply_callbacks("before_get_many", params, resource)
        result = await self.inner.get_many(resource, params)
        result = await self.apply_callbacks("after_get_many", result, resource)
        data = await self._read_records(result.data, resource)
        return result.model_copy(update={"data": data})

    async def get_many_reference(
        self, resource: str, params: GetManyReferenceParams
    ) -> GetManyReferenceResult:
        params = await self.apply_callbacks("before_get_many_reference", params, resource)
        result = await self.inner.get_many_reference(resource, params)
        result = await self.apply_callbacks("after_get_many_reference", result, resource)
        data = await self._read_records(result.data, resource)
        return result.model_copy(update={"data": data})

    # ── Writes ───────────────────────────────────────────────────

    async def create(self, resource: str, params: CreateParams) -> CreateResult:
        params = await self.apply_callbacks("before_create", params, resource)
        data = await self.apply_callbacks("before_save", params.data, resource)
        result = await self.inner.create(resource, params.model_copy(update={"data": data}))
        result = await self.apply_callbacks("after_create", result, resource)
        saved = await self.apply_callbacks("after_save", result.data, resource)
        return result.model_copy(update={"data": saved})

    async def update(self, resource: str, params: UpdateParams) -> UpdateResult:
        params = await self.apply_callbacks("before_update", params, resource)
        data = await self.apply_callbacks("before_save", params.data, resource)
        result = await self.inner.update(resource, params.model_copy(update={"data": data}))
        result = await self.apply_callbacks("after_update", result, resource)
        saved = await self.apply_callbacks("after_save", result.data, resource)
        return result.model_copy(update={"data": saved})

    async def update_many(
        self, resource: str, params: UpdateManyParams
    ) -> UpdateManyResult:
        params = await self.apply_callbacks("before_update_many", params, resource)
        result = await self.inner.update_many(resource, params)
        return await self.apply_callbacks("after_update_many", result, resource)

    async def delete(self, resource: str, params: DeleteParams) -> DeleteResult:
        params = await self.apply_callbacks("before_delete", params, resource)
        result = await self.inner.delete(resource, params)
        return await self.apply_callbacks("after_delete", result, resource)

    async def delete_many(
        self, resource: str, params: DeleteManyParams
    ) -> DeleteManyResult:
        params = await self.apply_callbacks("before_delete_many", params, resource)
        result = await self.inner.delete_many(resource, params)
        return await self.apply_callbacks("after_delete_many", result, resource)
