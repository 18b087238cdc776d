"""IDataProvider — resource-oriented CRUD backend port."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..data.types import (
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


@runtime_checkable
class IDataProvider(Protocol):
    """
    Framework-agnostic port for the backend that stores records.

    Every method may raise; the failure shape only needs a ``message``
    (see :class:`~crud_admin.primitives.HttpError`). Retry policy, if any,
    belongs to the implementation.

    Adapters must explicitly declare: ``class RestDataProvider(IDataProvider):``
    """

    async def get_list(self, resource: str, params: GetListParams) -> GetListResult:
        """Fetch one page of records, filtered and sorted."""
        ...

    async def get_one(self, resource: str, params: GetOneParams) -> GetOneResult:
        """Fetch a single record by id."""
        ...

    async def get_many(self, resource: str, params: GetManyParams) -> GetManyResult:
        """Fetch several records by id."""
        ...

    async def get_many_reference(
        self, resource: str, params: GetManyReferenceParams
    ) -> GetManyReferenceResult:
        """Fetch the records referencing another record through *target*."""
        ...

    async def create(self, resource: str, params: CreateParams) -> CreateResult:
        """Create a record and return it with its new id."""
        ...

    async def update(self, resource: str, params: UpdateParams) -> UpdateResult:
        """Update a record and return its server-side version."""
        ...

    async def update_many(
        self, resource: str, params: UpdateManyParams
    ) -> UpdateManyResult:
        """Apply the same patch to several records."""
        ...

    async def delete(self, resource: str, params: DeleteParams) -> DeleteResult:
        """Delete a record and return its last known version."""
        ...

    async def delete_many(
        self, resource: str, params: DeleteManyParams
    ) -> DeleteManyResult:
        """Delete several records by id."""
        ...
