"""Data layer: provider contracts, lifecycle callbacks and cached reads."""

from __future__ import annotations

from .lifecycle import LifecycleCallbacksDataProvider, ResourceCallbacks
from .queries import QueryService
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
    MutationMode,
    PageInfo,
    PaginationPayload,
    Record,
    SortPayload,
    UpdateManyParams,
    UpdateManyResult,
    UpdateParams,
    UpdateResult,
)

__all__ = [
    "CreateParams",
    "CreateResult",
    "DeleteManyParams",
    "DeleteManyResult",
    "DeleteParams",
    "DeleteResult",
    "GetListParams",
    "GetListResult",
    "GetManyParams",
    "GetManyReferenceParams",
    "GetManyReferenceResult",
    "GetManyResult",
    "GetOneParams",
    "GetOneResult",
    "LifecycleCallbacksDataProvider",
    "MutationMode",
    "PageInfo",
    "PaginationPayload",
    "QueryService",
    "Record",
    "ResourceCallbacks",
    "SortPayload",
    "UpdateManyParams",
    "UpdateManyResult",
    "UpdateParams",
    "UpdateResult",
]
