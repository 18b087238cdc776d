"""Data provider contracts — params and results for every CRUD operation."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..primitives.identifiers import Identifier

Record = dict[str, Any]


class MutationMode(str, Enum):
    """How a mutation reaches the data provider.

    - **PESSIMISTIC**: call the provider, wait, then update the cache.
    - **OPTIMISTIC**: update the cache immediately, call the provider in the
      background, roll back on failure.
    - **UNDOABLE**: update the cache immediately and defer the provider call
      behind a cancellable grace period, roll back if cancelled.
    """

    PESSIMISTIC = "pessimistic"
    OPTIMISTIC = "optimistic"
    UNDOABLE = "undoable"


class _Contract(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


# ── Shared payloads ──────────────────────────────────────────────


class SortPayload(_Contract):
    field: str = "id"
    order: Literal["ASC", "DESC"] = "ASC"


class PaginationPayload(_Contract):
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=10, ge=1)


class PageInfo(_Contract):
    has_next_page: bool | None = None
    has_previous_page: bool | None = None


# ── Reads ────────────────────────────────────────────────────────


class GetListParams(_Contract):
    pagination: PaginationPayload = Field(default_factory=PaginationPayload)
    sort: SortPayload = Field(default_factory=SortPayload)
    filter: dict[str, Any] = Field(default_factory=dict)
    meta: dict[str, Any] | None = None


class GetListResult(_Contract):
    data: list[Record]
    total: int | None = None
    page_info: PageInfo | None = None
    meta: dict[str, Any] | None = None


class GetOneParams(_Contract):
    id: Identifier
    meta: dict[str, Any] | None = None


class GetOneResult(_Contract):
    data: Record
    meta: dict[str, Any] | None = None


class GetManyParams(_Contract):
    ids: list[Identifier]
    meta: dict[str, Any] | None = None


class GetManyResult(_Contract):
    data: list[Record]
    meta: dict[str, Any] | None = None


class GetManyReferenceParams(_Contract):
    target: str
    id: Identifier
    pagination: PaginationPayload = Field(default_factory=PaginationPayload)
    sort: SortPayload = Field(default_factory=SortPayload)
    filter: dict[str, Any] = Field(default_factory=dict)
    meta: dict[str, Any] | None = None


class GetManyReferenceResult(_Contract):
    data: list[Record]
    total: int | None = None
    page_info: PageInfo | None = None
    meta: dict[str, Any] | None = None


# ── Writes ───────────────────────────────────────────────────────


class CreateParams(_Contract):
    data: Record
    meta: dict[str, Any] | None = None


class CreateResult(_Contract):
    data: Record
    meta: dict[str, Any] | None = None


class UpdateParams(_Contract):
    id: Identifier
    data: Record
    previous_data: Record
    meta: dict[str, Any] | None = None


class UpdateResult(_Contract):
    data: Record
    meta: dict[str, Any] | None = None


class UpdateManyParams(_Contract):
    ids: list[Identifier]
    data: Record
    meta: dict[str, Any] | None = None


class UpdateManyResult(_Contract):
    data: list[Identifier] | None = None
    meta: dict[str, Any] | None = None


class DeleteParams(_Contract):
    id: Identifier
    previous_data: Record | None = None
    meta: dict[str, Any] | None = None


class DeleteResult(_Contract):
    data: Record | None = None
    meta: dict[str, Any] | None = None


class DeleteManyParams(_Contract):
    ids: list[Identifier]
    meta: dict[str, Any] | None = None


class DeleteManyResult(_Contract):
    data: list[Identifier] | None = None
    meta: dict[str, Any] | None = None
