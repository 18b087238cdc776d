"""ListController — filter, sort and pagination state of a list view."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..data.types import GetListParams, PageInfo, PaginationPayload, SortPayload
from .selection import RecordSelection

if TYPE_CHECKING:
    from ..data.queries import QueryService
    from ..data.types import Record
    from ..ports.store import IStore

logger = logging.getLogger("crud_admin.controllers")


class ListParams(BaseModel):
    """The user-controlled part of a list query."""

    model_config = ConfigDict(frozen=True)

    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=10, ge=1)
    sort: str = "id"
    order: Literal["ASC", "DESC"] = "ASC"
    filter: dict[str, Any] = Field(default_factory=dict)

    def to_query(self, meta: dict[str, Any] | None = None) -> GetListParams:
        return GetListParams(
            pagination=PaginationPayload(page=self.page, per_page=self.per_page),
            sort=SortPayload(field=self.sort, order=self.order),
            filter=self.filter,
            meta=meta,
        )


@dataclass(frozen=True)
class ListState:
    data: list[Record] = field(default_factory=list)
    total: int | None = None
    page_info: PageInfo | None = None
    has_next_page: bool = False
    has_previous_page: bool = False
    is_loading: bool = False
    error: BaseException | None = None


class ListController:
    """Drives a list view of *resource*.

    Parameters are persisted in the store under ``<resource>.listParams``
    (or *store_key*) so that the view comes back where the user left it.
    Pass ``store_key=False`` to keep them in memory only.
    """

    def __init__(
        self,
        resource: str,
        queries: QueryService,
        store: IStore | None = None,
        *,
        store_key: str | Literal[False] | None = None,
        per_page: int = 10,
        sort: SortPayload | None = None,
        filter_default: dict[str, Any] | None = None,
        meta: dict[str, Any] | None = None,
    ) -> None:
        if not resource:
            raise ValueError("ListController requires a resource")
        self.resource = resource
        self.queries = queries
        self.store = store
        self.meta = meta
        self.store_key: str | None = (
            None if store_key is False else store_key or f"{resource}.listParams"
        )
        sort = sort or SortPayload()
        self._defaults = ListParams(
            per_page=per_page,
            sort=sort.field,
            order=sort.order,
            filter=dict(filter_default or {}),
        )
        self._params = self._load_params()
        self.state = ListState(is_loading=True)
        self.selection: RecordSelection | None = (
            RecordSelection(resource, store) if store is not None else None
        )

    # ── Parameters ───────────────────────────────────────────────

    @property
    def params(self) -> ListParams:
        return self._params

    def set_page(self, page: int) -> None:
        self._set(page=page)

    def set_per_page(self, per_page: int) -> None:
        self._set(page=1, per_page=per_page)

    def set_sort(self, sort_field: str, order: Literal["ASC", "DESC"] | None = None) -> None:
        """Sort by *sort_field*; sorting again by the same field flips the order."""
        if order is None:
            if sort_field == self._params.sort:
                order = "DESC" if self._params.order == "ASC" else "ASC"
            else:
                order = "ASC"
        self._set(page=1, sort=sort_field, order=order)

    def set_filters(self, filters: dict[str, Any]) -> None:
        cleaned = {k: v for k, v in filters.items() if v not in (None, "")}
        self._set(page=1, filter=cleaned)

    def reset(self) -> None:
        self._params = self._defaults
        self._persist()

    def _set(self, **changes: Any) -> None:
        self._params = ListParams.model_validate({**self._params.model_dump(), **changes})
        self._persist()

    def _load_params(self) -> ListParams:
        if self.store is None or self.store_key is None:
            return self._defaults
        stored = self.store.get_item(self.store_key)
        if not stored:
            return self._defaults
        try:
            return ListParams.model_validate({**self._defaults.model_dump(), **stored})
        except ValueError:
            logger.warning("Ignoring invalid stored list params for %s", self.resource)
            return self._defaults

    def _persist(self) -> None:
        if self.store is not None and self.store_key is not None:
            self.store.set_item(self.store_key, self._params.model_dump())

    # ── Loading ──────────────────────────────────────────────────

    async def load(self, *, force: bool = False) -> ListState:
        """Fetch the current page.

        A page past the end of the list (e.g. after deleting the last record
        of the last page) moves the view to the last existing page.
        """
        try:
            result = await self.queries.get_list(
                self.resource, self._params.to_query(self.meta), force=force
            )
            if not result.data and result.total and self._params.page > 1:
                last_page = max(1, -(-result.total // self._params.per_page))
                if last_page < self._params.page:
                    logger.debug(
                        "Page %d of %s is out of range, moving to %d",
                        self._params.page,
                        self.resource,
                        last_page,
                    )
                    self.set_page(last_page)
                    result = await self.queries.get_list(
                        self.resource, self._params.to_query(self.meta), force=force
                    )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not load %s list: %s", self.resource, exc)
            self.state = ListState(
                data=self.state.data, total=self.state.total, error=exc
            )
            return self.state

        self.state = ListState(
            data=list(result.data),
            total=result.total,
            page_info=result.page_info,
            has_next_page=self._has_next_page(result.total, result.page_info),
            has_previous_page=self._has_previous_page(result.page_info),
        )
        return self.state

    async def refresh(self) -> ListState:
        self.queries.refresh(self.resource)
        return await self.load(force=True)

    def _has_next_page(self, total: int | None, page_info: PageInfo | None) -> bool:
        if page_info is not None and page_info.has_next_page is not None:
            return page_info.has_next_page
        if total is None:
            return False
        return self._params.page * self._params.per_page < total

    def _has_previous_page(self, page_info: PageInfo | None) -> bool:
        if page_info is not None and page_info.has_previous_page is not None:
            return page_info.has_previous_page
        return self._params.page > 1
