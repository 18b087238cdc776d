"""ShowController — loads one record for display."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..data.queries import QueryService
    from ..data.types import Record
    from ..primitives.identifiers import Identifier

logger = logging.getLogger("crud_admin.controllers")


@dataclass(frozen=True)
class RecordState:
    """What a record view renders."""

    record: Record | None = None
    is_loading: bool = False
    error: BaseException | None = None

    @property
    def is_loaded(self) -> bool:
        return self.record is not None


class ShowController:
    """Reads a single record through the query service.

    Provider errors do not escape :meth:`load`; they end up in
    ``RecordState.error``.
    """

    def __init__(self, resource: str, record_id: Identifier, queries: QueryService) -> None:
        if not resource:
            raise ValueError("ShowController requires a resource")
        self.resource = resource
        self.record_id = record_id
        self.queries = queries
        self.state = RecordState(is_loading=True)

    @property
    def record(self) -> Record | None:
        return self.state.record

    async def load(self, *, force: bool = False) -> RecordState:
        try:
            record = await self.queries.get_one(self.resource, self.record_id, force=force)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not load %s/%s: %s", self.resource, self.record_id, exc)
            self.state = RecordState(record=self.state.record, error=exc)
        else:
            self.state = RecordState(record=record)
        return self.state

    async def refresh(self) -> RecordState:
        return await self.load(force=True)
