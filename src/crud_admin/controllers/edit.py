"""EditController — loads a record and saves changes through the coordinator."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from ..data.types import MutationMode
from ..mutations.types import MutationAction, MutationParams
from .callbacks import ControllerCallbacks
from .show import RecordState, ShowController

if TYPE_CHECKING:
    from ..data.queries import QueryService
    from ..data.types import Record
    from ..mutations.coordinator import MutationCoordinator
    from ..mutations.types import MutationResult
    from ..primitives.identifiers import Identifier

logger = logging.getLogger("crud_admin.controllers")


class EditController(ShowController):
    """
    Edit view state: the record plus a ``save`` action.

    Saves are undoable by default: the view shows the new values at once and
    the update reaches the provider when the undo grace period ends. Without
    *success_message* the notification is ``settings.messages.updated``.
    """

    def __init__(
        self,
        resource: str,
        record_id: Identifier,
        queries: QueryService,
        coordinator: MutationCoordinator,
        *,
        mutation_mode: MutationMode | str = MutationMode.UNDOABLE,
        success_message: str | None = None,
        meta: dict[str, Any] | None = None,
        on_success: Callable[..., Any] | None = None,
        on_error: Callable[..., Any] | None = None,
    ) -> None:
        super().__init__(resource, record_id, queries)
        self.coordinator = coordinator
        self.mutation_mode = MutationMode(mutation_mode)
        self.success_message = success_message
        self.meta = meta
        self.callbacks = ControllerCallbacks(on_success=on_success, on_error=on_error)

    @property
    def is_saving(self) -> bool:
        return self.coordinator.is_pending(self.resource, self.record_id)

    async def save(
        self, data: Record, *, mutation_mode: MutationMode | str | None = None
    ) -> MutationResult:
        """Update the record with *data*; the loaded record is the rollback baseline."""
        params = MutationParams(
            resource=self.resource,
            id=self.record_id,
            data=data,
            previous_data=self.state.record,
            meta=self.meta,
            success_message=self.success_message,
        )
        result = await self.coordinator.execute(
            MutationAction.UPDATE,
            params,
            mutation_mode or self.mutation_mode,
            callbacks=self.callbacks.mutation_callbacks,
        )
        if result.ok and isinstance(result.data, dict):
            self.state = RecordState(record=result.data)
        elif not result.ok:
            logger.info("Saving %s/%s failed: %s", self.resource, self.record_id, result.error)
        return result
