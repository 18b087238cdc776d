"""BulkDeleteController — deletes the selected records of a list."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from ..data.types import MutationMode
from ..mutations.types import MutationAction, MutationParams
from ..primitives.exceptions import InvalidMutationRequestError
from .callbacks import ControllerCallbacks

if TYPE_CHECKING:
    from ..mutations.coordinator import MutationCoordinator
    from ..mutations.types import MutationResult
    from .list import ListController

logger = logging.getLogger("crud_admin.controllers")


class BulkDeleteController:
    """Deletes every selected record of *list_controller* in one mutation.

    The selection is cleared once the delete is accepted. A failed delete
    refreshes the list so that it shows what the provider actually holds.
    Without *success_message* the notification is ``settings.messages.deleted``.
    """

    def __init__(
        self,
        list_controller: ListController,
        coordinator: MutationCoordinator,
        *,
        mutation_mode: MutationMode | str = MutationMode.UNDOABLE,
        success_message: str | None = None,
        meta: dict[str, Any] | None = None,
        on_success: Callable[..., Any] | None = None,
        on_error: Callable[..., Any] | None = None,
        on_undo: Callable[..., Any] | None = None,
    ) -> None:
        if list_controller.selection is None:
            raise ValueError("BulkDeleteController requires a list with a selection store")
        self.list_controller = list_controller
        self.selection = list_controller.selection
        self.coordinator = coordinator
        self.mutation_mode = MutationMode(mutation_mode)
        resource = list_controller.resource
        self.success_message = success_message
        self.meta = meta
        self.callbacks = ControllerCallbacks(
            on_success=on_success, on_error=on_error, on_undo=on_undo
        )
        self.callbacks.update(on_settled=self._on_settled)

    @property
    def resource(self) -> str:
        return self.list_controller.resource

    async def handle_delete(self) -> MutationResult:
        """Delete the selected records.

        Raises:
            InvalidMutationRequestError: If nothing is selected.
        """
        ids = self.selection.selected_ids
        if not ids:
            raise InvalidMutationRequestError({"ids": ["no record is selected"]})
        result = await self.coordinator.execute(
            MutationAction.DELETE_MANY,
            MutationParams(
                resource=self.resource,
                ids=ids,
                meta=self.meta,
                success_message=self.success_message,
            ),
            self.mutation_mode,
            callbacks=self.callbacks.mutation_callbacks,
        )
        if result.ok:
            self.selection.unselect_all()
        else:
            logger.info("Bulk delete of %d %s failed: %s", len(ids), self.resource, result.error)
        return result

    async def _on_settled(self, data: Any, error: BaseException | None) -> None:
        if error is not None:
            await self.list_controller.refresh()
