"""Delete button controllers: plain, undo-only and confirm-dialog variants."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from ..data.types import MutationMode
from ..mutations.types import MutationAction, MutationParams
from ..primitives.exceptions import InvalidMutationRequestError
from .callbacks import ControllerCallbacks

if TYPE_CHECKING:
    from ..data.types import Record
    from ..mutations.coordinator import MutationCoordinator
    from ..mutations.types import MutationResult
    from .selection import RecordSelection

logger = logging.getLogger("crud_admin.controllers")


class DeleteController:
    """Deletes one record and unselects it from the list selection.

    The success notification is *success_message* when given, otherwise the
    coordinator's ``settings.messages.deleted``.
    """

    def __init__(
        self,
        resource: str,
        record: Record | None,
        coordinator: MutationCoordinator,
        *,
        mutation_mode: MutationMode | str = MutationMode.UNDOABLE,
        success_message: str | None = None,
        selection: RecordSelection | None = None,
        meta: dict[str, Any] | None = None,
        on_success: Callable[..., Any] | None = None,
        on_error: Callable[..., Any] | None = None,
        on_undo: Callable[..., Any] | None = None,
    ) -> None:
        self.resource = resource
        self.record = record
        self.coordinator = coordinator
        self.mutation_mode = MutationMode(mutation_mode)
        self.success_message = success_message
        self.selection = selection
        self.meta = meta
        self.callbacks = ControllerCallbacks(
            on_success=on_success, on_error=on_error, on_undo=on_undo
        )

    @property
    def is_pending(self) -> bool:
        if self.record is None or self.record.get("id") is None:
            return False
        return self.coordinator.is_pending(self.resource, self.record["id"])

    async def handle_delete(self) -> MutationResult:
        """Delete the record.

        Raises:
            InvalidMutationRequestError: If the controller has no record.
        """
        if self.record is None:
            raise InvalidMutationRequestError(
                "The record cannot be deleted because no record has been passed"
            )
        record_id = self.record.get("id")
        result = await self.coordinator.execute(
            MutationAction.DELETE,
            MutationParams(
                resource=self.resource,
                id=record_id,
                previous_data=self.record,
                meta=self.meta,
                success_message=self.success_message,
            ),
            self.mutation_mode,
            callbacks=self.callbacks.mutation_callbacks,
        )
        if result.ok and self.selection is not None and record_id is not None:
            self.selection.unselect([record_id])
        return result


class DeleteWithUndoController(DeleteController):
    """Delete button that is always undoable."""

    def __init__(
        self,
        resource: str,
        record: Record | None,
        coordinator: MutationCoordinator,
        **kwargs: Any,
    ) -> None:
        if "mutation_mode" in kwargs:
            raise TypeError("DeleteWithUndoController is always undoable")
        super().__init__(
            resource, record, coordinator, mutation_mode=MutationMode.UNDOABLE, **kwargs
        )


class DeleteWithConfirmController(DeleteController):
    """Delete button guarded by a confirmation dialog.

    Pessimistic by default: the user already confirmed, so there is nothing
    to undo. The dialog closes once the delete was handled, whatever its
    outcome.
    """

    def __init__(
        self,
        resource: str,
        record: Record | None,
        coordinator: MutationCoordinator,
        *,
        mutation_mode: MutationMode | str = MutationMode.PESSIMISTIC,
        **kwargs: Any,
    ) -> None:
        super().__init__(resource, record, coordinator, mutation_mode=mutation_mode, **kwargs)
        self.is_open = False

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    async def confirm(self) -> MutationResult:
        try:
            return await self.handle_delete()
        finally:
            self.is_open = False
