"""CreateController — default values plus a save action for a create view."""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, Callable

from ..data.types import MutationMode
from ..mutations.types import MutationAction, MutationParams
from ..primitives.exceptions import HttpError, ProviderFailureError
from .callbacks import ControllerCallbacks

if TYPE_CHECKING:
    from ..data.types import Record
    from ..mutations.coordinator import MutationCoordinator
    from ..mutations.types import MutationResult

logger = logging.getLogger("crud_admin.controllers")

Transform = Callable[[dict[str, Any]], Any]


def validation_errors(result: MutationResult) -> dict[str, Any]:
    """Field errors a provider returned in an ``HttpError`` body, if any."""
    cause = result.cause
    if isinstance(cause, ProviderFailureError):
        cause = cause.cause
    if isinstance(cause, HttpError) and isinstance(cause.body, dict):
        errors = cause.body.get("errors")
        if isinstance(errors, dict):
            return errors
    return {}


class CreateController:
    """
    Create view state.

    Saves are pessimistic by default: the new record gets its ``id`` from the
    provider. Optimistic and undoable saves need the ``id`` in the submitted
    data. *transform* (sync or async) rewrites the submitted data right
    before it is sent.

    The success notification is *success_message* when given, otherwise the
    coordinator's ``settings.messages.created``.
    """

    def __init__(
        self,
        resource: str,
        coordinator: MutationCoordinator,
        *,
        record: Record | None = None,
        transform: Transform | None = None,
        mutation_mode: MutationMode | str = MutationMode.PESSIMISTIC,
        success_message: str | None = None,
        meta: dict[str, Any] | None = None,
        on_success: Callable[..., Any] | None = None,
        on_error: Callable[..., Any] | None = None,
    ) -> None:
        self.resource = resource
        self.coordinator = coordinator
        self.record: Record = dict(record or {})
        self.transform = transform
        self.mutation_mode = MutationMode(mutation_mode)
        self.success_message = success_message
        self.meta = meta
        self.callbacks = ControllerCallbacks(on_success=on_success, on_error=on_error)
        self.errors: dict[str, Any] = {}
        self._saving = False

    @property
    def is_saving(self) -> bool:
        return self._saving

    async def save(
        self,
        data: Record,
        *,
        mutation_mode: MutationMode | str | None = None,
        transform: Transform | None = None,
        meta: dict[str, Any] | None = None,
    ) -> MutationResult:
        """Create a record from *data*.

        On a provider failure, field errors found in the ``HttpError`` body
        end up in :attr:`errors` so the form can display them.
        """
        self._saving = True
        try:
            payload = dict(data)
            transform = transform or self.transform
            if transform is not None:
                payload = transform(payload)
                if inspect.isawaitable(payload):
                    payload = await payload
            result = await self.coordinator.execute(
                MutationAction.CREATE,
                MutationParams(
                    resource=self.resource,
                    data=payload,
                    meta=meta if meta is not None else self.meta,
                    success_message=self.success_message,
                ),
                mutation_mode or self.mutation_mode,
                callbacks=self.callbacks.mutation_callbacks,
            )
        finally:
            self._saving = False

        self.errors = validation_errors(result)
        if result.ok and isinstance(result.data, dict):
            self.record = result.data
        elif not result.ok:
            logger.info("Creating %s failed: %s", self.resource, result.error)
        return result
