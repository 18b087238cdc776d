"""Mutation request/result shapes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from ..data.types import Record
from ..primitives.identifiers import Identifier

if TYPE_CHECKING:
    from ..undo.entry import EntryHandle


class MutationAction(str, Enum):
    CREATE = "create"
    DELETE = "delete"
    UPDATE = "update"
    DELETE_MANY = "delete_many"
    UPDATE_MANY = "update_many"

    @property
    def is_bulk(self) -> bool:
        return self in (MutationAction.DELETE_MANY, MutationAction.UPDATE_MANY)


class ErrorKind(str, Enum):
    """Tag of a failed :class:`MutationResult`.

    - **INVALID_MUTATION_REQUEST**: precondition failure (caller bug). Nothing
      was written, nothing was sent.
    - **PROVIDER_FAILURE**: the data provider rejected the call. The cache
      was rolled back for optimistic/undoable modes.
    - **QUEUE_CONFLICT**: an undoable mutation collided with a live entry
      under ``ConflictPolicy.REJECT``. Nothing was written.
    """

    INVALID_MUTATION_REQUEST = "invalid_mutation_request"
    PROVIDER_FAILURE = "provider_failure"
    QUEUE_CONFLICT = "queue_conflict"


class MutationParams(BaseModel):
    """What to mutate.

    ``id`` targets single-record actions, ``ids`` bulk ones and ``create``
    takes the new record from ``data``. ``previous_data``
    is the rollback baseline for ``update``; when omitted it is read from the
    cached ``getOne`` entry.
    """

    model_config = ConfigDict(frozen=True)

    resource: str = ""
    id: Identifier | None = None
    ids: list[Identifier] = Field(default_factory=list)
    data: Record | None = None
    previous_data: Record | None = None
    meta: dict[str, Any] | None = None
    success_message: str | None = None


@dataclass(frozen=True)
class MutationResult:
    """Tagged outcome of :meth:`MutationCoordinator.execute`.

    ``pending`` is *True* when the provider call has not settled yet
    (optimistic and undoable modes); ``data`` then holds the speculative
    value. ``handle`` identifies the undo-queue entry of an undoable
    mutation.
    """

    pending: bool
    error: ErrorKind | None = None
    cause: BaseException | None = None
    data: Any = None
    handle: EntryHandle | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class MutationCallbacks:
    """Per-call side effects. Each may be sync or async.

    - ``on_success(data)`` after the provider call succeeded.
    - ``on_error(error)`` after it failed (a ``ProviderFailureError``).
    - ``on_undo()`` after an undoable mutation was cancelled.
    - ``on_settled(data, error)`` after any provider settlement.
    """

    on_success: Callable[[Any], Any] | None = None
    on_error: Callable[[BaseException], Any] | None = None
    on_undo: Callable[[], Any] | None = None
    on_settled: Callable[[Any, BaseException | None], Any] | None = None
