"""MutationCoordinator — runs create/update/delete actions under a mutation mode.

Modes:

- **pessimistic**: await the provider, then write its answer into the cache
  and notify. A failure notifies and leaves every cached value as it was.
- **optimistic**: write the speculative value, return at once, settle in a
  background task. A failure puts the touched records back as they were.
- **undoable**: enqueue the provider call on the undo queue, write the
  speculative value and notify with an undo affordance. Undo puts the
  touched records back and no provider call is ever made. Expiry runs the
  call once.

Cache writes per record are linearized with versions: a settlement only
reconciles or rolls back while no later mutation touched its records.
Otherwise it just marks the affected queries stale. Every settlement marks
the touched queries stale so that readers refetch.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, cast

from ..config import MutationSettings
from ..data.query_keys import get_one_key
from ..data.types import MutationMode
from ..instrumentation import get_hook_registry, mutation_operation
from ..ports.notification import NotificationType, notify
from ..primitives.exceptions import (
    EntryStateError,
    InvalidMutationRequestError,
    ProviderFailureError,
    QueueConflictError,
)
from ..undo.entry import PendingMutation
from ..undo.queue import UndoQueue
from .cache_updates import (
    CachePlan,
    CreatePlan,
    DeleteManyPlan,
    DeletePlan,
    UpdateManyPlan,
    UpdatePlan,
)
from .pending import PendingMutationRegistry
from .types import (
    ErrorKind,
    MutationAction,
    MutationCallbacks,
    MutationParams,
    MutationResult,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..data.types import Record
    from ..ports.data_provider import IDataProvider
    from ..ports.notification import INotificationChannel
    from ..ports.query_cache import CacheSnapshot, IQueryCache
    from ..ports.undo import IUndoQueue
    from ..primitives.identifiers import Identifier
    from ..undo.entry import MutationOutcome
    from .pending import Versions

logger = logging.getLogger("crud_admin.mutations")

_NO_CALLBACKS = MutationCallbacks()
_NEEDS_DATA = (MutationAction.CREATE, MutationAction.UPDATE, MutationAction.UPDATE_MANY)


@dataclass
class _InFlight:
    """Everything a settlement needs to know about the mutation it settles."""

    plan: CachePlan
    mode: MutationMode
    callbacks: MutationCallbacks
    success_message: str
    snapshot: CacheSnapshot | None = None
    versions: Versions | None = None


class MutationCoordinator:
    """
    Executes mutations against the data provider and reconciles the cache.

    Collaborators are passed explicitly. When *undo_queue* is omitted, one
    is built from ``settings.conflict_policy``.

    Usage::

        coordinator = MutationCoordinator(provider, cache, notifications)
        result = await coordinator.execute(
            "delete", MutationParams(resource="posts", id=1), "undoable"
        )
        # result.pending is True; the delete runs after the grace period
        # unless the UI cancels result.handle on the undo queue.

    ``execute`` never raises on provider failures: it returns a
    :class:`MutationResult` tagged with an :class:`ErrorKind` and pushes an
    error notification.
    """

    def __init__(
        self,
        data_provider: IDataProvider,
        cache: IQueryCache,
        notifications: INotificationChannel,
        undo_queue: IUndoQueue | None = None,
        *,
        settings: MutationSettings | None = None,
        pending: PendingMutationRegistry | None = None,
    ) -> None:
        self.settings = settings if settings is not None else MutationSettings()
        self.data_provider = data_provider
        self.cache = cache
        self.notifications = notifications
        self.undo_queue: IUndoQueue = (
            undo_queue
            if undo_queue is not None
            else UndoQueue(
                grace_period=self.settings.undo_grace_period,
                conflict_policy=self.settings.conflict_policy,
            )
        )
        self.pending = pending if pending is not None else PendingMutationRegistry()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    # ── Public API ───────────────────────────────────────────────

    async def execute(
        self,
        action: MutationAction | str,
        params: MutationParams,
        mode: MutationMode | str | None = None,
        *,
        callbacks: MutationCallbacks | None = None,
        grace_period: float | None = None,
    ) -> MutationResult:
        """Run *action* under *mode* (the settings' default mode when omitted).

        Raises:
            EntryStateError: If the coordinator was closed.
        """
        if self._closed:
            raise EntryStateError("Mutation coordinator is closed")
        action = MutationAction(action)
        mutation_mode = MutationMode(mode or self.settings.default_mode)

        try:
            plan = self._plan(action, params, mutation_mode)
        except InvalidMutationRequestError as exc:
            logger.warning(
                "Rejected %s on %r: %s", action.value, params.resource, exc.errors
            )
            return MutationResult(
                pending=False, error=ErrorKind.INVALID_MUTATION_REQUEST, cause=exc
            )

        flight = _InFlight(
            plan=plan,
            mode=mutation_mode,
            callbacks=callbacks or _NO_CALLBACKS,
            success_message=params.success_message or self._default_message(action),
        )
        logger.debug("Executing %r in %s mode", plan, mutation_mode.value)

        if mutation_mode is MutationMode.PESSIMISTIC:
            return await self._execute_pessimistic(flight)
        if mutation_mode is MutationMode.OPTIMISTIC:
            return self._execute_optimistic(flight)
        return await self._execute_undoable(flight, grace_period)

    async def create(
        self,
        resource: str,
        data: Record,
        *,
        mode: MutationMode | str = MutationMode.PESSIMISTIC,
        **kwargs: Any,
    ) -> MutationResult:
        """Create a record, pessimistically unless *mode* says otherwise.

        Optimistic and undoable creates need ``data["id"]``: the new record
        is cached under it before the provider answers.
        """
        params = MutationParams(resource=resource, data=data)
        return await self.execute(MutationAction.CREATE, params, mode, **kwargs)

    async def delete(
        self,
        resource: str,
        record_id: Identifier,
        *,
        previous_data: Record | None = None,
        mode: MutationMode | str | None = None,
        **kwargs: Any,
    ) -> MutationResult:
        params = MutationParams(resource=resource, id=record_id, previous_data=previous_data)
        return await self.execute(MutationAction.DELETE, params, mode, **kwargs)

    async def update(
        self,
        resource: str,
        record_id: Identifier,
        data: Record,
        *,
        previous_data: Record | None = None,
        mode: MutationMode | str | None = None,
        **kwargs: Any,
    ) -> MutationResult:
        params = MutationParams(
            resource=resource, id=record_id, data=data, previous_data=previous_data
        )
        return await self.execute(MutationAction.UPDATE, params, mode, **kwargs)

    async def delete_many(
        self,
        resource: str,
        ids: list[Identifier],
        *,
        mode: MutationMode | str | None = None,
        **kwargs: Any,
    ) -> MutationResult:
        params = MutationParams(resource=resource, ids=ids)
        return await self.execute(MutationAction.DELETE_MANY, params, mode, **kwargs)

    async def update_many(
        self,
        resource: str,
        ids: list[Identifier],
        data: Record,
        *,
        mode: MutationMode | str | None = None,
        **kwargs: Any,
    ) -> MutationResult:
        params = MutationParams(resource=resource, ids=ids, data=data)
        return await self.execute(MutationAction.UPDATE_MANY, params, mode, **kwargs)

    def is_pending(self, resource: str, record_id: Identifier) -> bool:
        """Whether a mutation on this record has not settled (or been undone) yet."""
        return self.pending.is_pending(resource, record_id)

    def subscribe_pending(
        self, resource: str, record_id: Identifier, callback: Callable[[bool], None]
    ) -> Callable[[], None]:
        return self.pending.subscribe(resource, record_id, callback)

    async def drain(self) -> None:
        """Wait for every background settlement and callback."""
        await self.undo_queue.drain()
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Commit every pending undoable mutation, then drain."""
        self._closed = True
        await self.undo_queue.aclose()
        await self.drain()

    # ── Planning ─────────────────────────────────────────────────

    def _plan(
        self, action: MutationAction, params: MutationParams, mode: MutationMode
    ) -> CachePlan:
        errors = _validate(action, params)
        if errors:
            raise InvalidMutationRequestError(errors)

        resource, meta = params.resource, params.meta
        if action is MutationAction.CREATE:
            data = params.data or {}
            if mode is not MutationMode.PESSIMISTIC and data.get("id") is None:
                # The speculative getOne entry is keyed by the new id.
                raise InvalidMutationRequestError(
                    {"data": [f"needs an id to be created in {mode.value} mode"]}
                )
            return CreatePlan(resource, data, meta=meta)
        if action is MutationAction.DELETE_MANY:
            return DeleteManyPlan(resource, params.ids, meta=meta)
        if action is MutationAction.UPDATE_MANY:
            return UpdateManyPlan(resource, params.ids, params.data or {}, meta=meta)

        record_id = cast("Identifier", params.id)
        previous_data = params.previous_data or self.cache.get_query_data(
            get_one_key(resource, record_id)
        )
        if action is MutationAction.DELETE:
            return DeletePlan(resource, record_id, previous_data=previous_data, meta=meta)
        if previous_data is None:
            raise InvalidMutationRequestError(
                {"previous_data": ["no previous version to roll back to"]}
            )
        return UpdatePlan(
            resource, record_id, params.data or {}, previous_data=previous_data, meta=meta
        )

    def _default_message(self, action: MutationAction) -> str:
        messages = self.settings.messages
        if action is MutationAction.CREATE:
            return messages.created
        if action in (MutationAction.DELETE, MutationAction.DELETE_MANY):
            return messages.deleted
        return messages.updated

    # ── Modes ────────────────────────────────────────────────────

    async def _execute_pessimistic(self, flight: _InFlight) -> MutationResult:
        plan = flight.plan
        flight.versions = self.pending.begin(plan.record_keys)
        try:
            data = await self._call_provider(flight)
        except Exception as exc:  # noqa: BLE001
            failure = ProviderFailureError(plan.action.value, plan.resource, exc)
            self._on_failure(flight, failure)
            self._finish(flight, None, failure)
            return MutationResult(
                pending=False, error=ErrorKind.PROVIDER_FAILURE, cause=failure
            )

        if self.pending.is_latest(flight.versions):
            plan.apply_result(self.cache, data)
        self._notify_success(flight)
        self._invoke(flight.callbacks.on_success, data)
        self._finish(flight, data, None)
        return MutationResult(pending=False, data=data)

    def _execute_optimistic(self, flight: _InFlight) -> MutationResult:
        plan = flight.plan
        flight.snapshot = self.cache.snapshot(plan.query_keys)
        flight.versions = self.pending.begin(plan.record_keys)
        speculative = plan.apply_speculative(self.cache)

        pending = self._pending_mutation(flight)
        self._track(asyncio.get_running_loop().create_task(pending.run_now()))
        return MutationResult(pending=True, data=speculative)

    async def _execute_undoable(
        self, flight: _InFlight, grace_period: float | None
    ) -> MutationResult:
        plan = flight.plan
        pending = self._pending_mutation(flight)
        delay = self.settings.undo_grace_period if grace_period is None else grace_period
        try:
            handle = await self.undo_queue.enqueue(pending, delay)
        except QueueConflictError as exc:
            logger.warning("Undoable %r ignored: %s", plan, exc)
            notify(
                self.notifications,
                self.settings.messages.conflict,
                type=NotificationType.WARNING,
                message_args={"smart_count": plan.count},
            )
            return MutationResult(pending=False, error=ErrorKind.QUEUE_CONFLICT, cause=exc)

        # No await between enqueue and here: the entry cannot settle before
        # the snapshot and speculative write are in place.
        flight.snapshot = self.cache.snapshot(plan.query_keys)
        flight.versions = self.pending.begin(plan.record_keys)
        speculative = plan.apply_speculative(self.cache)
        notify(
            self.notifications,
            flight.success_message,
            type=NotificationType.INFO,
            message_args={"smart_count": plan.count},
            undoable=True,
            undo_handle=handle,
        )
        return MutationResult(pending=True, data=speculative, handle=handle)

    # ── Settlement ───────────────────────────────────────────────

    def _pending_mutation(self, flight: _InFlight) -> PendingMutation:
        plan = flight.plan
        return PendingMutation(
            plan.resource,
            lambda: self._call_provider(flight),
            record_id=plan.ids[0] if plan.ids and not plan.action.is_bulk else None,
            record_ids=plan.ids if plan.action.is_bulk else None,
            record=plan.previous_data,
            stream=plan.stream,
            on_cancel=lambda: self._on_undo(flight),
            on_settled=lambda outcome: self._on_settled(flight, outcome),
        )

    async def _call_provider(self, flight: _InFlight) -> Any:
        plan = flight.plan
        return await get_hook_registry().execute_all(
            mutation_operation(plan.action.value),
            {
                "resource": plan.resource,
                "ids": [str(i) for i in plan.ids],
                "mode": flight.mode.value,
            },
            lambda: plan.call(self.data_provider),
        )

    def _on_undo(self, flight: _InFlight) -> None:
        plan = flight.plan
        if flight.snapshot is None or flight.versions is None:
            # Cancelled before the speculative write happened.
            return
        if self.pending.is_latest(flight.versions):
            plan.rollback(self.cache, flight.snapshot)
        else:
            self._invalidate(plan)
        self.pending.end(plan.record_keys)
        logger.info("Undid %r", plan)
        self._invoke(flight.callbacks.on_undo)

    def _on_settled(self, flight: _InFlight, outcome: MutationOutcome) -> None:
        plan = flight.plan
        if outcome.error is None:
            if flight.versions is not None and self.pending.is_latest(flight.versions):
                plan.apply_result(self.cache, outcome.result)
            if flight.mode is MutationMode.OPTIMISTIC or self.settings.notify_on_settle:
                self._notify_success(flight)
            self._invoke(flight.callbacks.on_success, outcome.result)
            self._finish(flight, outcome.result, None)
            return

        failure = ProviderFailureError(plan.action.value, plan.resource, outcome.error)
        if (
            flight.snapshot is not None
            and flight.versions is not None
            and self.pending.is_latest(flight.versions)
        ):
            plan.rollback(self.cache, flight.snapshot)
        self._on_failure(flight, failure)
        self._finish(flight, None, failure)

    def _on_failure(self, flight: _InFlight, failure: ProviderFailureError) -> None:
        logger.warning("%r failed in %s mode: %s", flight.plan, flight.mode.value, failure.message)
        notify(self.notifications, failure.message, type=NotificationType.ERROR)
        self._invoke(flight.callbacks.on_error, failure)

    def _finish(self, flight: _InFlight, data: Any, error: BaseException | None) -> None:
        self._invalidate(flight.plan)
        if flight.versions is not None:
            self.pending.end(flight.plan.record_keys)
        self._invoke(flight.callbacks.on_settled, data, error)

    def _notify_success(self, flight: _InFlight) -> None:
        notify(
            self.notifications,
            flight.success_message,
            type=NotificationType.INFO,
            message_args={"smart_count": flight.plan.count},
        )

    def _invalidate(self, plan: CachePlan) -> None:
        for key in plan.query_keys:
            self.cache.invalidate_queries(key)

    # ── Callbacks and tasks ──────────────────────────────────────

    def _invoke(self, callback: Callable[..., Any] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
        except Exception:
            logger.exception("Mutation callback %r failed", callback)
            return
        if inspect.isawaitable(result):
            self._track(asyncio.ensure_future(result))

    def _track(self, task: asyncio.Future[Any]) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Future[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background mutation task failed", exc_info=exc)


def _validate(action: MutationAction, params: MutationParams) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    if not params.resource:
        errors["resource"] = ["must not be empty"]
    if action.is_bulk:
        if not params.ids or any(i == "" for i in params.ids):
            errors["ids"] = ["must be a non-empty list of identifiers"]
    elif action is not MutationAction.CREATE and (params.id is None or params.id == ""):
        errors["id"] = ["must not be empty"]
    if action in _NEEDS_DATA and params.data is None:
        errors["data"] = ["must be provided"]
    return errors
