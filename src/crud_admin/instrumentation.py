"""Instrumentation hooks for mutations and undo-queue transitions.

Two families of operations are reported:

- ``mutation.<action>`` (``mutation.create``, ``mutation.update``,
  ``mutation.delete_many`` ...) wraps every provider call the coordinator
  makes, with ``resource``, ``ids`` and ``mode`` attributes. A hook runs
  around the call, so it can time it, trace it or fail it by raising.
- :class:`UndoEvent` operations report queue transitions after the fact.
  They are fire-and-forget and cannot change what the queue does.

Hooks nest in registration order: the first one registered runs outermost.
"""

from __future__ import annotations

import asyncio
import fnmatch
import functools
import logging
from contextvars import ContextVar
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger("crud_admin.instrumentation")

MUTATION_PREFIX = "mutation."


class UndoEvent(str, Enum):
    ENQUEUED = "undo.enqueued"
    CANCELLED = "undo.cancelled"
    COMMITTED = "undo.committed"


def mutation_operation(action: str) -> str:
    """Operation name reported around a provider call for *action*."""
    return f"{MUTATION_PREFIX}{action}"


@runtime_checkable
class InstrumentationHook(Protocol):
    """Protocol for instrumentation hooks (tracing, metrics, audit)."""

    async def __call__(
        self,
        operation: str,
        attributes: dict[str, Any],
        next_handler: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Wrap an operation; must await *next_handler* exactly once."""
        ...


@dataclass(frozen=True, eq=False)
class HookRegistration:
    """A hook plus the operations and resources it listens to.

    *operations* are glob patterns such as ``"mutation.*"``. Empty filters
    match everything.
    """

    hook: InstrumentationHook
    operations: tuple[str, ...] = ()
    resources: tuple[str, ...] = ()

    def matches(self, operation: str, resource: str | None) -> bool:
        if self.operations and not any(
            fnmatch.fnmatchcase(operation, pattern) for pattern in self.operations
        ):
            return False
        return not self.resources or resource in self.resources


class HookRegistry:
    def __init__(self) -> None:
        self._registrations: list[HookRegistration] = []

    def __len__(self) -> int:
        return len(self._registrations)

    def register(
        self,
        hook: InstrumentationHook,
        *,
        operations: list[str] | None = None,
        resources: list[str] | None = None,
    ) -> HookRegistration:
        registration = HookRegistration(
            hook, operations=tuple(operations or ()), resources=tuple(resources or ())
        )
        self._registrations.append(registration)
        return registration

    def unregister(self, registration: HookRegistration) -> None:
        if registration in self._registrations:
            self._registrations.remove(registration)

    def clear(self) -> None:
        self._registrations.clear()

    async def execute_all(
        self,
        operation: str,
        attributes: dict[str, Any],
        next_handler: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run *next_handler* inside every hook listening to *operation*."""
        resource = attributes.get("resource")
        handler = next_handler
        for registration in reversed(self._registrations):
            if registration.matches(operation, resource):
                handler = functools.partial(registration.hook, operation, attributes, handler)
        return await handler()


_hook_registry_var: ContextVar[HookRegistry | None] = ContextVar(
    "crud_admin_hook_registry", default=None
)


def get_hook_registry() -> HookRegistry:
    """Get the hook registry for the current context.

    A fresh registry is created on first access within each context, which
    keeps tests isolated from each other.
    """
    registry = _hook_registry_var.get()
    if registry is None:
        registry = HookRegistry()
        _hook_registry_var.set(registry)
    return registry


def set_hook_registry(registry: HookRegistry) -> None:
    _hook_registry_var.set(registry)


def _log_hook_failure(operation: str, task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Hook for %s failed: %s", operation, exc, exc_info=exc)


async def _nothing() -> None:
    return None


def fire_and_forget_hook(
    registry: HookRegistry,
    operation: str,
    attributes: dict[str, Any],
) -> None:
    """Report *operation* to the hooks without waiting for them.

    Does nothing when no hook is registered or no event loop is running.
    """
    if not len(registry):
        return
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return
    task = loop.create_task(registry.execute_all(operation, attributes, _nothing))
    task.add_done_callback(functools.partial(_log_hook_failure, operation))


def emit_undo_event(event: UndoEvent, **attributes: Any) -> None:
    """Report an undo-queue transition to the current context's hooks."""
    fire_and_forget_hook(get_hook_registry(), event.value, attributes)
