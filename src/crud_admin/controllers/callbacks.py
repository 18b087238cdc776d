"""Replaceable mutation callbacks for long-lived controllers."""

from __future__ import annotations

from typing import Any, Callable

from ..mutations.types import MutationCallbacks
from ..utils import Latest, trampoline

CALLBACK_NAMES = ("on_success", "on_error", "on_undo", "on_settled")


class ControllerCallbacks:
    """Holds a controller's callbacks in single-slot boxes.

    ``mutation_callbacks`` is built once from trampolines; a mutation that
    settles after :meth:`update` therefore calls the new callbacks, not the
    ones current when it was issued.

    Example::

        callbacks = ControllerCallbacks(on_success=show_toast)
        await coordinator.execute(..., callbacks=callbacks.mutation_callbacks)
        callbacks.update(on_success=redirect_to_list)  # used at settlement
    """

    def __init__(self, **callbacks: Callable[..., Any] | None) -> None:
        self._slots: dict[str, Latest[Callable[..., Any] | None]] = {
            name: Latest(None) for name in CALLBACK_NAMES
        }
        self.update(**callbacks)
        self.mutation_callbacks = MutationCallbacks(
            **{name: trampoline(slot) for name, slot in self._slots.items()}
        )

    def update(self, **callbacks: Callable[..., Any] | None) -> None:
        for name, callback in callbacks.items():
            if name not in self._slots:
                raise TypeError(f"Unknown controller callback {name!r}")
            self._slots[name].set(callback)

    def get(self, name: str) -> Callable[..., Any] | None:
        return self._slots[name].get()
