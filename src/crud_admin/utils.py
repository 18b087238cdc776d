"""Common utility functions and helpers."""

from __future__ import annotations

from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


class Latest(Generic[T]):
    """Single-slot mutable holder for the most recent value.

    Long-lived callbacks (a settlement that fires seconds after the action
    was issued) read through it, so they always see the newest value rather
    than the one captured when they were created.

    Example::

        on_success = Latest(lambda data: print("v1", data))
        callback = trampoline(on_success)
        on_success.set(lambda data: print("v2", data))
        callback({"id": 1})   # prints "v2 {'id': 1}"
    """

    __slots__ = ("_value",)

    def __init__(self, value: T) -> None:
        self._value = value

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value

    def __repr__(self) -> str:
        return f"Latest({self._value!r})"


def trampoline(box: Latest[Callable[..., Any] | None]) -> Callable[..., Any]:
    """Stable function that calls whatever callable *box* holds at call time.

    Does nothing (and returns *None*) while the box holds *None*.
    """

    def call(*args: Any, **kwargs: Any) -> Any:
        target = box.get()
        if target is None:
            return None
        return target(*args, **kwargs)

    return call
