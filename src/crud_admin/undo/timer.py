"""CancellableTimer — grace-period countdown owned by the undo queue."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("crud_admin.undo")


class CancellableTimer:
    """One-shot timer on the running event loop.

    Independent of any view lifecycle: whoever creates it must ``dispose()``
    it. A disposed timer never fires, even if its loop callback was already
    scheduled.

    Example::

        timer = CancellableTimer(5.0, on_expiry)
        timer.start()
        ...
        timer.dispose()
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if delay < 0:
            raise ValueError(f"Timer delay must be >= 0, got {delay}")
        self.delay = delay
        self._callback: Callable[[], None] | None = callback
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._fired = False
        self._disposed = False

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def disposed(self) -> bool:
        return self._disposed

    def start(self) -> None:
        if self._disposed:
            raise RuntimeError("Cannot start a disposed timer")
        if self._handle is not None or self._fired:
            return
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> bool:
        """Stop the countdown. Returns *False* if it already fired or never ran."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def dispose(self) -> None:
        """Cancel and drop the callback. Idempotent."""
        self.cancel()
        self._disposed = True
        self._callback = None

    def _fire(self) -> None:
        self._handle = None
        callback = self._callback
        if self._disposed or callback is None:
            return
        self._fired = True
        try:
            callback()
        except Exception:
            logger.exception("Undo timer callback failed")
