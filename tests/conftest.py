from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from crud_admin.adapters.memory import (
    InMemoryDataProvider,
    InMemoryNotificationChannel,
    InMemoryQueryCache,
    MemoryStore,
)
from crud_admin.config import MutationSettings
from crud_admin.data.queries import QueryService
from crud_admin.instrumentation import HookRegistry, set_hook_registry
from crud_admin.mutations.coordinator import MutationCoordinator
from crud_admin.undo.queue import ConflictPolicy, UndoQueue

# ═══════════════════════════════════════════════════════════════════════
# Manual timers
# ═══════════════════════════════════════════════════════════════════════


class ManualTimer:
    """Timer that only fires when a test tells it to."""

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback: Callable[[], None] | None = callback
        self.started = False
        self.cancelled = False
        self.disposed = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> bool:
        if not self.started or self.cancelled:
            return False
        self.cancelled = True
        return True

    def dispose(self) -> None:
        self.cancel()
        self.disposed = True
        self.callback = None

    def fire(self) -> None:
        if self.callback is not None and not self.cancelled:
            self.callback()


class ManualTimerFactory:
    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def delays(self) -> list[float]:
        return [timer.delay for timer in self.timers]

    @property
    def last(self) -> ManualTimer:
        return self.timers[-1]

    def fire_all(self) -> None:
        for timer in list(self.timers):
            timer.fire()


# ═══════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════


POSTS: list[dict[str, Any]] = [
    {"id": 1, "title": "Hello", "views": 10},
    {"id": 2, "title": "World", "views": 20},
    {"id": 3, "title": "Again", "views": 30},
]


@pytest.fixture(autouse=True)
def hook_registry() -> HookRegistry:
    registry = HookRegistry()
    set_hook_registry(registry)
    return registry


@pytest.fixture
def timers() -> ManualTimerFactory:
    return ManualTimerFactory()


@pytest.fixture
def provider() -> InMemoryDataProvider:
    return InMemoryDataProvider(
        {
            "posts": [dict(p) for p in POSTS],
            "comments": [
                {"id": 1, "post_id": 1, "body": "Nice"},
                {"id": 2, "post_id": 1, "body": "Great"},
                {"id": 3, "post_id": 2, "body": "Meh"},
            ],
        }
    )


@pytest.fixture
def cache() -> InMemoryQueryCache:
    return InMemoryQueryCache()


@pytest.fixture
def notifications() -> InMemoryNotificationChannel:
    return InMemoryNotificationChannel()


@pytest.fixture
def store() -> MemoryStore:
    store = MemoryStore()
    store.setup()
    return store


@pytest.fixture
def undo_queue(timers: ManualTimerFactory) -> UndoQueue:
    return UndoQueue(grace_period=5.0, timer_factory=timers)


@pytest.fixture
def coordinator(
    provider: InMemoryDataProvider,
    cache: InMemoryQueryCache,
    notifications: InMemoryNotificationChannel,
    undo_queue: UndoQueue,
) -> MutationCoordinator:
    return MutationCoordinator(provider, cache, notifications, undo_queue)


@pytest.fixture
def queries(
    provider: InMemoryDataProvider,
    cache: InMemoryQueryCache,
    coordinator: MutationCoordinator,
) -> QueryService:
    return QueryService(provider, cache, pending=coordinator.pending)


@pytest.fixture
def coordinator_factory(
    provider: InMemoryDataProvider,
    cache: InMemoryQueryCache,
    notifications: InMemoryNotificationChannel,
    timers: ManualTimerFactory,
) -> Callable[..., MutationCoordinator]:
    """Build a coordinator with its own queue and custom settings."""

    def build(
        *,
        conflict_policy: ConflictPolicy = ConflictPolicy.FORCE_SETTLE,
        **settings: Any,
    ) -> MutationCoordinator:
        queue = UndoQueue(
            grace_period=5.0, conflict_policy=conflict_policy, timer_factory=timers
        )
        return MutationCoordinator(
            provider,
            cache,
            notifications,
            queue,
            settings=MutationSettings(conflict_policy=conflict_policy, **settings),
        )

    return build
