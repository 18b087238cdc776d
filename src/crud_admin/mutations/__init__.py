"""Mutation coordinator: pessimistic, optimistic and undoable mutations."""

from __future__ import annotations

from .cache_updates import (
    CachePlan,
    CreatePlan,
    DeleteManyPlan,
    DeletePlan,
    UpdateManyPlan,
    UpdatePlan,
    patch_records,
    remove_records,
    restore_records,
)
from .coordinator import MutationCoordinator
from .pending import PendingMutationRegistry
from .types import (
    ErrorKind,
    MutationAction,
    MutationCallbacks,
    MutationParams,
    MutationResult,
)

__all__ = [
    "CachePlan",
    "CreatePlan",
    "DeleteManyPlan",
    "DeletePlan",
    "ErrorKind",
    "MutationAction",
    "MutationCallbacks",
    "MutationCoordinator",
    "MutationParams",
    "MutationResult",
    "PendingMutationRegistry",
    "UpdateManyPlan",
    "UpdatePlan",
    "patch_records",
    "remove_records",
    "restore_records",
]
