"""crud-admin — controller layer for CRUD admin interfaces.

Mutations run pessimistically, optimistically or behind an undo grace
period, against any data provider implementing ``IDataProvider``.
"""

from __future__ import annotations

# ── Adapters ────────────────────────────────────────────────────
from .adapters.memory import (
    InMemoryDataProvider,
    InMemoryNotificationChannel,
    InMemoryQueryCache,
    MemoryStore,
)
from .config import MessageKeys, MutationSettings

# ── Controllers ──────────────────────────────────────────────────
from .controllers import (
    BulkDeleteController,
    CreateController,
    DeleteController,
    DeleteWithConfirmController,
    DeleteWithUndoController,
    EditController,
    ListController,
    RecordSelection,
    ShowController,
)

# ── Data ─────────────────────────────────────────────────────────
from .data import (
    GetListParams,
    GetListResult,
    LifecycleCallbacksDataProvider,
    MutationMode,
    QueryService,
    Record,
    ResourceCallbacks,
)
from .instrumentation import (
    HookRegistration,
    HookRegistry,
    InstrumentationHook,
    UndoEvent,
    emit_undo_event,
    fire_and_forget_hook,
    get_hook_registry,
    mutation_operation,
    set_hook_registry,
)

# ── Mutations ────────────────────────────────────────────────────
from .mutations import (
    ErrorKind,
    MutationAction,
    MutationCallbacks,
    MutationCoordinator,
    MutationParams,
    MutationResult,
    PendingMutationRegistry,
)

# ── Ports ────────────────────────────────────────────────────────
from .ports import (
    IDataProvider,
    INotificationChannel,
    IQueryCache,
    IStore,
    IUndoQueue,
    Notification,
    NotificationType,
)

# ── Primitives ──────────────────────────────────────────────────
from .primitives import (
    CrudAdminError,
    EntryStateError,
    HttpError,
    Identifier,
    InvalidMutationRequestError,
    ProviderFailureError,
    QueueConflictError,
)

# ── Undo ─────────────────────────────────────────────────────────
from .undo import (
    DEFAULT_GRACE_PERIOD,
    CancellableTimer,
    ConflictPolicy,
    EntryHandle,
    EntryState,
    PendingMutation,
    SettlementTrigger,
    UndoQueue,
)

__all__: list[str] = [
    # Adapters
    "InMemoryDataProvider",
    "InMemoryNotificationChannel",
    "InMemoryQueryCache",
    "MemoryStore",
    # Configuration
    "MessageKeys",
    "MutationSettings",
    # Controllers
    "BulkDeleteController",
    "CreateController",
    "DeleteController",
    "DeleteWithConfirmController",
    "DeleteWithUndoController",
    "EditController",
    "ListController",
    "RecordSelection",
    "ShowController",
    # Data
    "GetListParams",
    "GetListResult",
    "LifecycleCallbacksDataProvider",
    "MutationMode",
    "QueryService",
    "Record",
    "ResourceCallbacks",
    # Instrumentation
    "HookRegistration",
    "HookRegistry",
    "InstrumentationHook",
    "UndoEvent",
    "emit_undo_event",
    "fire_and_forget_hook",
    "get_hook_registry",
    "mutation_operation",
    "set_hook_registry",
    # Mutations
    "ErrorKind",
    "MutationAction",
    "MutationCallbacks",
    "MutationCoordinator",
    "MutationParams",
    "MutationResult",
    "PendingMutationRegistry",
    # Ports
    "IDataProvider",
    "INotificationChannel",
    "IQueryCache",
    "IStore",
    "IUndoQueue",
    "Notification",
    "NotificationType",
    # Primitives
    "CrudAdminError",
    "EntryStateError",
    "HttpError",
    "Identifier",
    "InvalidMutationRequestError",
    "ProviderFailureError",
    "QueueConflictError",
    # Undo
    "DEFAULT_GRACE_PERIOD",
    "CancellableTimer",
    "ConflictPolicy",
    "EntryHandle",
    "EntryState",
    "PendingMutation",
    "SettlementTrigger",
    "UndoQueue",
]
