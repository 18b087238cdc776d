from .data_provider import IDataProvider
from .notification import (
    INotificationChannel,
    Notification,
    NotificationOptions,
    NotificationType,
    notify,
)
from .query_cache import CacheSnapshot, IQueryCache, QueryKey
from .store import IStore
from .undo import ITimer, ITimerFactory, IUndoQueue

__all__ = [
    "CacheSnapshot",
    "IDataProvider",
    "INotificationChannel",
    "IQueryCache",
    "IStore",
    "ITimer",
    "ITimerFactory",
    "IUndoQueue",
    "Notification",
    "NotificationOptions",
    "NotificationType",
    "QueryKey",
    "notify",
]
