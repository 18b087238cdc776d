from .data_provider import InMemoryDataProvider
from .notifications import InMemoryNotificationChannel
from .query_cache import CacheEntry, InMemoryQueryCache
from .store import MemoryStore

__all__ = [
    "CacheEntry",
    "InMemoryDataProvider",
    "InMemoryNotificationChannel",
    "InMemoryQueryCache",
    "MemoryStore",
]
