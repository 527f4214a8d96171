"""
Local SQLite cache for Checkvist lists and tasks.

Exports the store and the cache-backed client.
"""

from .client import CachedClient
from .store import LISTS_SCOPE, CacheStore, tasks_scope

__all__ = ["CacheStore", "CachedClient", "LISTS_SCOPE", "tasks_scope"]
