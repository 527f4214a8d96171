"""
cvapi - Checkvist API client

A synchronous client for the Checkvist task-list API with transparent token
refresh and an optional SQLite cache.
"""

__version__ = "0.1.0"

# Re-export the public surface for convenience
from cvapi.core.auth import get_token
from cvapi.core.cache import CachedClient, CacheStore
from cvapi.core.client import ApiClient, SessionState
from cvapi.core.config import ClientSettings, load_settings
from cvapi.core.exceptions import (
    AuthRefreshFailedError,
    CheckvistError,
    DecodeError,
    ErrorKind,
    ResourceNotFoundError,
    StorageError,
    TransportError,
    UnknownApiError,
)
from cvapi.core.models import Checklist, Task
from cvapi.core.protocol import CheckvistClient, TokenRefreshListener

__all__ = [
    "ApiClient",
    "AuthRefreshFailedError",
    "CacheStore",
    "CachedClient",
    "CheckvistClient",
    "CheckvistError",
    "Checklist",
    "ClientSettings",
    "DecodeError",
    "ErrorKind",
    "ResourceNotFoundError",
    "SessionState",
    "StorageError",
    "Task",
    "TokenRefreshListener",
    "TransportError",
    "UnknownApiError",
    "__version__",
    "get_token",
    "load_settings",
]
