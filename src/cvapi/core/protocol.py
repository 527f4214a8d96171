"""
Client and collaborator protocols.

CheckvistClient is the operation set shared by the network client and the
cache-backed client, so callers can take either. TokenRefreshListener is the
hook the surrounding application implements to persist refreshed tokens
(keychain, file, ...); the client never stores tokens itself.
"""

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from .models import Checklist, Task


@runtime_checkable
class TokenRefreshListener(Protocol):
    """Receives the new token after every successful refresh."""

    def on_token_refreshed(self, new_token: str) -> None:
        """
        Persist or otherwise handle a refreshed token.

        Called synchronously by the client right after the refresh
        succeeded and before the original request is retried. Exceptions
        raised here are logged by the client and do not stop the retry.

        Args:
            new_token: The token now held by the client
        """
        ...


class _CallbackListener:
    """Adapts a plain callable to TokenRefreshListener."""

    def __init__(self, callback: Callable[[str], None]) -> None:
        self._callback = callback

    def on_token_refreshed(self, new_token: str) -> None:
        self._callback(new_token)


class _NullListener:
    def on_token_refreshed(self, new_token: str) -> None:
        return None


def as_listener(
    listener: "TokenRefreshListener | Callable[[str], None] | None",
) -> TokenRefreshListener:
    """
    Normalise the accepted listener forms to a TokenRefreshListener.

    Args:
        listener: Listener object, callable taking the new token, or None

    Returns:
        A TokenRefreshListener (a no-op one when ``listener`` is None)
    """
    if listener is None:
        return _NullListener()
    if isinstance(listener, TokenRefreshListener):
        return listener
    if callable(listener):
        return _CallbackListener(listener)
    raise TypeError(f"Unsupported token refresh listener: {listener!r}")


@runtime_checkable
class CheckvistClient(Protocol):
    """
    Protocol for Checkvist client implementations.

    Implemented by ApiClient (network only) and CachedClient (reads from
    the local cache, writes through the network).
    """

    def get_lists(self) -> list[Checklist]:
        """Return all checklists visible to the user."""
        ...

    def get_list(self, list_id: int) -> Checklist:
        """Return one checklist."""
        ...

    def add_list(self, name: str) -> Checklist:
        """Create a checklist and return the server copy."""
        ...

    def get_tasks(self, list_id: int) -> list[Task]:
        """Return all tasks of a checklist."""
        ...

    def get_task(self, list_id: int, task_id: int) -> list[Task]:
        """Return a task followed by its ancestor chain."""
        ...

    def add_task(self, list_id: int, task: Task) -> Task:
        """Create a task and return the server copy (with its id)."""
        ...

    def is_location_valid(self, list_id: int, parent_task_id: int | None = None) -> bool:
        """Report whether a list (and optional parent task) is accessible."""
        ...


__all__ = ["CheckvistClient", "TokenRefreshListener", "as_listener"]
