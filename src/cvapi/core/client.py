"""
HTTP client for the Checkvist API.

ApiClient performs list and task operations against the remote JSON API
and handles token expiry transparently. The API offers no way to check a
token up front, so requests are sent optimistically:

1. Send the request with ``X-Client-Token: <current token>``.
2. On HTTP 401, refresh the token once and resend the request with the
   new token. Whatever the second attempt returns is the result; there is
   no further retry.
3. If the refresh fails, raise AuthRefreshFailedError. The session is then
   dead and every later call fails fast until the caller logs in again and
   builds a new client.

Session states:
    AUTHENTICATED -> (401) -> REFRESHING -> AUTHENTICATED | DEAD

Refreshes are serialised with a lock. A request that saw a 401 with a token
which another request has already replaced skips its own refresh and
resends with the current token.

Example:
    >>> from cvapi.core.client import ApiClient
    >>> from cvapi.core.models import Task
    >>> def save_token(token: str) -> None:
    ...     keychain.store(token)
    >>> with ApiClient("https://checkvist.com", token, save_token) as client:
    ...     lists = client.get_lists()
    ...     client.add_task(lists[0].id, Task(content="buy milk", position=1))
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import TypeAdapter

from . import auth
from .exceptions import AuthRefreshFailedError, CheckvistError, ResourceNotFoundError
from .http import DEFAULT_TIMEOUT, build_http_client, decode_response, send
from .models import Checklist, Task, TokenResponse
from .protocol import TokenRefreshListener, as_listener

if TYPE_CHECKING:
    from .config.models import ClientSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOKEN_HEADER = "X-Client-Token"
REFRESH_PATH = "/auth/refresh_token.json"

_checklist = TypeAdapter(Checklist)
_checklists = TypeAdapter(list[Checklist])
_task = TypeAdapter(Task)
_tasks = TypeAdapter(list[Task])
_token = TypeAdapter(TokenResponse)


class SessionState(str, Enum):
    """Validity of the client's token."""

    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"
    DEAD = "dead"


def _redact(token: str) -> str:
    return f"{token[:4]}..." if len(token) > 8 else "***"


class ApiClient:
    """
    Synchronous Checkvist API client.

    Not safe for unsynchronised concurrent use beyond token refresh, which
    is serialised internally.

    Attributes:
        base_url: Service base URL
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        on_token_refreshed: TokenRefreshListener | Callable[[str], None] | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Service base URL, e.g. ``https://checkvist.com``
            token: Bearer token from a previous login or refresh
            on_token_refreshed: Listener (or callable) told about new tokens
            timeout: Connect/read timeout in seconds
            transport: Optional httpx transport (tests)

        Raises:
            ValueError: If base_url is not a valid http(s) URL
        """
        self._http = build_http_client(base_url, timeout=timeout, transport=transport)
        self.base_url = str(self._http.base_url)
        self._token = token
        self._listener = as_listener(on_token_refreshed)
        self._lock = threading.RLock()
        self._state = SessionState.AUTHENTICATED
        logger.debug("ApiClient for %s (token %s)", self.base_url, _redact(token))

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        token: str,
        on_token_refreshed: TokenRefreshListener | Callable[[str], None] | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> ApiClient:
        """Create a client from loaded settings."""
        return cls(
            settings.service_url,
            token,
            on_token_refreshed,
            timeout=settings.timeout,
            transport=transport,
        )

    @staticmethod
    def get_token(
        base_url: str,
        username: str,
        remote_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> str:
        """Log in with username and remote key; see cvapi.core.auth.get_token."""
        return auth.get_token(
            base_url, username, remote_key, timeout=timeout, transport=transport
        )

    @property
    def token(self) -> str:
        """The token currently attached to requests."""
        return self._token

    @property
    def session_state(self) -> SessionState:
        """Current session state."""
        return self._state

    def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        self._http.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ---- operations ----

    def get_lists(self) -> list[Checklist]:
        """
        Fetch all checklists.

        Returns:
            Checklists visible to the user
        """
        return self._call("GET", "/checklists.json", _checklists)

    def get_list(self, list_id: int) -> Checklist:
        """
        Fetch one checklist.

        Raises:
            ResourceNotFoundError: If the list does not exist or is not visible
        """
        return self._call("GET", f"/checklists/{list_id}.json", _checklist)

    def add_list(self, name: str) -> Checklist:
        """Create a checklist and return the server copy."""
        return self._call("POST", "/checklists.json", _checklist, json={"name": name})

    def get_tasks(self, list_id: int) -> list[Task]:
        """Fetch all tasks of a checklist."""
        return self._call("GET", f"/checklists/{list_id}/tasks.json", _tasks)

    def get_task(self, list_id: int, task_id: int) -> list[Task]:
        """
        Fetch a task together with its ancestors.

        Returns:
            The task followed by its parent chain, as returned by the server
        """
        return self._call("GET", f"/checklists/{list_id}/tasks/{task_id}.json", _tasks)

    def add_task(self, list_id: int, task: Task) -> Task:
        """
        Create a task.

        Args:
            list_id: Checklist to add to
            task: Task to create; ``id`` is normally None

        Returns:
            Server copy of the task, carrying its assigned id

        Raises:
            ResourceNotFoundError: Unknown list, or invalid parent_id
        """
        return self._call(
            "POST", f"/checklists/{list_id}/tasks.json", _task, json=task.to_wire()
        )

    def is_location_valid(self, list_id: int, parent_task_id: int | None = None) -> bool:
        """
        Check that a list, and optionally a parent task in it, is accessible.

        Only ResourceNotFoundError is turned into False; every other error
        propagates.
        """
        try:
            if parent_task_id is None:
                self.get_list(list_id)
            else:
                self.get_task(list_id, parent_task_id)
        except ResourceNotFoundError as e:
            logger.debug("Location %s/%s not valid: %s", list_id, parent_task_id, e)
            return False
        return True

    def refresh_token(self) -> None:
        """
        Exchange the current token for a new one.

        On success the new token replaces the old one and the listener is
        notified; an exception from the listener is logged and does not undo
        the refresh. On any refresh failure the old token is kept, the
        session becomes DEAD, and AuthRefreshFailedError is raised.

        Raises:
            AuthRefreshFailedError: If the refresh failed or the session is dead
        """
        with self._lock:
            if self._state is SessionState.DEAD:
                raise AuthRefreshFailedError("Session is no longer valid; log in again")

            self._state = SessionState.REFRESHING
            try:
                response = send(
                    self._http,
                    "POST",
                    REFRESH_PATH,
                    params=auth.API_VERSION_PARAMS,
                    json={"old_token": self._token},
                )
                new_token = decode_response(response, _token).token
            except CheckvistError as e:
                self._state = SessionState.DEAD
                logger.warning("Token refresh failed: %s", e)
                raise AuthRefreshFailedError(f"Could not refresh token: {e}") from e

            self._token = new_token
            self._state = SessionState.AUTHENTICATED
            logger.info("Checkvist token refreshed")
            try:
                self._listener.on_token_refreshed(new_token)
            except Exception as e:
                # The new token is already in use; the caller just could not store it
                logger.warning("Token refresh listener failed: %s", e, exc_info=True)

    # ---- request pipeline ----

    def _current_token(self) -> str:
        with self._lock:
            if self._state is SessionState.DEAD:
                raise AuthRefreshFailedError("Session is no longer valid; log in again")
            return self._token

    def _refresh_stale(self, stale_token: str) -> None:
        with self._lock:
            if self._state is not SessionState.DEAD and self._token != stale_token:
                logger.debug("Token already refreshed by another request")
                return
            self.refresh_token()

    def _send_authenticated(
        self, method: str, path: str, *, json: Any = None
    ) -> httpx.Response:
        token = self._current_token()
        response = send(self._http, method, path, headers={TOKEN_HEADER: token}, json=json)
        if response.status_code != httpx.codes.UNAUTHORIZED:
            return response

        logger.info("%s %s was rejected with 401; refreshing token", method, path)
        self._refresh_stale(token)
        return send(
            self._http, method, path, headers={TOKEN_HEADER: self._token}, json=json
        )

    def _call(self, method: str, path: str, adapter: TypeAdapter[T], *, json: Any = None) -> T:
        response = self._send_authenticated(method, path, json=json)
        return decode_response(response, adapter)


__all__ = ["ApiClient", "SessionState", "TOKEN_HEADER"]
