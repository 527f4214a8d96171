"""
Pytest configuration and shared fixtures.

Provides a recording mock Checkvist server (on httpx.MockTransport), sample
entity payloads, and client/store factories used across the test suite.
"""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from cvapi.core.cache.store import CacheStore
from cvapi.core.client import ApiClient
from cvapi.core.config import clear_cache

BASE_URL = "http://mock"

# ==============================================================================
# Mock Server
# ==============================================================================


class MockServer:
    """
    Answers requests from per-route queues and records every request.

    Each route holds a queue of canned replies; the last reply repeats once
    the queue is down to one entry. Unknown routes answer 500.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[dict[str, Any]]] = {}

    def add(
        self,
        method: str,
        path: str,
        *,
        status: int = 200,
        json: Any = None,
        content: bytes | None = None,
        exc: Exception | None = None,
    ) -> "MockServer":
        self._routes.setdefault((method, path), []).append(
            {"status": status, "json": json, "content": content, "exc": exc}
        )
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(500, text=f"unexpected {request.method} {request.url.path}")
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if reply["exc"] is not None:
            raise reply["exc"]
        if reply["content"] is not None:
            return httpx.Response(reply["status"], content=reply["content"])
        return httpx.Response(reply["status"], json=reply["json"])

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        """Requests received for one route, in order."""
        return [r for r in self.requests if r.method == method and r.url.path == path]


def body(request: httpx.Request) -> Any:
    """Decoded JSON body of a recorded request."""
    return json.loads(request.content)


@pytest.fixture
def server() -> MockServer:
    """Provide an empty mock server."""
    return MockServer()


@pytest.fixture
def refreshed_tokens() -> list[str]:
    """Collects tokens passed to the refresh listener."""
    return []


@pytest.fixture
def make_client(server, refreshed_tokens) -> Callable[..., ApiClient]:
    """Factory for ApiClients wired to the mock server."""
    clients: list[ApiClient] = []

    def factory(token: str = "token", **kwargs: Any) -> ApiClient:
        kwargs.setdefault("on_token_refreshed", refreshed_tokens.append)
        client = ApiClient(BASE_URL, token, transport=server.transport, **kwargs)
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


@pytest.fixture
def client(make_client) -> ApiClient:
    """ApiClient for http://mock holding the token "token"."""
    return make_client()


@pytest.fixture
def store():
    """In-memory cache store."""
    with CacheStore.in_memory() as s:
        yield s


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Keep the settings cache from leaking between tests."""
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Sample Data Fixtures
# ==============================================================================


def checklist_json(list_id: int = 1, name: str = "inbox", **overrides: Any) -> dict[str, Any]:
    """Checklist payload as the server returns it."""
    data = {
        "id": list_id,
        "name": name,
        "updated_at": "2022/09/01 10:58:52 +1000",
        "task_count": 3,
        "archived": False,
        "tags": {},
    }
    data.update(overrides)
    return data


def task_json(task_id: int = 10, content: str = "buy milk", **overrides: Any) -> dict[str, Any]:
    """Task payload as the server returns it."""
    data = {
        "id": task_id,
        "content": content,
        "position": 1,
        "parent_id": None,
        "checklist_id": 1,
        "status": 0,
    }
    data.update(overrides)
    return data
