"""
Cache-backed Checkvist client.

CachedClient answers ``get_lists`` and ``get_tasks`` from the local store
and forwards everything else to an ApiClient. The cache is only filled by
the explicit ``sync_lists`` and ``sync_tasks`` calls; an empty cache reads
as empty rather than falling back to the network. Use ``last_synced_*`` to
decide when a sync is due.

Writes (``add_list``/``add_task``) go to the server only; the created entity
appears in the cache after the next sync of its scope.

Example:
    >>> with CachedClient(api, CacheStore(path)) as client:
    ...     client.sync_lists()
    ...     lists = client.get_lists()  # served from SQLite
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from ..models import Checklist, Task
from .store import LISTS_SCOPE, CacheStore, tasks_scope

if TYPE_CHECKING:
    from ..client import ApiClient

logger = logging.getLogger(__name__)


class CachedClient:
    """CheckvistClient that reads lists and tasks from a CacheStore."""

    def __init__(self, api: ApiClient, store: CacheStore) -> None:
        """
        Args:
            api: Network client used for syncs and for uncached operations
            store: Local cache
        """
        self.api = api
        self.store = store

    def close(self) -> None:
        """Close both the API client and the store."""
        try:
            self.api.close()
        finally:
            self.store.close()

    def __enter__(self) -> CachedClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ---- cached reads ----

    def get_lists(self) -> list[Checklist]:
        """Cached checklists (empty until sync_lists has run)."""
        return self.store.fetch_all_lists()

    def get_tasks(self, list_id: int) -> list[Task]:
        """Cached tasks of a list (empty until sync_tasks has run for it)."""
        return self.store.fetch_tasks_for_list(list_id)

    # ---- sync ----

    def sync_lists(self) -> int:
        """
        Fetch all checklists and replace the cached ones.

        Returns:
            Number of checklists stored

        Raises:
            CheckvistError: If the fetch fails (the cache is left untouched)
        """
        checklists = self.api.get_lists()
        count = self.store.replace_lists(checklists)
        logger.info("Synced %d checklist(s)", count)
        return count

    def sync_tasks(self, list_id: int) -> int:
        """
        Fetch the tasks of a list and replace its cached tasks.

        Returns:
            Number of tasks stored
        """
        tasks = self.api.get_tasks(list_id)
        count = self.store.replace_tasks(list_id, tasks)
        logger.info("Synced %d task(s) for list %s", count, list_id)
        return count

    def last_synced_lists(self) -> datetime | None:
        """Time of the last successful sync_lists, or None."""
        return self.store.last_synced(LISTS_SCOPE)

    def last_synced_tasks(self, list_id: int) -> datetime | None:
        """Time of the last successful sync_tasks for ``list_id``, or None."""
        return self.store.last_synced(tasks_scope(list_id))

    # ---- delegated to the API ----

    def get_list(self, list_id: int) -> Checklist:
        """Fetch one checklist from the server."""
        return self.api.get_list(list_id)

    def get_task(self, list_id: int, task_id: int) -> list[Task]:
        """Fetch a task and its ancestors from the server."""
        return self.api.get_task(list_id, task_id)

    def add_list(self, name: str) -> Checklist:
        """Create a checklist on the server; the cache is not updated."""
        return self.api.add_list(name)

    def add_task(self, list_id: int, task: Task) -> Task:
        """Create a task on the server; the cache is not updated."""
        return self.api.add_task(list_id, task)

    def is_location_valid(self, list_id: int, parent_task_id: int | None = None) -> bool:
        """Check a list (and optional parent task) against the server."""
        return self.api.is_location_valid(list_id, parent_task_id)


__all__ = ["CachedClient"]
