"""
Local SQLite store for checklists and tasks.

CacheStore persists the entities fetched from the API so that reads can be
served without a network round trip. Saving an entity whose server id is
already stored replaces the existing row (upsert on ``checkvist_id``); the
cache never holds two rows for one server id.

Usage:
    from cvapi.core.cache.store import CacheStore

    with CacheStore(Path("cache.db")) as store:
        store.replace_lists(client.get_lists())
        for checklist in store.fetch_all_lists():
            print(checklist.name)
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..exceptions import StorageError
from ..models import Checklist, Task, format_checkvist_date
from .connection import MEMORY_PATH, init_db

if TYPE_CHECKING:
    from ..config.models import ClientSettings

logger = logging.getLogger(__name__)

LISTS_SCOPE = "lists"

_UPSERT_LIST = """
    INSERT INTO checklist (checkvist_id, name, updated_at, task_count)
    VALUES (?, ?, ?, ?)
    ON CONFLICT(checkvist_id) DO UPDATE SET
        name = excluded.name,
        updated_at = excluded.updated_at,
        task_count = excluded.task_count
"""

_UPSERT_TASK = """
    INSERT INTO task (checkvist_id, list_id, parent_id, content, position)
    VALUES (?, ?, ?, ?, ?)
    ON CONFLICT(checkvist_id) DO UPDATE SET
        list_id = excluded.list_id,
        parent_id = excluded.parent_id,
        content = excluded.content,
        position = excluded.position
"""

_UPSERT_SYNC = """
    INSERT INTO sync_state (scope, synced_at) VALUES (?, ?)
    ON CONFLICT(scope) DO UPDATE SET synced_at = excluded.synced_at
"""


def tasks_scope(list_id: int) -> str:
    """Sync-state scope for the tasks of one list."""
    return f"tasks:{list_id}"


def _list_row(checklist: Checklist) -> tuple[Any, ...]:
    return (
        checklist.id,
        checklist.name,
        format_checkvist_date(checklist.updated_at),
        checklist.task_count,
    )


def _task_rows(list_id: int, tasks: Iterable[Task]) -> list[tuple[Any, ...]]:
    tasks = list(tasks)
    # Validate the whole batch before anything is written
    for task in tasks:
        if task.id is None:
            raise ValueError(f"Cannot cache a task without an id: {task.content!r}")
    return [(t.id, list_id, t.parent_id, t.content, t.position) for t in tasks]


def _row_to_checklist(row: dict[str, Any]) -> Checklist:
    return Checklist(
        id=row["checkvist_id"],
        name=row["name"],
        updated_at=row["updated_at"],
        task_count=row["task_count"],
    )


def _row_to_task(row: dict[str, Any]) -> Task:
    return Task(
        id=row["checkvist_id"],
        content=row["content"],
        position=row["position"],
        parent_id=row["parent_id"],
        checklist_id=row["list_id"],
    )


class CacheStore:
    """
    SQLite-backed cache of checklists and tasks.

    A store owns one connection. Every public method either completes or
    raises StorageError; multi-statement operations run in one transaction.
    """

    def __init__(self, db_path: Path | str) -> None:
        """
        Open (and if needed create) the cache database.

        Args:
            db_path: SQLite file path, or ``":memory:"``

        Raises:
            StorageError: If the database cannot be opened or initialized
        """
        self.db_path = db_path if str(db_path) == MEMORY_PATH else Path(db_path)
        try:
            self._conn = init_db(self.db_path)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open cache at {db_path}: {e}", path=str(db_path)) from e
        logger.debug("Opened cache at %s", self.db_path)

    @classmethod
    def in_memory(cls) -> CacheStore:
        """Create a store that lives only as long as the object."""
        return cls(MEMORY_PATH)

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> CacheStore:
        """Open the cache configured in settings (in memory when unset)."""
        if settings.cache_path is None:
            return cls.in_memory()
        return cls(settings.cache_path)

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[sqlite3.Connection]:
        try:
            with self._conn:
                yield self._conn
        except sqlite3.Error as e:
            raise StorageError(f"Cache {operation} failed: {e}", operation=operation) from e

    def _query(self, operation: str, sql: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Cache {operation} failed: {e}", operation=operation) from e

    # ---- checklists ----

    def save_list(self, checklist: Checklist) -> None:
        """Insert or replace one checklist."""
        self.save_lists([checklist])

    def save_lists(self, checklists: Iterable[Checklist]) -> None:
        """Insert or replace a batch of checklists in one transaction."""
        rows = [_list_row(c) for c in checklists]
        with self._transaction("save_lists") as conn:
            conn.executemany(_UPSERT_LIST, rows)
        logger.debug("Cached %d checklist(s)", len(rows))

    def fetch_all_lists(self) -> list[Checklist]:
        """Return all cached checklists in insertion order."""
        rows = self._query("fetch_all_lists", "SELECT * FROM checklist ORDER BY id")
        return [_row_to_checklist(r) for r in rows]

    def delete_lists(self) -> int:
        """Delete all cached checklists; returns the number removed."""
        with self._transaction("delete_lists") as conn:
            return conn.execute("DELETE FROM checklist").rowcount

    def replace_lists(self, checklists: Iterable[Checklist]) -> int:
        """
        Replace every cached checklist with ``checklists``.

        The delete, the inserts and the sync timestamp are written in one
        transaction; on failure the previous contents survive.

        Returns:
            Number of checklists stored
        """
        rows = [_list_row(c) for c in checklists]
        with self._transaction("replace_lists") as conn:
            conn.execute("DELETE FROM checklist")
            conn.executemany(_UPSERT_LIST, rows)
            conn.execute(_UPSERT_SYNC, (LISTS_SCOPE, _now()))
        logger.debug("Replaced cached checklists with %d row(s)", len(rows))
        return len(rows)

    # ---- tasks ----

    def save_task(self, list_id: int, task: Task) -> None:
        """
        Insert or replace one task of a list.

        Raises:
            ValueError: If the task has no server id
        """
        self.save_tasks(list_id, [task])

    def save_tasks(self, list_id: int, tasks: Iterable[Task]) -> None:
        """
        Insert or replace a batch of tasks in one transaction.

        Raises:
            ValueError: If any task has no server id (nothing is written)
        """
        rows = _task_rows(list_id, tasks)
        with self._transaction("save_tasks") as conn:
            conn.executemany(_UPSERT_TASK, rows)
        logger.debug("Cached %d task(s) for list %s", len(rows), list_id)

    def fetch_tasks_for_list(self, list_id: int) -> list[Task]:
        """Return the cached tasks of one list in insertion order."""
        rows = self._query(
            "fetch_tasks_for_list",
            "SELECT * FROM task WHERE list_id = ? ORDER BY id",
            (list_id,),
        )
        return [_row_to_task(r) for r in rows]

    def fetch_all_tasks(self) -> list[Task]:
        """Return every cached task in insertion order."""
        rows = self._query("fetch_all_tasks", "SELECT * FROM task ORDER BY id")
        return [_row_to_task(r) for r in rows]

    def delete_tasks_for_list(self, list_id: int) -> int:
        """Delete the cached tasks of one list; returns the number removed."""
        with self._transaction("delete_tasks_for_list") as conn:
            return conn.execute("DELETE FROM task WHERE list_id = ?", (list_id,)).rowcount

    def replace_tasks(self, list_id: int, tasks: Iterable[Task]) -> int:
        """
        Replace the cached tasks of one list with ``tasks``.

        Tasks of other lists are untouched. Runs in one transaction.

        Returns:
            Number of tasks stored

        Raises:
            ValueError: If any task has no server id (nothing is written)
        """
        rows = _task_rows(list_id, tasks)
        with self._transaction("replace_tasks") as conn:
            conn.execute("DELETE FROM task WHERE list_id = ?", (list_id,))
            conn.executemany(_UPSERT_TASK, rows)
            conn.execute(_UPSERT_SYNC, (tasks_scope(list_id), _now()))
        logger.debug("Replaced cached tasks of list %s with %d row(s)", list_id, len(rows))
        return len(rows)

    # ---- bookkeeping ----

    def mark_synced(self, scope: str, at: datetime | None = None) -> None:
        """Record the time of the last successful sync of ``scope``."""
        synced_at = (at or datetime.now(timezone.utc)).isoformat()
        with self._transaction("mark_synced") as conn:
            conn.execute(_UPSERT_SYNC, (scope, synced_at))

    def last_synced(self, scope: str) -> datetime | None:
        """Time of the last successful sync of ``scope``, or None if never."""
        rows = self._query(
            "last_synced", "SELECT synced_at FROM sync_state WHERE scope = ?", (scope,)
        )
        if not rows:
            return None
        return datetime.fromisoformat(rows[0]["synced_at"])

    def count_lists(self) -> int:
        """Number of cached checklists."""
        return self._query("count_lists", "SELECT COUNT(*) AS n FROM checklist")[0]["n"]

    def count_tasks(self) -> int:
        """Number of cached tasks across all lists."""
        return self._query("count_tasks", "SELECT COUNT(*) AS n FROM task")[0]["n"]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


__all__ = ["CacheStore", "LISTS_SCOPE", "tasks_scope"]
