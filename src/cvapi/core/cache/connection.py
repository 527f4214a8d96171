"""
Connection setup for the cache database.

Usage:
    from cvapi.core.cache.connection import init_db

    conn = init_db(Path("~/.cache/cvapi/cache.db").expanduser())
    rows = conn.execute("SELECT * FROM checklist").fetchall()
    rows[0]["name"]
"""

import logging
import sqlite3
from pathlib import Path
from typing import Any

from .schema import create_schema, needs_migration

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """
    Row factory that returns rows as dictionaries.

    Enables ``row["column_name"]`` access instead of ``row[0]``.
    """
    fields = [column[0] for column in cursor.description]
    return dict(zip(fields, row))


def configure_connection(conn: sqlite3.Connection, *, wal: bool = True) -> None:
    """
    Configure a SQLite connection.

    Settings applied:
    - WAL mode (file databases only)
    - dict_factory for dict-like row access

    Args:
        conn: SQLite connection to configure
        wal: Enable write-ahead logging
    """
    if wal:
        conn.execute("PRAGMA journal_mode=WAL")
    conn.row_factory = dict_factory


def init_db(db_path: Path | str) -> sqlite3.Connection:
    """
    Open the cache database, creating file and schema as needed.

    Args:
        db_path: Path to the SQLite file, or ``":memory:"``

    Returns:
        Configured SQLite connection
    """
    if str(db_path) == MEMORY_PATH:
        conn = sqlite3.connect(MEMORY_PATH)
        configure_connection(conn, wal=False)
    else:
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path))
        configure_connection(conn)

    if needs_migration(conn):
        logger.debug("Creating cache schema in %s", db_path)
        create_schema(conn)

    return conn
