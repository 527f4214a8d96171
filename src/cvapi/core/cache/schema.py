"""
SQLite schema for the local Checkvist cache.

The cache mirrors the remote lists and tasks so that read queries can be
served offline. Rows are keyed by a local surrogate id; the server id is
stored in ``checkvist_id`` and is unique, which is what makes a repeated
save replace the existing row.

Tables:
- checklist: One row per remote checklist
- task: One row per remote task, scoped to its list via list_id
- sync_state: Time of the last successful sync per scope
- schema_info: Version tracking
"""

import sqlite3

# Schema version; bump when the DDL changes
SCHEMA_VERSION = 1

SCHEMA_DDL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_info (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    description TEXT
);

CREATE TABLE IF NOT EXISTS checklist (
    id INTEGER PRIMARY KEY,
    checkvist_id INTEGER NOT NULL UNIQUE,
    name TEXT NOT NULL,
    -- Checkvist date format, e.g. '2024/01/31 09:15:00 +0000'
    updated_at TEXT NOT NULL,
    task_count INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS task (
    id INTEGER PRIMARY KEY,
    checkvist_id INTEGER NOT NULL UNIQUE,
    list_id INTEGER NOT NULL,
    parent_id INTEGER,
    content TEXT NOT NULL,
    position INTEGER NOT NULL
);

-- scope is 'lists' or 'tasks:<list_id>'
CREATE TABLE IF NOT EXISTS sync_state (
    scope TEXT PRIMARY KEY,
    synced_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_task_list_id ON task(list_id);
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """
    Create the cache schema.

    Idempotent: every statement uses IF NOT EXISTS.

    Args:
        conn: SQLite database connection

    Example:
        >>> import sqlite3
        >>> conn = sqlite3.connect(":memory:")
        >>> create_schema(conn)
        >>> cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        >>> tables = [row[0] for row in cursor.fetchall()]
        >>> assert "checklist" in tables and "task" in tables
    """
    conn.executescript(SCHEMA_DDL)
    conn.execute(
        """
        INSERT OR REPLACE INTO schema_info (version, description)
        VALUES (?, ?)
        """,
        (SCHEMA_VERSION, "Checklist and task cache with sync state"),
    )
    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """
    Get the current schema version from the database.

    Args:
        conn: SQLite database connection

    Returns:
        Current schema version, or None if schema_info table doesn't exist
    """
    cursor = conn.cursor()
    cursor.row_factory = None
    try:
        row = cursor.execute("SELECT MAX(version) FROM schema_info").fetchone()
    except sqlite3.OperationalError:
        # schema_info table doesn't exist
        return None
    return row[0] if row and row[0] is not None else None


def needs_migration(conn: sqlite3.Connection) -> bool:
    """
    Check if the database is missing the current schema.

    Example:
        >>> import sqlite3
        >>> conn = sqlite3.connect(":memory:")
        >>> assert needs_migration(conn) is True
        >>> create_schema(conn)
        >>> assert needs_migration(conn) is False
    """
    current_version = get_schema_version(conn)
    if current_version is None:
        return True
    return current_version < SCHEMA_VERSION
