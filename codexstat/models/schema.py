"""
SQLite database schema definition, migrations, and connection management.

This module defines the 4-table index schema for codexstat with proper
indexes. Table shape is versioned with PRAGMA user_version; the shape of
the derived rows is versioned separately by INDEX_VERSION in the meta
table, so a parser change can force a rebuild without a DDL migration.
"""

from pathlib import Path
from typing import Optional

import aiosqlite

# Current schema version - increment when adding migrations
CURRENT_SCHEMA_VERSION = 1

# Version of the derived per-file rows. A stored value that differs from
# this one makes the next refresh drop every file row and re-parse.
INDEX_VERSION = 2

DATA_TABLES = ("user_token_counts", "tool_counts", "files")


def _casefold_lower(value):
    """SQLite LOWER folds ASCII only; this one folds any letter."""
    if value is None:
        return None
    return str(value).lower()


async def get_connection(db_path: Path) -> aiosqlite.Connection:
    """
    Open a database connection with proper configuration.

    Configures:
    - WAL mode so readers see a committed snapshot during a refresh
    - NORMAL synchronous for balance of safety/speed
    - Row factory for dict-like access
    - Foreign keys so tool/word rows cascade with their file row
    - A unicode-aware py_lower() for case-insensitive search
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    db = await aiosqlite.connect(str(db_path))
    db.row_factory = aiosqlite.Row

    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute("PRAGMA synchronous=NORMAL")
    await db.execute("PRAGMA temp_store=MEMORY")
    await db.execute("PRAGMA foreign_keys=ON")
    await db.execute("PRAGMA busy_timeout=5000")
    await db.create_function("py_lower", 1, _casefold_lower, deterministic=True)

    return db


async def get_schema_version(db: aiosqlite.Connection) -> int:
    """Get current schema version from PRAGMA user_version."""
    cursor = await db.execute("PRAGMA user_version")
    row = await cursor.fetchone()
    return row[0]


async def set_schema_version(db: aiosqlite.Connection, version: int) -> None:
    """Set schema version using PRAGMA user_version."""
    await db.execute(f"PRAGMA user_version = {int(version)}")


async def ensure_database(db: aiosqlite.Connection) -> None:
    """
    Ensure database has correct schema, running migrations if needed.

    Creates all tables and indexes if they don't exist.
    """
    current_version = await get_schema_version(db)

    if current_version < 1:
        await _create_initial_schema(db)
        await set_schema_version(db, 1)
        await db.commit()


async def _create_initial_schema(db: aiosqlite.Connection) -> None:
    """Create the initial schema (version 1)."""

    # Process metadata - source root, last refresh time, index version
    await db.execute("""
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
    """)

    # Files table - one row per session file, keyed by absolute path
    await db.execute("""
        CREATE TABLE IF NOT EXISTS files (
            file TEXT PRIMARY KEY,
            mtime REAL NOT NULL,
            size INTEGER NOT NULL,
            session_id TEXT NOT NULL,
            daily_key TEXT NOT NULL,
            started_at TEXT,
            ended_at TEXT,
            duration_sec INTEGER,
            cwd TEXT,
            originator TEXT,
            cli_version TEXT,
            messages INTEGER NOT NULL DEFAULT 0,
            tool_calls INTEGER NOT NULL DEFAULT 0,
            errors INTEGER NOT NULL DEFAULT 0,
            total_tokens INTEGER NOT NULL DEFAULT 0,
            input_tokens INTEGER NOT NULL DEFAULT 0,
            output_tokens INTEGER NOT NULL DEFAULT 0,
            cached_input_tokens INTEGER NOT NULL DEFAULT 0,
            reasoning_output_tokens INTEGER NOT NULL DEFAULT 0
        )
    """)

    # Tool counts - per-file histogram of tool invocations
    await db.execute("""
        CREATE TABLE IF NOT EXISTS tool_counts (
            file TEXT NOT NULL,
            tool_name TEXT NOT NULL,
            count INTEGER NOT NULL,
            PRIMARY KEY (file, tool_name),
            FOREIGN KEY (file) REFERENCES files(file) ON DELETE CASCADE
        )
    """)

    # User token counts - per-file word-cloud corpus
    await db.execute("""
        CREATE TABLE IF NOT EXISTS user_token_counts (
            file TEXT NOT NULL,
            token TEXT NOT NULL,
            count INTEGER NOT NULL,
            PRIMARY KEY (file, token),
            FOREIGN KEY (file) REFERENCES files(file) ON DELETE CASCADE
        )
    """)

    # Create indexes for query performance
    await _create_indexes(db)


async def _create_indexes(db: aiosqlite.Connection) -> None:
    """Create all required indexes for query performance."""

    # Files indexes
    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_files_session_id
        ON files(session_id)
    """)
    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_files_daily_key
        ON files(daily_key)
    """)
    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_files_started_at
        ON files(started_at)
    """)

    # Aggregation indexes
    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_tool_counts_tool_name
        ON tool_counts(tool_name)
    """)
    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_token_counts_token
        ON user_token_counts(token)
    """)


async def get_meta(db: aiosqlite.Connection, key: str) -> Optional[str]:
    """Read one value from the meta table."""
    cursor = await db.execute("SELECT value FROM meta WHERE key = ?", (key,))
    row = await cursor.fetchone()
    return row['value'] if row else None


async def set_meta(db: aiosqlite.Connection, key: str, value: str) -> None:
    """Write one value to the meta table (does not commit)."""
    await db.execute(
        "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
        (key, str(value))
    )


async def drop_all_tables(db: aiosqlite.Connection) -> None:
    """Drop all tables (for testing or rebuild)."""
    for table in DATA_TABLES + ("meta",):
        await db.execute(f"DROP TABLE IF EXISTS {table}")
    await set_schema_version(db, 0)
    await db.commit()
