"""
Database loader for codexstat ETL pipeline.

Writes per-file rows into SQLite. None of these functions commit; they run
inside the refresh transaction.
"""

from pathlib import Path

import aiosqlite

from codexstat.etl.incremental import Fingerprint
from codexstat.models.entities import FileIndex
from codexstat.models.schema import DATA_TABLES


async def upsert_file(
    db: aiosqlite.Connection,
    file_path: Path,
    fingerprint: Fingerprint,
    index: FileIndex
) -> None:
    """
    Insert or update the files row for one session file.

    Uses ON CONFLICT so child rows are not cascaded away by a REPLACE.
    """
    summary = index.summary
    usage = summary.usage
    mtime, size = fingerprint
    await db.execute("""
        INSERT INTO files (
            file, mtime, size, session_id, daily_key,
            started_at, ended_at, duration_sec, cwd, originator, cli_version,
            messages, tool_calls, errors,
            total_tokens, input_tokens, output_tokens,
            cached_input_tokens, reasoning_output_tokens
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(file) DO UPDATE SET
            mtime = excluded.mtime,
            size = excluded.size,
            session_id = excluded.session_id,
            daily_key = excluded.daily_key,
            started_at = excluded.started_at,
            ended_at = excluded.ended_at,
            duration_sec = excluded.duration_sec,
            cwd = excluded.cwd,
            originator = excluded.originator,
            cli_version = excluded.cli_version,
            messages = excluded.messages,
            tool_calls = excluded.tool_calls,
            errors = excluded.errors,
            total_tokens = excluded.total_tokens,
            input_tokens = excluded.input_tokens,
            output_tokens = excluded.output_tokens,
            cached_input_tokens = excluded.cached_input_tokens,
            reasoning_output_tokens = excluded.reasoning_output_tokens
    """, (
        str(file_path),
        mtime,
        size,
        summary.session_id,
        index.daily_key,
        summary.started_at,
        summary.ended_at,
        summary.duration_seconds,
        summary.cwd,
        summary.originator,
        summary.cli_version,
        summary.messages,
        summary.tool_calls,
        summary.errors,
        usage.total_tokens,
        usage.input_tokens,
        usage.output_tokens,
        usage.cached_input_tokens,
        usage.reasoning_output_tokens,
    ))


async def replace_tool_counts(
    db: aiosqlite.Connection,
    file_path: Path,
    index: FileIndex
) -> None:
    """Replace the full tool histogram of one file."""
    await db.execute("DELETE FROM tool_counts WHERE file = ?", (str(file_path),))
    if index.tools:
        await db.executemany(
            "INSERT INTO tool_counts (file, tool_name, count) VALUES (?, ?, ?)",
            [(str(file_path), name, count) for name, count in index.tools.items()]
        )


async def replace_token_counts(
    db: aiosqlite.Connection,
    file_path: Path,
    index: FileIndex
) -> None:
    """Replace the full word-cloud token counts of one file."""
    await db.execute("DELETE FROM user_token_counts WHERE file = ?", (str(file_path),))
    if index.word_counts:
        await db.executemany(
            "INSERT INTO user_token_counts (file, token, count) VALUES (?, ?, ?)",
            [(str(file_path), token, count) for token, count in index.word_counts.items()]
        )


async def store_file_index(
    db: aiosqlite.Connection,
    file_path: Path,
    fingerprint: Fingerprint,
    index: FileIndex
) -> None:
    """Write a parsed file: summary row plus its tool and token rows."""
    await upsert_file(db, file_path, fingerprint, index)
    await replace_tool_counts(db, file_path, index)
    await replace_token_counts(db, file_path, index)


async def delete_file(db: aiosqlite.Connection, file_path: str) -> None:
    """Remove a file row and every row that belongs to it."""
    await db.execute("DELETE FROM user_token_counts WHERE file = ?", (file_path,))
    await db.execute("DELETE FROM tool_counts WHERE file = ?", (file_path,))
    await db.execute("DELETE FROM files WHERE file = ?", (file_path,))


async def clear_index(db: aiosqlite.Connection) -> None:
    """Delete every derived row (forces full rebuild)."""
    for table in DATA_TABLES:
        await db.execute(f"DELETE FROM {table}")
