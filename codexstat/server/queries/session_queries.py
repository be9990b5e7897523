"""Session query module.

Paginated session listing and single-session lookup over the files table.
"""

from typing import Any, Dict, List, Optional, Tuple

import aiosqlite

from codexstat.server.queries.filters import build_session_filter, clamp_int

DEFAULT_LIMIT = 100
MAX_LIMIT = 500
MAX_OFFSET = 2 ** 62

SESSION_COLUMNS = """
    session_id, file, started_at, ended_at, duration_sec,
    cwd, originator, cli_version, messages, tool_calls, errors,
    total_tokens, input_tokens, output_tokens,
    cached_input_tokens, reasoning_output_tokens
"""


def row_to_session(row) -> Dict[str, Any]:
    """Convert a files row into the session dict used by the API."""
    return {
        "session_id": row["session_id"],
        "file_path": row["file"],
        "started_at": row["started_at"],
        "ended_at": row["ended_at"],
        "duration_seconds": row["duration_sec"],
        "cwd": row["cwd"],
        "originator": row["originator"],
        "cli_version": row["cli_version"],
        "messages": row["messages"] or 0,
        "tool_calls": row["tool_calls"] or 0,
        "errors": row["errors"] or 0,
        "usage": {
            "total_tokens": row["total_tokens"] or 0,
            "input_tokens": row["input_tokens"] or 0,
            "output_tokens": row["output_tokens"] or 0,
            "cached_input_tokens": row["cached_input_tokens"] or 0,
            "reasoning_output_tokens": row["reasoning_output_tokens"] or 0,
        },
    }


async def get_sessions(
    db: aiosqlite.Connection,
    query: Optional[str] = None,
    only_with_tools: bool = False,
    only_with_errors: bool = False,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    """Get paginated session list, newest first, undated sessions last.

    limit is clamped to [1, 500] (default 100), offset to >= 0.
    Returns (page, total matching count).
    """
    limit = clamp_int(limit, 1, MAX_LIMIT, DEFAULT_LIMIT)
    offset = clamp_int(offset, 0, MAX_OFFSET, 0)

    params: list = []
    filters = build_session_filter(query, only_with_tools, only_with_errors, params)

    # Count total
    count_cursor = await db.execute(f"""
        SELECT COUNT(*) FROM files WHERE 1 = 1 {filters}
    """, params)
    total_count = (await count_cursor.fetchone())[0]

    cursor = await db.execute(f"""
        SELECT {SESSION_COLUMNS}
        FROM files
        WHERE 1 = 1 {filters}
        ORDER BY (started_at IS NULL), started_at DESC, file ASC
        LIMIT ? OFFSET ?
    """, list(params) + [limit, offset])
    rows = await cursor.fetchall()

    return [row_to_session(row) for row in rows], total_count


async def get_session_by_id(
    db: aiosqlite.Connection,
    session_id: str,
) -> Optional[Dict[str, Any]]:
    """Look up one session; the newest file wins if an id repeats."""
    cursor = await db.execute(f"""
        SELECT {SESSION_COLUMNS}
        FROM files
        WHERE session_id = ?
        ORDER BY (started_at IS NULL), started_at DESC
        LIMIT 1
    """, (session_id,))
    row = await cursor.fetchone()
    return row_to_session(row) if row else None
