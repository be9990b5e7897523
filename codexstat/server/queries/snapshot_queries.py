"""Snapshot query module.

Global totals, per-day breakdown and tool ranking over the whole index.
Totals and daily rows aggregate the same files rows, so the daily buckets
sum to the totals.
"""

from typing import Any, Dict, Optional

import aiosqlite

from codexstat.models.entities import TOKEN_FIELDS
from codexstat.models.schema import INDEX_VERSION, get_meta
from codexstat.utils.timestamps import utc_now_iso

AGGREGATE_COLUMNS = """
    COUNT(*) AS sessions,
    COALESCE(SUM(messages), 0) AS messages,
    COALESCE(SUM(tool_calls), 0) AS tool_calls,
    COALESCE(SUM(errors), 0) AS errors,
    COALESCE(SUM(total_tokens), 0) AS total_tokens,
    COALESCE(SUM(input_tokens), 0) AS input_tokens,
    COALESCE(SUM(output_tokens), 0) AS output_tokens,
    COALESCE(SUM(cached_input_tokens), 0) AS cached_input_tokens,
    COALESCE(SUM(reasoning_output_tokens), 0) AS reasoning_output_tokens
"""


def _aggregate(row) -> Dict[str, int]:
    data = {
        "sessions": row["sessions"] or 0,
        "messages": row["messages"] or 0,
        "tool_calls": row["tool_calls"] or 0,
        "errors": row["errors"] or 0,
    }
    for name in TOKEN_FIELDS:
        data[name] = row[name] or 0
    return data


async def get_totals(db: aiosqlite.Connection) -> Dict[str, int]:
    """Totals across every indexed file."""
    cursor = await db.execute(f"SELECT COUNT(*) AS files, {AGGREGATE_COLUMNS} FROM files")
    row = await cursor.fetchone()
    totals = {"files": row["files"] or 0}
    totals.update(_aggregate(row))
    return totals


async def get_daily(db: aiosqlite.Connection) -> Dict[str, Dict[str, int]]:
    """Per-day aggregates keyed by daily bucket, oldest first ('unknown' last)."""
    cursor = await db.execute(f"""
        SELECT daily_key, {AGGREGATE_COLUMNS}
        FROM files
        GROUP BY daily_key
        ORDER BY (daily_key = 'unknown'), daily_key
    """)
    rows = await cursor.fetchall()
    return {row["daily_key"]: _aggregate(row) for row in rows}


async def get_top_tools(
    db: aiosqlite.Connection,
    limit: Optional[int] = None,
) -> Dict[str, int]:
    """Tool name -> total invocations, most used first."""
    sql = """
        SELECT tool_name, SUM(count) AS total
        FROM tool_counts
        GROUP BY tool_name
        ORDER BY total DESC, tool_name ASC
    """
    params: list = []
    if limit is not None:
        sql += " LIMIT ?"
        params.append(max(1, int(limit)))
    cursor = await db.execute(sql, params)
    rows = await cursor.fetchall()
    return {row["tool_name"]: row["total"] or 0 for row in rows}


async def get_index_snapshot(
    db: aiosqlite.Connection,
    sessions_path: str,
    cache_path: str,
) -> Dict[str, Any]:
    """Aggregated view of the whole index."""
    return {
        "version": INDEX_VERSION,
        "generated_at": await get_meta(db, "generated_at") or utc_now_iso(),
        "source_root": await get_meta(db, "sessions_path") or str(sessions_path),
        "cache_root": str(cache_path),
        "totals": await get_totals(db),
        "tools": await get_top_tools(db),
        "daily": await get_daily(db),
    }
