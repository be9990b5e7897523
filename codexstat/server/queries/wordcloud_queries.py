"""Word-cloud query module.

Ranks user-authored tokens across the files that pass the session filter
and the optional recency window.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import aiosqlite

from codexstat.server.queries.filters import build_session_filter, clamp_int
from codexstat.utils.timestamps import to_iso_string

DEFAULT_LIMIT = 200
DEFAULT_MIN_COUNT = 2


async def get_user_word_cloud(
    db: aiosqlite.Connection,
    days: Optional[int] = None,
    limit: Optional[int] = None,
    min_count: Optional[int] = None,
    query: Optional[str] = None,
    only_with_tools: bool = False,
    only_with_errors: bool = False,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Top tokens by total count.

    days is clamped to [1, 3650] when given, min_count to [1, 1000]
    (default 2), limit to [1, 1000] (default 200). total_unique counts every
    token meeting min_count, regardless of limit.
    """
    days = clamp_int(days, 1, 3650, 0) if days is not None else None
    limit = clamp_int(limit, 1, 1000, DEFAULT_LIMIT)
    min_count = clamp_int(min_count, 1, 1000, DEFAULT_MIN_COUNT)

    params: list = []
    filters = build_session_filter(query, only_with_tools, only_with_errors, params, alias="f")
    if days is not None:
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        filters += " AND f.started_at IS NOT NULL AND f.started_at >= ?"
        params.append(to_iso_string(cutoff))

    grouped = f"""
        SELECT t.token AS name, SUM(t.count) AS value
        FROM user_token_counts t
        JOIN files f ON f.file = t.file
        WHERE 1 = 1 {filters}
        GROUP BY t.token
        HAVING SUM(t.count) >= ?
    """

    count_cursor = await db.execute(
        f"SELECT COUNT(*) FROM ({grouped})", list(params) + [min_count]
    )
    total_unique = (await count_cursor.fetchone())[0]

    cursor = await db.execute(f"""
        {grouped}
        ORDER BY value DESC, name ASC
        LIMIT ?
    """, list(params) + [min_count, limit])
    rows = await cursor.fetchall()

    return {
        "days": days,
        "limit": limit,
        "min_count": min_count,
        "total_unique": total_unique,
        "items": [{"name": row["name"], "value": row["value"]} for row in rows],
    }
