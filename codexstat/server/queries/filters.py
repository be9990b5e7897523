"""Shared filter helpers for query modules.

Centralizes the session filter (text search, tool/error flags) and the
clamping of paging arguments, so the list and word-cloud queries agree.
"""

from typing import Optional


def clamp_int(value: Optional[int], low: int, high: int, default: int) -> int:
    """Clamp an optional int into [low, high]; None becomes default."""
    if value is None:
        return default
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, value))


def _like_pattern(query: str) -> str:
    escaped = query.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f"%{escaped.lower()}%"


def build_session_filter(
    query: Optional[str],
    only_with_tools: bool,
    only_with_errors: bool,
    params: list,
    alias: str = "",
) -> str:
    """Build SQL WHERE clauses over the files table.

    Text search is a case-insensitive substring match on session id,
    working directory and originator.
    Returns string like: " AND f.tool_calls > 0 AND (...)"
    Appends values to params list.
    """
    col = f"{alias}." if alias else ""
    clauses = ""
    if only_with_tools:
        clauses += f" AND {col}tool_calls > 0"
    if only_with_errors:
        clauses += f" AND {col}errors > 0"

    query = (query or "").strip()
    if query:
        like = _like_pattern(query)
        clauses += (
            f" AND (py_lower({col}session_id) LIKE ? ESCAPE '\\'"
            f" OR py_lower(IFNULL({col}cwd, '')) LIKE ? ESCAPE '\\'"
            f" OR py_lower(IFNULL({col}originator, '')) LIKE ? ESCAPE '\\')"
        )
        params.extend([like, like, like])
    return clauses
