"""
Timestamp utilities for codexstat.

Handles parsing and normalisation of timestamps from session JSONL files.
Everything stored or compared is a UTC ISO-8601 string with millisecond
precision and a 'Z' suffix, so lexical order equals chronological order.
"""

from datetime import datetime, timezone
from typing import Any, Optional

UNKNOWN_DAY = "unknown"


def parse_timestamp(ts: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp to an aware UTC datetime.

    Naive timestamps are taken to be UTC. Returns None for anything that is
    not a string or does not parse.

    Args:
        ts: Timestamp string like "2026-01-15T10:30:00.123Z"

    Returns:
        datetime object in UTC, or None if parsing failed
    """
    if not isinstance(ts, str) or not ts:
        return None

    try:
        # Handle 'Z' suffix (UTC indicator)
        if ts.endswith('Z') or ts.endswith('z'):
            ts = ts[:-1] + '+00:00'

        dt = datetime.fromisoformat(ts)
    except (ValueError, TypeError):
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime as 'YYYY-MM-DDTHH:MM:SS.mmmZ' in UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def normalize_timestamp(ts: Any) -> Optional[str]:
    """Parse and re-format a raw timestamp; None when it is not valid."""
    return to_iso_string(parse_timestamp(ts))


def utc_now_iso() -> str:
    """Current time in the normalised storage format."""
    return to_iso_string(datetime.now(timezone.utc))


def day_key(iso_ts: Optional[str]) -> str:
    """
    Daily bucket key (YYYY-MM-DD) for a normalised timestamp.

    Returns "unknown" when there is no timestamp.
    """
    if not iso_ts or len(iso_ts) < 10:
        return UNKNOWN_DAY
    return iso_ts[:10]


def duration_seconds(started_at: Optional[str], ended_at: Optional[str]) -> Optional[int]:
    """Whole seconds between two timestamps, or None if invalid or negative."""
    start = parse_timestamp(started_at)
    end = parse_timestamp(ended_at)
    if start is None or end is None or end < start:
        return None
    return int((end - start).total_seconds())
