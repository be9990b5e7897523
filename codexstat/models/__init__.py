"""Models package - database schema and entities."""

from .schema import (
    get_connection,
    ensure_database,
    get_schema_version,
    INDEX_VERSION,
)
from .entities import (
    TokenUsage,
    SessionSummary,
    FileIndex,
    TimelineEvent,
)

__all__ = [
    "get_connection",
    "ensure_database",
    "get_schema_version",
    "INDEX_VERSION",
    "TokenUsage",
    "SessionSummary",
    "FileIndex",
    "TimelineEvent",
]
