"""
Data structures (entities) for codexstat.

Uses dataclasses for clean, typed data structures.
Named 'entities' instead of 'dataclasses' to avoid stdlib import confusion.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional

# Order matches the columns of the files table
TOKEN_FIELDS = (
    "total_tokens",
    "input_tokens",
    "output_tokens",
    "cached_input_tokens",
    "reasoning_output_tokens",
)


def _as_count(value: Any) -> int:
    """Coerce a JSON number to a non-negative int; anything else is 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if value != value:  # NaN
        return 0
    return max(0, int(value))


@dataclass
class TokenUsage:
    """Token usage counters for one snapshot, delta, or running total."""
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cached_input_tokens: int = 0
    reasoning_output_tokens: int = 0

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["TokenUsage"]:
        """Build from a raw usage object; None when raw is not an object."""
        if not isinstance(raw, dict):
            return None
        return cls(**{name: _as_count(raw.get(name)) for name in TOKEN_FIELDS})

    def is_empty(self) -> bool:
        """A snapshot is empty unless some counter is greater than zero."""
        return not any(getattr(self, name) > 0 for name in TOKEN_FIELDS)

    def add(self, other: "TokenUsage") -> None:
        """Add another usage into this one in place."""
        for name in TOKEN_FIELDS:
            setattr(self, name, getattr(self, name) + getattr(other, name))

    def delta_from(self, previous: "TokenUsage") -> "TokenUsage":
        """Per-field difference against an earlier snapshot, clamped at zero."""
        return TokenUsage(**{
            name: max(0, getattr(self, name) - getattr(previous, name))
            for name in TOKEN_FIELDS
        })

    def copy(self) -> "TokenUsage":
        return TokenUsage(**self.to_dict())

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class SessionSummary:
    """Summary of one session file, as stored in the files table."""
    session_id: str
    file_path: str
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    duration_seconds: Optional[int] = None
    cwd: Optional[str] = None
    originator: Optional[str] = None
    cli_version: Optional[str] = None
    messages: int = 0
    tool_calls: int = 0
    errors: int = 0
    usage: TokenUsage = field(default_factory=TokenUsage)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self) if f.name != 'usage'}
        data['usage'] = self.usage.to_dict()
        return data

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SessionSummary":
        usage = TokenUsage.from_dict(raw.get('usage')) or TokenUsage()
        known = {f.name for f in fields(cls)} - {'usage'}
        return cls(usage=usage, **{k: v for k, v in raw.items() if k in known})


@dataclass
class FileIndex:
    """Everything the refresh stores for one parsed file."""
    summary: SessionSummary
    daily_key: str
    tools: Dict[str, int] = field(default_factory=dict)
    word_counts: Dict[str, int] = field(default_factory=dict)


@dataclass
class TimelineEvent:
    """
    A single entry in a session timeline.

    kind is one of: user, assistant, other, tool_call, tool_output,
    error, token_usage.
    """
    ts: str
    kind: str
    name: Optional[str] = None
    text: Optional[str] = None
    usage: Optional[Dict[str, int]] = None
    cumulative: Optional[Dict[str, int]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'ts': self.ts, 'kind': self.kind}
        for key in ('name', 'text', 'usage', 'cumulative'):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data
