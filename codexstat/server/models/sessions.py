"""Pydantic models for the sessions and timeline API."""

from typing import List, Optional

from codexstat.server.models.common import ApiModel, TokenUsageModel


class SessionSummaryModel(ApiModel):
    """Session in the list view and timeline header."""
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
    usage: TokenUsageModel = TokenUsageModel()


class SessionsResponse(ApiModel):
    """Paginated session list."""
    generated_at: str
    total: int
    items: List[SessionSummaryModel]


class TimelineEventModel(ApiModel):
    """A single timeline entry."""
    ts: str
    kind: str
    name: Optional[str] = None
    text: Optional[str] = None
    usage: Optional[TokenUsageModel] = None
    cumulative: Optional[TokenUsageModel] = None


class SessionTimelineResponse(ApiModel):
    """Full session timeline."""
    summary: SessionSummaryModel
    truncated: bool = False
    events: List[TimelineEventModel]
    usage: TokenUsageModel = TokenUsageModel()
