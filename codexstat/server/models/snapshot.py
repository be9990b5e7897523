"""Pydantic models for the index snapshot API."""

from typing import Dict

from codexstat.server.models.common import ApiModel


class AggregateModel(ApiModel):
    """Counters summed over a set of sessions."""
    sessions: int = 0
    messages: int = 0
    tool_calls: int = 0
    errors: int = 0
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cached_input_tokens: int = 0
    reasoning_output_tokens: int = 0


class TotalsModel(AggregateModel):
    files: int = 0


class IndexSnapshotResponse(ApiModel):
    """Whole-index totals, tool ranking and per-day breakdown."""
    version: int
    generated_at: str
    source_root: str
    cache_root: str
    totals: TotalsModel
    tools: Dict[str, int]
    daily: Dict[str, AggregateModel]
