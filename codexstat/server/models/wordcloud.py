"""Pydantic models for the word-cloud API."""

from typing import List, Optional

from codexstat.server.models.common import ApiModel


class WordCloudItem(ApiModel):
    name: str
    value: int


class WordCloudResponse(ApiModel):
    generated_at: str
    days: Optional[int] = None
    limit: int
    min_count: int
    total_unique: int
    items: List[WordCloudItem]
