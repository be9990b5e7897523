"""Word-cloud endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from codexstat.server.dependencies import get_service
from codexstat.server.index_service import IndexService
from codexstat.server.models.wordcloud import WordCloudResponse

router = APIRouter(prefix="/api", tags=["wordcloud"])


@router.get("/wordcloud", response_model=WordCloudResponse)
async def word_cloud(
    days: Optional[int] = None,
    limit: Optional[int] = None,
    min_count: Optional[int] = Query(None, alias="min"),
    q: Optional[str] = None,
    with_tools: bool = Query(False, alias="withTools"),
    with_errors: bool = Query(False, alias="withErrors"),
    service: IndexService = Depends(get_service),
):
    """Most frequent tokens of user-authored messages."""
    return await service.get_user_word_cloud(
        days, limit, min_count, q, with_tools, with_errors
    )
