"""Sessions API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from codexstat.server.dependencies import get_service
from codexstat.server.index_service import IndexService
from codexstat.server.models.sessions import SessionsResponse, SessionTimelineResponse

router = APIRouter(prefix="/api", tags=["sessions"])


@router.get("/sessions", response_model=SessionsResponse)
async def list_sessions(
    q: Optional[str] = None,
    with_tools: bool = Query(False, alias="withTools"),
    with_errors: bool = Query(False, alias="withErrors"),
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    service: IndexService = Depends(get_service),
):
    """Get paginated, filtered session list."""
    return await service.list_sessions(q, with_tools, with_errors, limit, offset)


@router.get("/sessions/{session_id}/timeline", response_model=SessionTimelineResponse)
async def session_timeline(
    session_id: str,
    service: IndexService = Depends(get_service),
):
    """Get the event timeline of one session."""
    return await service.get_session_timeline(session_id)
