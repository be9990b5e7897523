"""Index snapshot endpoint."""

from fastapi import APIRouter, Depends

from codexstat.server.dependencies import get_service
from codexstat.server.index_service import IndexService
from codexstat.server.models.snapshot import IndexSnapshotResponse

router = APIRouter(prefix="/api", tags=["index"])


@router.get("/index", response_model=IndexSnapshotResponse)
async def index_snapshot(service: IndexService = Depends(get_service)):
    """Totals, tool ranking and per-day breakdown of the whole index."""
    return await service.get_index_snapshot()
