"""Health check endpoint."""

import time

from fastapi import APIRouter, Depends

from codexstat.server.dependencies import get_service
from codexstat.server.index_service import IndexService

router = APIRouter(prefix="/api", tags=["health"])

_start_time = time.time()


@router.get("/health")
async def health_check(service: IndexService = Depends(get_service)):
    """Health check: returns status, uptime, database health."""
    uptime = int(time.time() - _start_time)

    db_status = "ok"
    try:
        cursor = await service.reader.execute("SELECT 1")
        await cursor.fetchone()
    except Exception:
        db_status = "error"

    return {
        "status": "ok",
        "uptime_seconds": uptime,
        "database": db_status,
        "version": "1.0.0",
    }
