"""FastAPI dependency injection for the index service."""

from fastapi import Request

from codexstat.server.index_service import IndexService


async def get_service(request: Request) -> IndexService:
    """Get the shared IndexService from app state."""
    return request.app.state.service
