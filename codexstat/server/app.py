"""
FastAPI application factory for the codexstat API.

Creates the app with all routes and the index service lifecycle.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from codexstat.config.loader import load_config
from codexstat.server.index_service import IndexService
from codexstat.server.models.common import ErrorResponse

logger = logging.getLogger("codexstat.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage index service lifecycle."""
    config = app.state.config if hasattr(app.state, "config") else load_config()
    app.state.config = config

    owns_service = not hasattr(app.state, "service")
    if owns_service:
        app.state.service = IndexService.from_config(config)
    await app.state.service.open()
    logger.info("Serving index of %s", app.state.service.sessions_path)

    yield

    if owns_service:
        await app.state.service.close()


def create_app(config: dict = None, service: IndexService = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="codexstat API",
        description="Usage analytics over Codex session logs",
        version="1.0.0",
        lifespan=lifespan,
        responses={500: {"model": ErrorResponse}},
    )

    if config:
        app.state.config = config
    if service is not None:
        app.state.service = service

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal server error", detail=str(exc)).model_dump(),
        )

    from codexstat.server.routes.health import router as health_router
    from codexstat.server.routes.index import router as index_router
    from codexstat.server.routes.sessions import router as sessions_router
    from codexstat.server.routes.wordcloud import router as wordcloud_router

    app.include_router(health_router)
    app.include_router(index_router)
    app.include_router(sessions_router)
    app.include_router(wordcloud_router)

    return app
