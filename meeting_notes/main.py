"""
FastAPI application initialization for the Meeting Notes API.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from meeting_notes.api.v1.router import api_router
from meeting_notes.config import settings
from meeting_notes.core.dependencies import ServiceContainer, build_container
from meeting_notes.core.exceptions import MeetingNotesException
from meeting_notes.core.logging import get_logger, setup_logging

logger = get_logger("app")


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the ASGI application.

    Args:
        container: Pre-built services. When omitted they are built from
            settings at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.container is None
        if owned:
            setup_logging(log_level=settings.log_level)
            logger.info("Starting Meeting Notes API...")
            app.state.container = build_container(settings)
        try:
            yield
        finally:
            if owned:
                logger.info("Shutting down Meeting Notes API...")
                await app.state.container.close()
                app.state.container = None
                logger.info("Meeting Notes API shutdown complete")

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        description="Meeting sessions, AI-generated notes and Zoom OAuth",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    app.state.container = container

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.auth_server.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MeetingNotesException)
    async def meeting_notes_exception_handler(request: Request, exc: MeetingNotesException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc.kind}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})

    # Include routers
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/", tags=["Root"], include_in_schema=False)
    async def root():
        return RedirectResponse(url="/api/docs")

    return app


app = create_app()
