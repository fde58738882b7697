"""
Meme Collaboration Service - FastAPI Application

Shared meme projects with roles, invitations, versions, comments and forks,
backed by MongoDB with activity events published to Redis.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.config import settings
from src.core.database import close_db_connections, get_database, init_db_connections
from src.core.events import event_publisher
from src.core.logging import setup_logging
from src.core.models import Envelope, ErrorEnvelope

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Manage application lifecycle - startup and shutdown events."""
    # Startup
    await init_db_connections()

    from src.modules.auth.services import ensure_indexes as ensure_user_indexes
    from src.modules.collaborations.repository import (
        ensure_indexes as ensure_collaboration_indexes,
    )

    db = get_database()
    await ensure_user_indexes(db)
    await ensure_collaboration_indexes(db)
    await event_publisher.connect()

    yield
    # Shutdown
    await event_publisher.stop()
    await close_db_connections()


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorEnvelope(message=message).model_dump(),
        headers=headers,
    )


async def http_exception_handler(_request: Request, exc: StarletteHTTPException):
    return error_response(
        exc.status_code, str(exc.detail), getattr(exc, "headers", None)
    )


async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Validation failed")
    if location:
        message = f"{location}: {message}"
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, message)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred"
    )


def create_app() -> FastAPI:
    """Application factory for creating FastAPI instance."""
    setup_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Collaborative meme projects API",
        version="0.1.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        swagger_ui_parameters={"persistAuthorization": True},
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for container orchestration."""
        return Envelope(data={"status": "healthy", "app": settings.APP_NAME})

    # Register module routers
    from src.modules.collaborations import router as collaborations_router

    app.include_router(collaborations_router)

    return app


# Create application instance
app = create_app()
