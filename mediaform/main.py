"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order

For local development:
    uvicorn mediaform.main:app --reload

For production:
    gunicorn mediaform.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .api.routes import forms, health
from .config.settings import Settings, get_settings
from .infrastructure.snowflake.client import SnowflakeConnectionError

logger = logging.getLogger(__name__)

# Checkout root; public/ sits next to the package
PROJECT_ROOT = Path(__file__).resolve().parent.parent


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )


def resolve_static_dir(static_dir: str) -> Path:
    """Relative paths are taken from the project root, not the working directory."""
    path = Path(static_dir)
    if path.is_absolute():
        return path
    return PROJECT_ROOT / path


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup configuration and shutdown."""
    settings = get_settings()

    logger.info(
        "Media Form API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": {
                "snowflake": settings.snowflake_mock_mode,
                "r2": settings.r2_mock_mode,
            }
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        # Keep serving; /health/ready reports the gap
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("Media Form API shutting down")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application. Tests may pass their
    own Settings; route dependencies still resolve get_settings, which
    tests override through app.dependency_overrides.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Form service that relays photos and videos to object storage.

        ## Workflow

        1. **Submit**: `POST /submit-form`
           - Multipart form with `name`, `address`, `photo` and `video` files
           - Every file is uploaded concurrently; the submission is stored
             only if all uploads succeed

        2. **List**: `GET /forms`
           - Every stored submission with its photo and video URLs
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Browsers refuse credentialed requests against a wildcard origin
    origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        forms.router,
        tags=["Forms"],
    )

    @app.exception_handler(SnowflakeConnectionError)
    async def record_store_unavailable_handler(request: Request, exc: SnowflakeConnectionError):
        """The record store connection is opened in a dependency, before the route runs."""
        logger.error(
            "Record store unavailable",
            extra={"path": request.url.path, "error": str(exc)},
        )

        if request.method == "GET" and request.url.path == "/forms":
            return JSONResponse(
                status_code=500,
                content={"message": "Error fetching forms"},
            )

        return JSONResponse(
            status_code=500,
            content={"message": "Something went wrong", "error": str(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Logs the full error server-side but returns a generic message, so
        one failing request never leaks a stack trace or takes the process down.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={"message": "Something went wrong"},
        )

    static_dir = resolve_static_dir(settings.static_dir)
    if static_dir.is_dir():
        # Mounted last so API routes take precedence
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    else:
        @app.get("/", include_in_schema=False)
        async def root():
            return {
                "message": settings.api_title,
                "version": settings.api_version,
                "docs": "/docs",
                "health": "/health",
            }

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
            "static_dir": str(static_dir) if static_dir.is_dir() else None,
        }
    )

    return app


# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "mediaform.main:app",
        host="0.0.0.0",
        port=3000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
