"""
FastAPI application factory and main entry point.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fsis.api.dependencies import Services, build_services
from fsis.api.middleware import WideEventMiddleware
from fsis.api.routes import files, health
from fsis.core.config import Settings, get_settings
from fsis.core.logging import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings: Settings = app.state.services.settings
    logger.info(
        "Starting FS Image Server",
        version=settings.app_version,
        groups=sorted(settings.groups),
    )

    for name, group in settings.groups.items():
        if not group.allowed_mime_types:
            logger.warning("Group allows no MIME types, every file will be rejected", group=name)

    yield

    logger.info("Shutting down FS Image Server")


def create_app(
    settings: Settings | None = None,
    services: Services | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or (services.settings if services else get_settings())

    configure_logging(
        json_logs=not settings.debug,  # JSON in production, console in dev
        log_level="DEBUG" if settings.debug else settings.log_level,
        sample_rate=settings.log_sample_rate,
        version=settings.app_version,
        environment=settings.environment,
    )

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Serves files from configured directories to wiki pages",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.services = services or build_services(settings)

    # Wide Events middleware - canonical log line per request
    app.add_middleware(WideEventMiddleware)

    app.include_router(health.router, tags=["Health"])
    app.include_router(files.router, prefix="/fsis", tags=["Files"])

    # Exception Handlers
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle FastAPI validation errors"""
        logger.warning("Validation error", url=str(request.url), errors=exc.errors())
        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "message": "Validation failed",
                    "type": "validation_error",
                    "details": exc.errors()
                }
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.error("Unexpected error", url=str(request.url), error=str(exc), exc_info=True)

        # Don't expose internal details in production
        message = str(exc) if settings.debug else "An unexpected error occurred"

        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "message": message,
                    "type": "internal_server_error"
                }
            }
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "fsis.api.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
    )
