"""Main application entrypoint for the Media Relay service."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mediarelay.api.errors import register_exception_handlers
from mediarelay.api.v1 import routes_health
from mediarelay.api.v1.routes_gallery import router as gallery_router
from mediarelay.api.v1.routes_photos import router as photos_router
from mediarelay.api.v1.routes_upload import router as upload_router
from mediarelay.core.config import settings
from mediarelay.core.logging import setup_logging
from mediarelay.core.middleware import HTTPErrorLoggingMiddleware


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    # Initialize logging first
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
    )

    app.add_middleware(HTTPErrorLoggingMiddleware)
    # Outermost
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.CORS_ORIGIN],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        max_age=86400,
    )

    register_exception_handlers(app)

    # Register routers
    app.include_router(routes_health.router, tags=["health"])
    app.include_router(upload_router)
    app.include_router(gallery_router)
    app.include_router(photos_router)

    return app


# Export app instance for ASGI servers
app = create_app()
