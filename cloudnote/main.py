"""
FastAPI Application Entry Point.

Composition root: storage adapters are built once here (or injected by
the caller) and handed to every request through app.state.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cloudnote.api import admin, health, notes, pages
from cloudnote.core.concurrency import drain_background_tasks, shutdown_pools
from cloudnote.core.config import get_app_config
from cloudnote.core.exception_handlers import register_exception_handlers
from cloudnote.core.logging import get_logger, setup_logging
from cloudnote.core.middleware import RequestContextMiddleware
from cloudnote.core.startup_checks import run_startup_checks
from cloudnote.services.note import CachePolicy
from cloudnote.services.paths import PathPolicy
from cloudnote.storage.base import Storage
from cloudnote.storage.factory import create_storage

logger = get_logger(__name__)

_app: FastAPI | None = None


def _make_lifespan(injected: Storage | None, configure_logging: bool):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        app_config = get_app_config()
        if configure_logging:
            setup_logging(level=app_config.logging.level)

        run_startup_checks(app_config)

        owns_storage = injected is None
        storage = injected or await create_storage(app_config)
        app.state.storage = storage

        logger.info(
            "Application starting",
            extra={
                "app_name": app_config.application.name,
                "env": app_config.application.environment,
                "backend": storage.backend,
            },
        )
        try:
            yield
        finally:
            logger.info("Application shutting down")
            await drain_background_tasks(timeout=app_config.concurrency.shutdown.drain_seconds)
            if owns_storage:
                await storage.close()
            await shutdown_pools()

    return lifespan


def create_app(storage: Storage | None = None, configure_logging: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        storage: Pre-built adapters; when omitted the lifespan composes them
            from database.yaml and closes them on shutdown
        configure_logging: Whether the lifespan installs the logging handlers
    """
    app_config = get_app_config()
    app_settings = app_config.application

    app = FastAPI(
        title=app_settings.name,
        description=app_settings.description,
        version=app_settings.version,
        docs_url="/docs" if app_settings.docs_enabled else None,
        redoc_url="/redoc" if app_settings.docs_enabled else None,
        lifespan=_make_lifespan(storage, configure_logging),
    )

    app.state.storage = storage
    app.state.path_policy = PathPolicy.from_config(app_config)
    app.state.cache_policy = CachePolicy.from_config(app_config)

    app.add_middleware(RequestContextMiddleware)

    cors_origins = app_settings.cors.origins
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials="*" not in cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(notes.router, prefix="/api", tags=["notes"])
    app.include_router(admin.router, prefix="/admin", tags=["admin"])
    # Catch-all page routes go last
    app.include_router(pages.router, tags=["pages"])

    return app


def get_app() -> FastAPI:
    """
    Get the application instance (lazy initialization).

    This function creates the app on first call and caches it.
    Use this instead of importing `app` directly to avoid
    import-time configuration errors.
    """
    global _app
    if _app is None:
        _app = create_app()
    return _app


# For uvicorn: `uvicorn cloudnote.main:app`
def __getattr__(name: str) -> FastAPI:
    """Support lazy access to `app` for uvicorn compatibility."""
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
