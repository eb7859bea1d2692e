"""
Railbook Reservation API - Main Application Entry Point

A train seat reservation service demonstrating:
- Concurrency-safe seat booking with a locked compare-and-decrement
- All-or-nothing booking and cancellation transactions
- Redis caching of journey listings with invalidation on every seat change
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from railbook.core.config import get_settings
from railbook.core.logging import setup_logging, get_logger
from railbook.core.metrics import metrics_endpoint
from railbook.core.security import AuthProvider, InMemoryAuthProvider
from railbook.api.errors import register_exception_handlers
from railbook.api.middleware import RequestLoggingMiddleware
from railbook.api.router import api_router
from railbook.db.store import InventoryStore
from railbook.services.booking_service import BookingEngine
from railbook.services.cache_service import get_redis, close_redis, get_cache_stats
from railbook.services.schedule_admin import ScheduleAdmin


def create_app(
    store: Optional[InventoryStore] = None,
    auth_provider: Optional[AuthProvider] = None,
) -> FastAPI:
    """
    Build the application around an explicitly constructed store and auth
    provider. Both default to ones built from settings.
    """
    settings = get_settings()
    owns_store = store is None
    store = store or InventoryStore.from_settings(settings)
    auth_provider = auth_provider or InMemoryAuthProvider.with_admin(
        settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle: startup and shutdown hooks."""
        setup_logging()
        logger = get_logger(__name__)

        logger.info(
            "application_starting",
            app=settings.APP_NAME,
            version=settings.APP_VERSION,
            environment=settings.ENVIRONMENT,
            database=store.dialect,
        )

        if settings.CREATE_SCHEMA_ON_STARTUP:
            await store.create_all()

        redis_client = await get_redis()
        if redis_client:
            logger.info("redis_ready")
        else:
            logger.warning("redis_unavailable", message="Running without cache")

        yield

        await close_redis()
        if owns_store:
            await store.dispose()
        logger.info("application_shutdown")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Train seat reservation API with concurrency-safe booking",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.store = store
    app.state.auth_provider = auth_provider
    app.state.booking_engine = BookingEngine(store, settings)
    app.state.schedule_admin = ScheduleAdmin(store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for Docker and load balancers."""
        cache_stats = await get_cache_stats()
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "database": store.dialect,
            "cache": cache_stats,
        }

    @app.get("/metrics", tags=["Health"], include_in_schema=False)
    async def metrics():
        return metrics_endpoint()

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": settings.APP_VERSION,
            "docs": "/docs",
        }

    return app


app = create_app()
