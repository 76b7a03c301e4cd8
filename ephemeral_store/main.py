"""
Ephemeral Store - Main Application
FastAPI Entry Point with APScheduler for Expiry Sweeps
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import structlog

from ephemeral_store.config import settings
from ephemeral_store.database import dispose_db, init_db
from ephemeral_store.middleware import CorrelationIdMiddleware, RequestLoggingMiddleware
from ephemeral_store.routers import objects_router, server_router
from ephemeral_store.scheduler import start_scheduler, stop_scheduler
from ephemeral_store.services.entries import EntryService
from ephemeral_store.services.entry_store import EntryStore, current_millis
from ephemeral_store.services.exceptions import EphemeralStoreError, StorageUnavailable
from ephemeral_store.services.monitoring import init_sentry, setup_logging
from ephemeral_store.services.stats import StatsReporter
from ephemeral_store.services.sweeper import ExpirySweeper

logger = structlog.get_logger()


def create_app(
    database_url: Optional[str] = None,
    environment: Optional[str] = None,
    clock: Callable[[], int] = current_millis,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        database_url: Overrides settings.database_url
        environment: Overrides settings.environment ("testing" skips the scheduler)
        clock: Epoch-millisecond clock used for writes, reads and sweeps
    """
    environment = environment or settings.environment

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup and shutdown"""
        logger.info("startup", environment=environment)

        session_factory = init_db(database_url)
        logger.info("database_initialized")

        store = EntryStore(session_factory, ttl_ms=settings.ttl_ms)
        app.state.entry_service = EntryService(store, clock=clock)
        app.state.stats_reporter = StatsReporter(store)
        app.state.sweeper = ExpirySweeper(store, clock=clock)

        # First sweep runs immediately, then every sweep_interval_hours
        app.state.scheduler = start_scheduler(
            app.state.sweeper,
            environment=environment,
            interval_hours=settings.sweep_interval_hours,
        )

        yield

        logger.info("shutdown")
        stop_scheduler(app.state.scheduler)
        dispose_db()

    app = FastAPI(
        title="Ephemeral Store",
        description="Owner-scoped blob storage with automatic expiry",
        version="1.0.0",
        docs_url="/docs" if environment == "development" else None,
        redoc_url="/redoc" if environment == "development" else None,
        lifespan=lifespan,
    )

    @app.exception_handler(EphemeralStoreError)
    async def store_error_handler(request: Request, exc: EphemeralStoreError):
        if isinstance(exc, StorageUnavailable):
            logger.error(
                "storage_unavailable",
                path=request.url.path,
                error=str(exc.__cause__ or exc),
                exc_info=exc
            )
            return JSONResponse(status_code=exc.status_code, content={"error": "Storage unavailable"})

        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    # Register routers
    app.include_router(server_router)
    app.include_router(objects_router)

    # Front-end bundle, present only after scripts/build_frontend.sh ran
    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/app", StaticFiles(directory=static_dir, html=True), name="frontend")

    return app


setup_logging()
init_sentry()

app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ephemeral_store.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development"
    )
