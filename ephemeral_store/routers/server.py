"""
Server Router
Status, stats and admin endpoints
"""

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool
import structlog

from ephemeral_store.config import settings
from ephemeral_store.database import database_file_path
from ephemeral_store.dependencies import get_stats_reporter, get_sweeper
from ephemeral_store.services.stats import StatsReporter, file_size, format_bytes
from ephemeral_store.services.sweeper import ExpirySweeper

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["server"])


@router.get("/")
async def root():
    """Payload size limit and current database file size"""
    return {
        "fileLimit": f"{settings.max_payload_size_mb}mb",
        "storageUsed": format_bytes(file_size(database_file_path())),
    }


@router.get("/server")
async def server_stats(reporter: StatsReporter = Depends(get_stats_reporter)):
    """Entry count, distinct owners and total payload bytes (expired rows included)"""
    return await run_in_threadpool(reporter.report)


@router.get("/health")
async def health_check(request: Request):
    """
    Health Check Endpoint
    """
    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "status": "healthy",
        "environment": settings.environment,
        "services": {
            "api": "running",
            "scheduler": "running" if scheduler is not None and scheduler.running else "stopped",
        },
    }


@router.post("/api/v1/admin/sweep/trigger")
async def trigger_sweep(sweeper: ExpirySweeper = Depends(get_sweeper)):
    """
    Manually trigger the expiry sweep.

    Runs immediately instead of waiting for the next scheduled tick. Storage
    errors propagate as 500 responses.
    """
    deleted_count = await run_in_threadpool(sweeper.run)

    if deleted_count is None:
        return {"status": "skipped", "message": "Sweep already running"}

    logger.info("manual_sweep_completed", deleted_count=deleted_count)
    return {"status": "completed", "deleted": deleted_count}
