"""
APScheduler Background Jobs

Expiry sweep job: runs once at startup, then every sweep_interval_hours.
Jobs run via BackgroundScheduler in FastAPI process.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ephemeral_store.services.monitoring.error_tracking import capture_job_failure
from ephemeral_store.services.sweeper import ExpirySweeper

logger = structlog.get_logger(__name__)

EXPIRY_SWEEP_JOB_ID = "expiry_sweep"


def run_expiry_sweep(sweeper: ExpirySweeper) -> Optional[int]:
    """
    Wrapper function for scheduled expiry sweep job.

    Failures are logged and swallowed; the next tick retries.
    """
    try:
        return sweeper.run()
    except Exception as e:
        logger.error("expiry_sweep_crashed", error=str(e), exc_info=True)
        capture_job_failure(EXPIRY_SWEEP_JOB_ID, e)
        return None


def start_scheduler(
    sweeper: ExpirySweeper,
    environment: str = "production",
    interval_hours: int = 24,
) -> BackgroundScheduler:
    """
    Start background scheduler with the expiry sweep job.

    Args:
        sweeper: ExpirySweeper bound to the application's entry store
        environment: Current environment (skip scheduler in testing)
        interval_hours: Hours between sweeps

    Returns:
        BackgroundScheduler instance
    """
    scheduler = BackgroundScheduler(timezone="UTC")

    if environment == "testing":
        logger.info("scheduler_skipped", reason="testing_environment")
        return scheduler

    scheduler.add_job(
        run_expiry_sweep,
        trigger=IntervalTrigger(hours=interval_hours),
        args=[sweeper],
        id=EXPIRY_SWEEP_JOB_ID,
        name="Expiry Sweep",
        next_run_time=datetime.now(timezone.utc),  # first sweep at startup
        max_instances=1,
        coalesce=True,
        replace_existing=True
    )
    logger.info("job_registered", job=EXPIRY_SWEEP_JOB_ID, schedule=f"every_{interval_hours}h")

    scheduler.start()
    logger.info("scheduler_started", jobs=[EXPIRY_SWEEP_JOB_ID])

    return scheduler


def stop_scheduler(scheduler: BackgroundScheduler):
    """
    Stop background scheduler gracefully.

    Args:
        scheduler: BackgroundScheduler instance to stop
    """
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


__all__ = [
    "start_scheduler",
    "stop_scheduler",
    "run_expiry_sweep",
    "EXPIRY_SWEEP_JOB_ID",
]
