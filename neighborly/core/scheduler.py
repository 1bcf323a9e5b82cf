"""Scheduler for automated jobs (request status audit)."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from neighborly.core.config import settings
from neighborly.services import lifecycle_service


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def audit_request_statuses() -> int:
    """Log every help request whose status disagrees with its tasks.

    Runs daily. Report-only: repairs are an explicit operator action
    (scripts/recompute_request_status.py).

    Returns:
        Number of drifted requests found, or -1 if the audit could not run
    """
    logger.info("Running request status audit job")

    try:
        drifted = await lifecycle_service.find_status_drift()
    except Exception as e:
        logger.error("Error in request status audit job: %s", e)
        return -1

    for request, derived in drifted:
        logger.warning(
            "request_status_drift",
            extra={"request_id": request.id, "stored_status": request.status, "derived_status": derived},
        )

    logger.info("Completed request status audit job: %d drifted request(s)", len(drifted))
    return len(drifted)


def start_scheduler() -> None:
    """Start the scheduler and register all jobs.

    This should be called during FastAPI app startup.
    """
    if not settings.enable_status_audit:
        logger.info("Request status audit disabled; scheduler not started")
        return

    logger.info("Starting scheduler")
    scheduler.add_job(
        audit_request_statuses,
        trigger=CronTrigger(hour=settings.status_audit_hour, minute=0),
        id="request_status_audit",
        name="Audit Help Request Status Against Tasks",
        replace_existing=True,
    )
    logger.info("Scheduled request status audit job: daily at %d:00", settings.status_audit_hour)

    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    if not scheduler.running:
        return
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
