"""neighborly - community help requests and volunteer tasks."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from neighborly.core.db_client import close_connection, init_db
from neighborly.core.logging import configure_logfire, instrument_fastapi
from neighborly.core.scheduler import scheduler, start_scheduler, stop_scheduler
from neighborly.interface.api_router import register_exception_handlers
from neighborly.interface.api_router import router as api_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so startup logs are captured
    configure_logfire()

    await init_db()
    logger.info("Database initialized")

    start_scheduler()
    yield
    stop_scheduler()
    await close_connection()


app = FastAPI(
    title="neighborly",
    description="Community help requests and volunteer tasks",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

register_exception_handlers(app)
app.include_router(api_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)


@app.get("/health/scheduler")
async def scheduler_health_check() -> JSONResponse:
    """Scheduler health check endpoint with job schedule."""
    jobs = {
        job.id: {"name": job.name, "next_run": job.next_run_time.isoformat() if job.next_run_time else None}
        for job in scheduler.get_jobs()
    }
    return JSONResponse(content={"running": scheduler.running, "jobs": jobs}, status_code=200)
