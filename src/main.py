"""dayplanner - daily planning assistant living in Telegram."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.config import constants, settings
from src.core.db_client import close_connection, init_db
from src.core.logging import configure_logfire, instrument_fastapi
from src.core.scheduler import PLANNING_NOTIFICATIONS_JOB, start_scheduler, stop_scheduler
from src.core.scheduler_tracker import job_tracker


logger = logging.getLogger(__name__)


async def check_telegram_connectivity() -> None:
    """Verify the bot token against the Telegram Bot API.

    Raises:
        ConnectionError: If unable to reach the Bot API or the token is rejected
    """
    try:
        token = settings.require_credential("telegram_bot_token", "Telegram Bot API")
        url = f"{settings.telegram_api_base_url}/bot{token}/getMe"

        async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
            response = await client.get(url)
            if response.is_success:
                logger.info("startup_validation", extra={"service": "telegram", "status": "ok"})
            else:
                raise ConnectionError(f"Telegram returned status {response.status_code}")
    except Exception as e:
        logger.error("startup_validation", extra={"service": "telegram", "status": "failed", "error": str(e)})
        raise ConnectionError(f"Telegram connectivity check failed: {e}") from e


async def validate_startup_configuration() -> None:
    """Validate required credentials and external service connectivity.

    Raises:
        SystemExit: If credentials are missing or Telegram is unreachable
    """
    logger.info("startup_validation_begin")

    try:
        settings.require_credential("telegram_bot_token", "Telegram Bot API")
        logger.info("startup_validation", extra={"stage": "credentials", "status": "ok"})

        await check_telegram_connectivity()

        logger.info("startup_validation_complete", extra={"status": "ok"})

    except (ValueError, ConnectionError) as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\n❌ Startup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so validation logs are captured
    configure_logfire()

    await validate_startup_configuration()

    await init_db()
    logger.info("Database initialized")

    start_scheduler()
    yield
    stop_scheduler()
    await close_connection()


app = FastAPI(
    title="dayplanner",
    description="Daily planning assistant living in Telegram",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=constants.HTTP_OK)


@app.get("/health/scheduler")
async def scheduler_health_check() -> JSONResponse:
    """Scheduler health check endpoint with job statuses."""
    job_statuses = {PLANNING_NOTIFICATIONS_JOB: await job_tracker.get_job_status(PLANNING_NOTIFICATIONS_JOB)}

    dlq = job_tracker.get_dead_letter_queue()

    has_failures = any(status["consecutive_failures"] > 0 for status in job_statuses.values())

    overall_status = "degraded" if has_failures else "healthy"
    if len(dlq) > 0:
        overall_status = "critical"

    return JSONResponse(
        content={
            "status": overall_status,
            "jobs": job_statuses,
            "dead_letter_queue_size": len(dlq),
            "dead_letter_queue": dlq,
        },
        status_code=constants.HTTP_OK if overall_status == "healthy" else constants.HTTP_SERVICE_UNAVAILABLE,
    )
