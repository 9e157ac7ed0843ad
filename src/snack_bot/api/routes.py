"""API routes for the snack bot."""

import asyncio
from typing import Awaitable, Callable
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException

from snack_bot import __version__
from snack_bot.api.models import HealthCheck, RunResponse, StatusResponse
from snack_bot.config import settings
from snack_bot.core.models import RunResult
from snack_bot.core.orchestrator import default_guard, run_once
from snack_bot.utils.logging import get_logger

logger = get_logger(__name__)

RunCallable = Callable[[], Awaitable[RunResult]]

# Create routers
run_router = APIRouter(tags=["run"])
health_router = APIRouter(prefix="/health", tags=["health"])
status_router = APIRouter(prefix="/status", tags=["status"])


def get_runner() -> RunCallable:
    """Run entrypoint used by the HTTP trigger."""
    return run_once


@run_router.get("/", response_model=RunResponse)
async def trigger_run(runner: RunCallable = Depends(get_runner)):
    """
    Run the form submission once and respond when it finishes.

    Automation failures propagate to the application's exception handlers,
    which turn them into error responses.
    """
    logger.info("HTTP run requested", timeout=settings.run_timeout)

    try:
        if settings.run_timeout is not None:
            result = await asyncio.wait_for(runner(), timeout=settings.run_timeout)
        else:
            result = await runner()
    except asyncio.TimeoutError:
        logger.warning("HTTP run timed out; browser left open", timeout=settings.run_timeout)
        raise HTTPException(
            status_code=504,
            detail="Form did not appear in time; browser left open for manual completion"
        )

    return RunResponse(
        success=result.submitted,
        message="Snack bot executed successfully!",
        outcome=result.outcome,
        identity=result.identity,
        identity_verified=result.identity_verified,
        checkbox=result.checkbox.value if result.checkbox else None,
        poll_count=result.poll_count,
        elapsed_seconds=result.elapsed
    )


@status_router.get("", response_model=StatusResponse)
async def run_status():
    """Whether a run currently owns the browser."""
    return StatusResponse(
        running=default_guard.active,
        run_id=default_guard.current_run_id,
        schedule=settings.schedule_cron if settings.schedule_enabled else None
    )


@health_router.get("", response_model=HealthCheck)
async def health_check():
    """Health check endpoint."""
    return HealthCheck(
        status="OK",
        timestamp=datetime.now(timezone.utc),
        version=__version__
    )


all_routers = [run_router, health_router, status_router]
