"""Main FastAPI application for the snack bot."""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Any
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from snack_bot import __version__
from snack_bot.config import settings
from snack_bot.utils.logging import configure_logging, get_logger
from snack_bot.api.routes import all_routers
from snack_bot.api.models import ErrorResponse
from snack_bot.core.errors import AutomationError, RunInProgressError
from snack_bot.core.orchestrator import run_once
from snack_bot.core.scheduler import create_schedule_runner

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Global application state
app_state: Dict[str, Any] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting snack bot API", port=settings.port)
    
    if settings.schedule_enabled:
        runner = create_schedule_runner(
            settings.schedule_cron,
            run_once,
            run_timeout=settings.run_timeout
        )
        app_state["schedule_runner"] = runner
        app_state["schedule_task"] = asyncio.create_task(runner.run_forever())
        logger.info("Scheduler started", cron=settings.schedule_cron)
    
    yield
    
    # Shutdown
    logger.info("Shutting down snack bot API")
    
    runner = app_state.pop("schedule_runner", None)
    task = app_state.pop("schedule_task", None)
    if runner:
        runner.stop()
    if task:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Scheduler stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    
    app = FastAPI(
        title="Snack Bot API",
        description="Triggers the snack order form submission",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan
    )
    
    # Add middleware
    setup_middleware(app)
    
    # Add exception handlers
    setup_exception_handlers(app)
    
    # Include routers
    for router in all_routers:
        app.include_router(router)
    
    return app


def setup_middleware(app: FastAPI) -> None:
    """Setup application middleware."""
    
    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = asyncio.get_event_loop().time()
        
        # Log request
        logger.info(
            "Request started",
            method=request.method,
            url=str(request.url),
            client_ip=request.client.host if request.client else None
        )
        
        response = await call_next(request)
        
        # Log response
        logger.info(
            "Request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            duration_seconds=asyncio.get_event_loop().time() - start_time
        )
        
        return response


def _error_name(exc: Exception) -> str:
    name = type(exc).__name__
    return name[: -len("Error")] if name.endswith("Error") else name


def setup_exception_handlers(app: FastAPI) -> None:
    """Setup global exception handlers."""
    
    @app.exception_handler(AutomationError)
    async def automation_exception_handler(request: Request, exc: AutomationError):
        status_code = 409 if isinstance(exc, RunInProgressError) else 500
        logger.error(
            "Run failed",
            error=str(exc),
            error_type=type(exc).__name__,
            status_code=status_code
        )
        
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=_error_name(exc),
                message=f"Error running snack bot: {exc}",
                timestamp=datetime.now(timezone.utc)
            ).model_dump(mode="json")
        )
    
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            url=str(request.url)
        )
        
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error="HTTPException",
                message=str(exc.detail),
                timestamp=datetime.now(timezone.utc)
            ).model_dump(mode="json")
        )
    
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(
            "Validation error",
            errors=exc.errors(),
            url=str(request.url)
        )
        
        return JSONResponse(
            status_code=422,
            content=ErrorResponse(
                error="ValidationError",
                message="Request validation failed",
                timestamp=datetime.now(timezone.utc)
            ).model_dump(mode="json")
        )
    
    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            url=str(request.url)
        )
        
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="InternalServerError",
                message="An unexpected error occurred",
                details={"error_type": type(exc).__name__} if settings.debug else None,
                timestamp=datetime.now(timezone.utc)
            ).model_dump(mode="json")
        )


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    
    uvicorn.run(
        "snack_bot.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_config=None  # Use our custom logging
    )
