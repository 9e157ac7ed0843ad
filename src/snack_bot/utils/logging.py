"""Structured logging configuration using structlog."""

import logging
from typing import Any, Dict

import structlog
from rich.logging import RichHandler

from snack_bot.config import settings


def configure_logging() -> None:
    """Configure structured logging with rich output."""
    
    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.log_level.upper()),
        handlers=[RichHandler(rich_tracebacks=True, markup=True)],
    )
    
    # Configure structlog
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper())
        ),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_session_state(state: Any) -> Dict[str, Any]:
    """Create a log context for an orchestrator session."""
    return {
        "session": {
            "phase": getattr(state.phase, "value", state.phase),
            "poll_count": state.poll_count,
            "elapsed_seconds": round(state.elapsed, 1),
            "identity": state.last_identity,
            "identity_verified": state.identity_verified,
        }
    }
