"""API models for request/response schemas."""

from typing import Dict, Optional, Any
from pydantic import BaseModel, Field
from datetime import datetime

from snack_bot.core.models import RunOutcome


class RunResponse(BaseModel):
    """Result of an HTTP-triggered run."""
    success: bool = Field(..., description="Whether the form was submitted")
    message: str = Field(..., description="Human-readable result")
    outcome: RunOutcome = Field(..., description="How the run ended")
    identity: Optional[str] = Field(None, description="Account observed during login")
    identity_verified: bool = Field(False, description="Whether the account is in the organization domain")
    checkbox: Optional[str] = Field(None, description="Which checkbox was clicked")
    poll_count: int = Field(0, description="Poll iterations before the form appeared")
    elapsed_seconds: float = Field(0.0, description="Run duration")


class StatusResponse(BaseModel):
    """Whether a run currently owns the browser."""
    running: bool = Field(..., description="A run is in progress")
    run_id: Optional[str] = Field(None, description="Identifier of the active run")
    schedule: Optional[str] = Field(None, description="Cron expression of the scheduled trigger, if enabled")


class HealthCheck(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Check timestamp")
    version: str = Field(..., description="Service version")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(..., description="Error timestamp")
