"""
SnipShare Backend: Shared Pydantic Schemas
============================================

What:  Schemas used by more than one adapter: field errors, error envelopes,
       plain message responses and the health check.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    """
    One failed check on one input field.

    Produced by the validation functions and carried by ValidationError.
    The submitted value is deliberately absent (it may be a password).
    """
    field: str = Field(description="Name of the offending input field")
    message: str = Field(description="Human-readable description of the problem")


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        errors: Field-level problems (validation failures only)
        details: Optional extra context
        request_id: Correlation ID for tracing this error in server logs
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    errors: Optional[List[FieldError]] = Field(default=None, description="Field-level errors")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    message: str = Field(description="Human-readable outcome")


class HealthResponse(BaseModel):
    """
    Health check response showing service and dependency status.

    The database is critical (unhealthy when unreachable); the quote API only
    feeds the home page, so its failure marks the service degraded.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    quote_api: str = Field(description="Quote API status: available, circuit_open, circuit_half_open")
    active_sessions: int = Field(description="Unexpired sessions in the session store")
    uptime_seconds: float = Field(description="Seconds since service started")
