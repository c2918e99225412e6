"""
Memeflix Backend — Shared Response Schemas
===========================================

What:  Response models shared by every router: the error envelope, the
       health payload and a bare message body.
Why:   Clients need one error structure to parse programmatically,
       whichever endpoint failed.
"""

from typing import Optional

from pydantic import BaseModel, Field

# Largest id or page number accepted from a request; SQLite INTEGER is
# 64-bit, and OFFSET = (page - 1) * limit must stay inside it.
MAX_ID = 2**31 - 1
# Largest page or row size a single request may ask for
MAX_LIMIT = 1000


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "not_found",
            "message": "meme with ID '42' was not found",
            "details": {"resource": "meme", "resource_id": "42"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and container health checks.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    media: str = Field(description="Media directory: available, missing")
    uptime_seconds: float = Field(description="Seconds since service started")
