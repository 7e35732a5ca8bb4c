"""
SoulSocial Backend: Shared Response Schemas
=============================================

What:  Pydantic models shared by every router: plain messages, errors, health.
Why:   Clients need one consistent shape for errors regardless of endpoint.
"""

from typing import Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Plain acknowledgement returned by update/delete style endpoints."""
    message: str = Field(description="Human-readable success message")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Fields:
        error: Machine-readable ErrorKind (e.g., "validation_error", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "validation_error",
            "message": "'abc' is not a valid post id",
            "details": {"field": "post_id"},
            "request_id": "1f0c2a9e"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and load balancer health checks.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    realtime_connections: int = Field(description="Currently connected realtime clients")
    uptime_seconds: float = Field(description="Seconds since service started")
