"""
SpotMap Backend: Shared Response Schemas
=========================================

What:  Error and health payloads shared by every router.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "Spot with ID '42' was not found",
            "details": {"resource": "spot", "resource_id": "42"},
            "request_id": "550e8400"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    location: str = Field(description="Location lookup: enabled, disabled")
    uptime_seconds: float = Field(description="Seconds since service started")


class DirectionsResponse(BaseModel):
    url: str = Field(description="Directions link to the destination")
