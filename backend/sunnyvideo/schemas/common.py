"""
Sunny Video Backend: Shared Schemas
=====================================

Error body, health check, and effects catalog models used across routes.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "permission_denied",
            "message": "You can only send videos to users in your contacts",
            "details": null,
            "request_id": "1a2b3c4d"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    Health check response showing service and dependency status.

    Database down → unhealthy (503). Storage not writable → degraded.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    storage: str = Field(description="Video storage: writable, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")


class FilterOption(BaseModel):
    name: str = Field(description="Display name, e.g. 'Hue Rotate'")
    value: str = Field(description="Value sent with a video, e.g. 'hue-rotate'")
    css: str = Field(description="CSS filter function applied by the player")


class EffectsResponse(BaseModel):
    """Filters and emoji overlays available on the recording screen."""
    filters: List[FilterOption]
    emojis: List[str]
    max_recording_seconds: int = Field(description="Recorder stops automatically at this length")
    message_ttl_hours: int = Field(description="Hours a sent video stays available")
