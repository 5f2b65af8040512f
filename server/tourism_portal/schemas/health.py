"""Health-related Pydantic schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Health status enumeration."""
    OK = "OK"
    DEGRADED = "DEGRADED"


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: HealthStatus = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current server time (ISO 8601)")
    environment: str = Field(..., description="Deployment environment")
    database: bool = Field(..., description="Whether the database answered a probe query")
    version: str = Field("1.0.0", description="API version")


class ServiceInfo(BaseModel):
    """Root endpoint payload."""

    message: str
    version: str
    environment: str
