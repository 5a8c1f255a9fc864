"""
Response bodies shared by every router: errors and the health check.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of every non-validation error the API returns."""

    error: str
    detail: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    path: Optional[str] = Field(None, description="Request URL")

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Internal server error",
                "detail": None,
                "timestamp": "2025-10-15T12:00:00Z",
                "path": "/api/excel/import"
            }
        }


class HealthCheckResponse(BaseModel):
    """Overall status (healthy, degraded or unhealthy) plus each dependency."""

    status: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    version: str
    database: str = Field(..., description="connected or disconnected")
    redis: str = Field(..., description="connected or disconnected")
    celery: str = Field(..., description="Worker count, 'no workers' or 'unknown'")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2025-10-15T12:00:00Z",
                "version": "1.0.0",
                "database": "connected",
                "redis": "connected",
                "celery": "active (2 workers)"
            }
        }
