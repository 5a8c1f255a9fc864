"""
Schemas for background import jobs.

Status and type values are the enums stored on JobRun rows.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from backend.models.job import JobStatus, JobType


class JobProgressResponse(BaseModel):
    """Latest progress reported by the worker."""

    stage: str = Field(..., description="parsing, checking, saving, complete or failed")
    percent: float = Field(..., ge=0, le=100)
    message: str
    timestamp: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "stage": "checking",
                "percent": 45.0,
                "message": "Checking row 150/300",
                "timestamp": "2025-10-15T12:30:45Z"
            }
        }


class JobStatusResponse(BaseModel):
    """A job row plus its most recent progress entry."""

    job_id: str = Field(..., description="Celery task id")
    job_type: JobType
    status: JobStatus
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    progress: Optional[JobProgressResponse] = None
    result: Optional[Dict[str, Any]] = Field(None, description="{imported, rejected} once successful")
    error: Optional[Dict[str, Any]] = Field(None, description="Failure details")
    created_by: Optional[str] = None

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "job_id": "abc-123-def-456",
                "job_type": "import",
                "status": "success",
                "created_at": "2025-10-15T12:00:00Z",
                "started_at": "2025-10-15T12:00:05Z",
                "completed_at": "2025-10-15T12:00:09Z",
                "progress": {
                    "stage": "complete",
                    "percent": 100.0,
                    "message": "Imported 42 records, rejected 3",
                    "timestamp": "2025-10-15T12:00:09Z"
                },
                "result": {"imported": 42, "rejected": 3},
                "error": None,
                "created_by": "127.0.0.1"
            }
        }


class JobCreateResponse(BaseModel):
    """Returned with 202 when an import is queued."""

    job_id: str
    message: str = "Import job started"
    status_url: str
    websocket_url: str

    class Config:
        json_schema_extra = {
            "example": {
                "job_id": "abc-123-def-456",
                "message": "Import job started",
                "status_url": "/api/excel/import/jobs/abc-123-def-456",
                "websocket_url": "/ws/import/abc-123-def-456"
            }
        }
