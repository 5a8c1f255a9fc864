"""
Pydantic request and response models for the API.
"""

from api.schemas.common import ErrorResponse, HealthCheckResponse
from api.schemas.job_schema import JobProgressResponse, JobStatusResponse, JobCreateResponse
from api.schemas.excel_schema import (
    FieldErrorResponse, ValidationReportResponse, ImportResultResponse, ExportRequest
)
from api.schemas.record_schema import RecordCreateRequest, RecordResponse

__all__ = [
    'ErrorResponse',
    'HealthCheckResponse',
    'JobProgressResponse',
    'JobStatusResponse',
    'JobCreateResponse',
    'FieldErrorResponse',
    'ValidationReportResponse',
    'ImportResultResponse',
    'ExportRequest',
    'RecordCreateRequest',
    'RecordResponse',
]
