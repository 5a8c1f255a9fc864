"""
Spreadsheet-related Pydantic schemas.

This module contains schemas for validation reports, import results and
export requests.
"""

from datetime import date
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class FieldErrorResponse(BaseModel):
    """Errors found on one row of the uploaded file."""

    row: int = Field(..., ge=0, description="0-based row position in the parsed file")
    messages: List[str] = Field(..., description="Error messages, schema errors first")


class ValidationReportResponse(BaseModel):
    """Result of validating an uploaded spreadsheet."""

    valid: bool = Field(..., description="True when no row has errors")
    errors: List[FieldErrorResponse] = Field(default_factory=list, description="Rows with errors, in row order")
    preview: List[Dict[str, Any]] = Field(default_factory=list, description="First parsed rows, unmodified")

    class Config:
        json_schema_extra = {
            "example": {
                "valid": False,
                "errors": [
                    {
                        "row": 1,
                        "messages": [
                            "tanggal: Invalid date format. Use YYYY-MM-DD",
                            "Duplicate standardid 'STD-001' within the file."
                        ]
                    }
                ],
                "preview": [
                    {"standardid": "STD-001", "tanggal": "2023-05-01", "actual": "95.5",
                     "kategori": "A", "status": "Active", "keterangan": None}
                ]
            }
        }


class ImportResultResponse(BaseModel):
    """Counts from an import call."""

    imported: int = Field(..., ge=0, description="Records created")
    rejected: int = Field(..., ge=0, description="Rows skipped (schema errors or duplicate standardid)")

    class Config:
        json_schema_extra = {
            "example": {
                "imported": 42,
                "rejected": 3
            }
        }


class ExportRequest(BaseModel):
    """Export filter: columns to include and optional inclusive date range."""

    columns: List[str] = Field(..., description="Column names to export, in order")
    start_date: Optional[date] = Field(None, alias="startDate", description="Earliest tanggal (inclusive)")
    end_date: Optional[date] = Field(None, alias="endDate", description="Latest tanggal (inclusive)")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "columns": ["standardid", "tanggal", "actual", "status"],
                "startDate": "2023-01-01",
                "endDate": "2023-12-31"
            }
        }
