"""
Record-related Pydantic schemas.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class RecordCreateRequest(BaseModel):
    """Request to create a single record."""

    standardid: str = Field(..., min_length=1, max_length=255, description="Unique business key")
    tanggal: date = Field(..., description="Record date (YYYY-MM-DD)")
    actual: str = Field(..., min_length=1, description="Actual value")
    kategori: str = Field(..., min_length=1, max_length=255, description="Category")
    status: str = Field(..., min_length=1, max_length=255, description="Status")
    keterangan: Optional[str] = Field(None, description="Optional notes")

    class Config:
        json_schema_extra = {
            "example": {
                "standardid": "STD-001",
                "tanggal": "2023-05-01",
                "actual": "95.5",
                "kategori": "A",
                "status": "Active",
                "keterangan": "Sample data entry"
            }
        }


class RecordResponse(BaseModel):
    """Stored record, keyed by spreadsheet column names."""

    id: int = Field(..., description="Store-assigned record ID")
    standardid: str = Field(..., description="Unique business key")
    tanggal: date = Field(..., description="Record date")
    actual: str = Field(..., description="Actual value")
    kategori: str = Field(..., description="Category")
    status: str = Field(..., description="Status")
    keterangan: Optional[str] = Field(None, description="Notes")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")
