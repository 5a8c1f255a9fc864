"""
Dependency injection utilities for FastAPI.

This module provides reusable dependencies for database sessions,
the record store, and upload checks.
"""

import logging
from pathlib import Path
from typing import Generator, Optional

from fastapi import Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from api.config import settings
from backend.database import SessionLocal
from services.record_store import RecordStore, SqlAlchemyRecordStore

logger = logging.getLogger(__name__)


def get_db() -> Generator[Session, None, None]:
    """
    Get database session dependency.

    Yields database session and ensures it's closed after use.

    Usage:
        @app.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            # Use db session
            pass
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_record_store(db: Session = Depends(get_db)) -> RecordStore:
    """Record store bound to the request's database session."""
    return SqlAlchemyRecordStore(db)


def verify_file_size(file_size: int) -> bool:
    """
    Verify uploaded file size is within limit.

    Args:
        file_size: File size in bytes

    Returns:
        True if size is acceptable

    Raises:
        HTTPException: If file is too large
    """
    max_size_bytes = settings.max_file_size_bytes

    if file_size > max_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size ({file_size / 1024 / 1024:.1f} MB) exceeds maximum allowed "
                   f"({settings.MAX_FILE_SIZE_MB} MB)"
        )

    return True


def verify_file_type(filename: str, content_type: str) -> bool:
    """
    Verify uploaded file is an .xlsx workbook.

    The mimetype decides; clients that send a generic mimetype are accepted
    when the filename has an allowed extension.

    Raises:
        HTTPException: If the file is not an .xlsx workbook
    """
    if content_type in settings.ALLOWED_CONTENT_TYPES:
        return True

    generic = content_type in (None, '', 'application/octet-stream')
    ext = Path(filename or '').suffix.lower()
    if generic and ext in [e.lower() for e in settings.ALLOWED_EXTENSIONS]:
        return True

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Only .xlsx files are allowed"
    )


async def read_upload(
    file: Optional[UploadFile] = File(None, description="Spreadsheet to upload (.xlsx)")
) -> bytes:
    """
    Read and check an uploaded spreadsheet.

    Returns:
        Raw file contents

    Raises:
        HTTPException: 400 if no file or wrong type, 413 if too large
    """
    if file is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded"
        )

    try:
        verify_file_type(file.filename, file.content_type)
        raw = await file.read()
    finally:
        await file.close()

    verify_file_size(len(raw))
    logger.info(f"Received upload {file.filename} ({len(raw) / 1024:.1f} KB)")
    return raw
