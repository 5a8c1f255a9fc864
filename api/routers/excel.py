"""
Spreadsheet router - Validate, import and export records as .xlsx.

This module provides the synchronous spreadsheet endpoints. Background
imports with progress tracking live in import_router.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from api.config import settings, XLSX_CONTENT_TYPE
from api.dependencies import get_record_store, read_upload
from api.schemas.excel_schema import ExportRequest, ImportResultResponse, ValidationReportResponse
from services.exceptions import ParseError, StoreError
from services.export_service import export_records, generate_template
from services.import_service import ImportService
from services.record_store import RecordStore
from services.validation_service import ValidationService

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix='/excel', tags=['excel'])


def _xlsx_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=XLSX_CONTENT_TYPE,
        headers={'Content-Disposition': f'attachment; filename="{filename}"'}
    )


@router.post('/validate', response_model=ValidationReportResponse)
async def validate_excel_file(
    raw: bytes = Depends(read_upload),
    store: RecordStore = Depends(get_record_store)
):
    """
    Validate an uploaded spreadsheet without importing it.

    Every row is checked against the field rules and for duplicate
    `standardid` values, both within the file and against stored records.

    **Returns:**
    - `valid`: true when no row has errors
    - `errors`: rows with at least one message, in row order
    - `preview`: the first 10 parsed rows

    **Example:**
    ```bash
    curl -F "file=@records.xlsx" http://localhost:8000/api/excel/validate
    ```
    """
    service = ValidationService(store, preview_rows=settings.PREVIEW_ROWS)

    try:
        report = service.validate_file(raw)
    except ParseError as e:
        logger.error(f"Validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Error validating Excel file. Please check the file format. ({e})"
        )
    except StoreError as e:
        logger.error(f"Validation failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error validating Excel file"
        )

    return ValidationReportResponse(**report.to_dict())


@router.post('/import', response_model=ImportResultResponse)
async def import_excel_file(
    raw: bytes = Depends(read_upload),
    store: RecordStore = Depends(get_record_store)
):
    """
    Import valid rows from an uploaded spreadsheet.

    The file is re-validated against the current store. Rows with field
    errors or an already-used `standardid` are skipped and counted as
    rejected; run `/excel/validate` first for per-row details.

    **Example:**
    ```bash
    curl -F "file=@records.xlsx" http://localhost:8000/api/excel/import
    ```
    """
    service = ImportService(store)

    try:
        result = service.import_file(raw)
    except ParseError as e:
        logger.error(f"Import failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Error importing from Excel. Please check the file format. ({e})"
        )
    except StoreError as e:
        logger.error(f"Import failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error importing from Excel"
        )

    logger.info(f"Import finished: {result.imported} imported, {result.rejected} rejected")
    return ImportResultResponse(**result.to_dict())


@router.post('/export')
async def export_to_excel(
    request: ExportRequest,
    store: RecordStore = Depends(get_record_store)
):
    """
    Export stored records to an .xlsx file.

    Only known columns are exported, in the requested order. `startDate`
    and `endDate` filter on `tanggal` and are both inclusive.

    **Example:**
    ```bash
    curl -X POST http://localhost:8000/api/excel/export \\
         -H "Content-Type: application/json" \\
         -d '{"columns": ["standardid", "tanggal"], "startDate": "2023-01-01"}' \\
         -o exported_data.xlsx
    ```
    """
    try:
        content = export_records(store, request.columns, request.start_date, request.end_date)
    except StoreError as e:
        logger.error(f"Export failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error exporting to Excel"
        )

    return _xlsx_response(content, 'exported_data.xlsx')


@router.get('/template')
async def download_template():
    """
    Download the blank import template.

    The first sheet holds the expected headers and one example row; the
    second sheet explains each column.
    """
    return _xlsx_response(generate_template(), 'import_template.xlsx')
