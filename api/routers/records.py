"""
Records router - List and create stored records.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_record_store
from api.schemas.record_schema import RecordCreateRequest, RecordResponse
from services.exceptions import DuplicateKeyError, StoreError
from services.record_store import NewRecord, RecordStore

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix='/records', tags=['records'])


@router.get('', response_model=List[RecordResponse])
async def list_records(store: RecordStore = Depends(get_record_store)):
    """
    List all stored records ordered by ID.

    **Example:**
    ```bash
    curl http://localhost:8000/api/records
    ```
    """
    try:
        records = store.list_all()
    except StoreError as e:
        logger.error(f"Error fetching records: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching records"
        )

    return [RecordResponse(**record.to_dict()) for record in records]


@router.post('', response_model=RecordResponse, status_code=status.HTTP_201_CREATED)
async def create_record(
    request: RecordCreateRequest,
    store: RecordStore = Depends(get_record_store)
):
    """
    Create a single record.

    **Returns:**
    - 201 with the stored record
    - 409 if the `standardid` is already in use
    """
    new_record = NewRecord(
        standard_id=request.standardid,
        date=request.tanggal,
        actual_value=request.actual,
        category=request.kategori,
        status=request.status,
        note=request.keterangan
    )

    try:
        record = store.create(new_record)
    except DuplicateKeyError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )
    except StoreError as e:
        logger.error(f"Error creating record: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error creating record"
        )

    logger.info(f"Created record {record.id} ({record.standard_id})")
    return RecordResponse(**record.to_dict())
