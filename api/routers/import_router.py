"""
Background imports: queue a spreadsheet import as a Celery job, then
query or cancel it.
"""

import json
import logging
import os
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

import redis
from fastapi import APIRouter, UploadFile, File, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from api.config import settings, ensure_temp_dir
from api.dependencies import get_db, verify_file_type, verify_file_size
from api.schemas.job_schema import JobCreateResponse, JobStatusResponse, JobProgressResponse
from backend.models.job import JobRun, JobType, JobStatus
from tasks.import_tasks import import_records_file

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix='/excel/import/jobs', tags=['import'])

redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)


def _store_upload(raw: bytes, filename: Optional[str]) -> str:
    """Write the upload into TEMP_UPLOAD_DIR and return its path."""
    ensure_temp_dir()
    fd, path = tempfile.mkstemp(suffix=Path(filename or 'upload.xlsx').suffix,
                                dir=settings.TEMP_UPLOAD_DIR)
    with os.fdopen(fd, 'wb') as tmp:
        tmp.write(raw)
    return path


def _find_job(db: Session, job_id: str) -> JobRun:
    job_run = db.query(JobRun).filter_by(job_id=job_id).first()
    if job_run is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND,
                            detail=f"Job {job_id} not found")
    return job_run


def _latest_progress(job_run: JobRun) -> Optional[JobProgressResponse]:
    """Cached progress if the worker wrote any recently, else the last stored row."""
    try:
        cached = redis_client.get(f'job_progress:{job_run.job_id}')
        if cached:
            return JobProgressResponse(**json.loads(cached))
    except redis.RedisError as e:
        logger.warning(f"Could not fetch progress from Redis for {job_run.job_id}: {e}")

    if not job_run.progress:
        return None
    last = job_run.progress[-1]
    return JobProgressResponse(stage=last.stage, percent=float(last.percent),
                               message=last.message or '', timestamp=last.timestamp)


@router.post('', response_model=JobCreateResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_import_job(
    request: Request,
    file: UploadFile = File(..., description="Spreadsheet to import (.xlsx)"),
    db: Session = Depends(get_db)
):
    """
    Upload a spreadsheet and import it in the background.

    Runs the same import as `POST /excel/import` in a worker. Follow the job
    with `GET status_url` or the WebSocket at `websocket_url`.
    """
    client = request.client.host if request.client else None
    logger.info(f"Import job request from {client}: {file.filename}")
    verify_file_type(file.filename, file.content_type)

    temp_path = None
    try:
        raw = await file.read()
        verify_file_size(len(raw))
        temp_path = _store_upload(raw, file.filename)

        job_id = str(uuid.uuid4())
        db.add(JobRun(
            job_id=job_id,
            job_type=JobType.IMPORT.value,
            status=JobStatus.PENDING.value,
            params={'filename': file.filename, 'file_size_kb': round(len(raw) / 1024, 1)},
            created_by=client
        ))
        db.commit()

        # Job row exists before the worker can pick up the task
        import_records_file.apply_async(args=[temp_path], task_id=job_id)
        logger.info(f"Queued import task {job_id} for {file.filename} ({temp_path})")

    except Exception as e:
        if temp_path and os.path.exists(temp_path):
            os.unlink(temp_path)
        if isinstance(e, HTTPException):
            raise
        logger.error(f"Upload failed: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail=f"Upload failed: {e}")

    finally:
        await file.close()

    return JobCreateResponse(
        job_id=job_id,
        status_url=f"{settings.API_PREFIX}/excel/import/jobs/{job_id}",
        websocket_url=f"/ws/import/{job_id}"
    )


@router.get('/{job_id}', response_model=JobStatusResponse)
async def get_job_status(job_id: str, db: Session = Depends(get_db)):
    """
    Status of an import job: `pending`, `processing`, `success` (with
    `result`), `failed` (with `error`) or `cancelled`.
    """
    job_run = _find_job(db, job_id)
    return JobStatusResponse(
        job_id=job_run.job_id,
        job_type=job_run.job_type,
        status=job_run.status,
        created_at=job_run.created_at,
        started_at=job_run.started_at,
        completed_at=job_run.completed_at,
        progress=_latest_progress(job_run),
        result=job_run.result,
        error=job_run.error,
        created_by=job_run.created_by
    )


@router.delete('/{job_id}', status_code=status.HTTP_204_NO_CONTENT)
async def cancel_job(job_id: str, db: Session = Depends(get_db)):
    """Cancel a pending or processing job; finished jobs give 400."""
    job_run = _find_job(db, job_id)

    if job_run.is_complete():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST,
                            detail=f"Cannot cancel job with status '{job_run.status}'")

    now = datetime.utcnow()
    job_run.status = JobStatus.CANCELLED.value
    job_run.completed_at = now
    job_run.error = {'error': 'Job cancelled by user', 'cancelled_at': now.isoformat()}
    db.commit()

    from tasks.celery_app import celery_app
    try:
        celery_app.control.revoke(job_id, terminate=True)
    except Exception as e:
        logger.warning(f"Could not revoke Celery task {job_id}: {e}")

    logger.info(f"Job {job_id} cancelled")
