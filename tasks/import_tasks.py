"""
Celery tasks for background spreadsheet imports.

Progress goes to Redis under `job_progress:{job_id}` for live readers and
to job_progress rows for history. The JobRun row carries the outcome.
"""

import json
import logging
import os
import traceback
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import redis
from celery import Task
from sqlalchemy.orm import Session

from api.config import settings
from backend.database import SessionLocal
from backend.models.job import FINISHED_STATUSES, JobRun, JobProgress, JobStatus
from services.import_service import ImportService
from services.record_store import SqlAlchemyRecordStore
from tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)


def get_db_session() -> Session:
    return SessionLocal()


class ImportTask(Task):
    """Task base that reports progress and keeps the JobRun row current."""

    def on_progress(self, stage: str, percent: float, message: str):
        """Progress callback handed to ImportService."""
        job_id = self.request.id
        entry = {
            'stage': stage,
            'percent': float(percent),
            'message': message,
            'timestamp': datetime.utcnow().isoformat()
        }

        try:
            redis_client.setex(f'job_progress:{job_id}', settings.PROGRESS_CACHE_EXPIRY,
                               json.dumps(entry))
            with get_db_session() as session:
                session.add(JobProgress(job_id=job_id, stage=stage,
                                        percent=round(percent, 2), message=message))
                session.commit()
        except Exception as e:
            # Progress is best-effort; the import itself carries on
            logger.error(f"Error updating progress for {job_id}: {e}")
            return

        logger.debug(f"Progress {job_id}: {stage} ({percent}%)")

    def update_job_status(self, job_id: str, status: str, **fields):
        """Set the status and any other JobRun columns given as keywords."""
        with get_db_session() as session:
            job_run = session.query(JobRun).filter_by(job_id=job_id).first()
            if job_run is None:
                logger.warning(f"Job {job_id} not found in database")
                return

            job_run.status = status
            for key, value in fields.items():
                if hasattr(job_run, key):
                    setattr(job_run, key, value)
            session.commit()

        logger.info(f"Job {job_id} status updated to {status}")

    def job_status(self, job_id: str) -> Optional[str]:
        with get_db_session() as session:
            job_run = session.query(JobRun).filter_by(job_id=job_id).first()
            return job_run.status if job_run else None


def _remove_upload(file_path: str):
    """Delete file_path, but only if it lives in TEMP_UPLOAD_DIR."""
    upload_dir = os.path.abspath(settings.TEMP_UPLOAD_DIR)
    if os.path.dirname(os.path.abspath(file_path)) != upload_dir:
        return
    try:
        os.remove(file_path)
    except OSError as e:
        logger.warning(f"Could not remove temp file {file_path}: {e}")


@celery_app.task(base=ImportTask, bind=True, name='tasks.import_tasks.import_records_file')
def import_records_file(self, file_path: str) -> Dict[str, Any]:
    """
    Import the .xlsx at file_path and return `{'imported': n, 'rejected': m}`.

    A job cancelled while still queued returns `{}` without importing. The
    uploaded file is removed whatever the outcome.
    """
    job_id = self.request.id
    logger.info(f"Starting import task {job_id} for file: {file_path}")

    try:
        if self.job_status(job_id) == JobStatus.CANCELLED:
            logger.info(f"Job {job_id} was cancelled before it started")
            return {}

        self.update_job_status(job_id, JobStatus.PROCESSING.value, started_at=datetime.utcnow())

        with open(file_path, 'rb') as f:
            raw = f.read()

        with get_db_session() as session:
            service = ImportService(SqlAlchemyRecordStore(session),
                                    progress_callback=self.on_progress)
            result = service.import_file(raw).to_dict()

        self.update_job_status(job_id, JobStatus.SUCCESS.value,
                               completed_at=datetime.utcnow(), result=result)
        logger.info(f"Import task {job_id} completed: {result}")
        return result

    except Exception as e:
        logger.error(f"Import task {job_id} failed: {e}", exc_info=True)
        self.update_job_status(
            job_id,
            JobStatus.FAILED.value,
            completed_at=datetime.utcnow(),
            error={
                'error': str(e),
                'error_type': type(e).__name__,
                'traceback': traceback.format_exc(),
                'file_path': file_path
            }
        )
        self.on_progress('failed', 0, f"Import failed: {e}")
        raise

    finally:
        _remove_upload(file_path)


@celery_app.task(name='tasks.import_tasks.cleanup_old_jobs')
def cleanup_old_jobs(days_to_keep: int = None) -> Dict[str, Any]:
    """Delete finished jobs (and their progress) completed more than days_to_keep days ago."""
    days_to_keep = days_to_keep or settings.JOB_RETENTION_DAYS
    cutoff_date = datetime.utcnow() - timedelta(days=days_to_keep)

    with get_db_session() as session:
        old_job_ids = [job_id for (job_id,) in session.query(JobRun.job_id).filter(
            JobRun.completed_at < cutoff_date,
            JobRun.status.in_([s.value for s in FINISHED_STATUSES])
        )]

        deleted_progress = deleted_jobs = 0
        if old_job_ids:
            deleted_progress = session.query(JobProgress).filter(
                JobProgress.job_id.in_(old_job_ids)
            ).delete(synchronize_session=False)
            deleted_jobs = session.query(JobRun).filter(
                JobRun.job_id.in_(old_job_ids)
            ).delete(synchronize_session=False)
        session.commit()

    logger.info(f"Cleanup removed {deleted_jobs} jobs and {deleted_progress} progress "
                f"entries older than {days_to_keep} days")
    return {
        'deleted_jobs': deleted_jobs,
        'deleted_progress': deleted_progress,
        'cutoff_date': cutoff_date.isoformat()
    }
