"""
WebSocket router - live progress for background imports.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import redis
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from api.config import settings
from api.dependencies import get_db
from backend.models.job import JobRun, JobStatus

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=['websocket'])

redis_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

POLL_INTERVAL_SECONDS = 0.5


def read_cached_progress(job_id: str) -> Optional[Dict[str, Any]]:
    """Latest progress entry from Redis, or None if absent or unreadable."""
    try:
        cached = redis_client.get(f'job_progress:{job_id}')
    except redis.RedisError as e:
        logger.warning(f"Error reading progress from Redis for {job_id}: {e}")
        return None
    return json.loads(cached) if cached else None


def final_message(job_run: JobRun) -> Dict[str, Any]:
    """Closing message for a finished job: result on success, error otherwise."""
    message = {
        'job_id': job_run.job_id,
        'status': job_run.status,
        'completed_at': job_run.completed_at.isoformat() if job_run.completed_at else None
    }
    if job_run.status == JobStatus.SUCCESS:
        message['result'] = job_run.result
    else:
        message['error'] = job_run.error
    return message


@router.websocket('/ws/import/{job_id}')
async def websocket_import_progress(
    websocket: WebSocket,
    job_id: str,
    db: Session = Depends(get_db)
):
    """
    Stream progress for one import job until it finishes.

    Messages carry `job_id` and `status`, plus `progress`
    (`stage`, `percent`, `message`, `timestamp`) whenever it changes. The last
    message has `completed_at` and either `result` (`{imported, rejected}`)
    or `error`; the server then closes the socket. Unknown jobs get an
    `error` message and close code 1008.
    """
    await websocket.accept()
    logger.info(f"WebSocket connection established for job {job_id}")

    try:
        job_run = db.query(JobRun).filter_by(job_id=job_id).first()
        if job_run is None:
            await websocket.send_json({'job_id': job_id, 'error': f'Job {job_id} not found'})
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        last_status = job_run.status
        last_progress = None
        await websocket.send_json({
            'job_id': job_id,
            'status': last_status,
            'message': 'Connected to job progress stream'
        })

        while not job_run.is_complete():
            await asyncio.sleep(POLL_INTERVAL_SECONDS)
            db.refresh(job_run)

            progress = read_cached_progress(job_id)
            if job_run.status != last_status or (progress and progress != last_progress):
                update = {'job_id': job_id, 'status': job_run.status}
                if progress:
                    update['progress'] = progress
                await websocket.send_json(update)
                last_status, last_progress = job_run.status, progress

        await websocket.send_json(final_message(job_run))
        await websocket.close()
        logger.info(f"Job {job_id} finished with status {job_run.status}; WebSocket closed")

    except WebSocketDisconnect:
        logger.info(f"WebSocket client disconnected from job {job_id}")
