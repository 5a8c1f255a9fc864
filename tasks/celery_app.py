"""
Celery application for background spreadsheet imports.

Broker and result backend come from the shared settings (Redis by default).
Start a worker with:

    celery -A tasks.celery_app worker -Q import,default --loglevel=info
"""

from celery import Celery
from kombu import Exchange, Queue

from api.config import settings

IMPORT_QUEUE = 'import'
DEFAULT_QUEUE = 'default'

celery_app = Celery(
    'spreadsheet_records',
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=['tasks.import_tasks']
)

celery_app.conf.update(
    task_serializer='json',
    result_serializer='json',
    accept_content=['json'],
    timezone='UTC',
    enable_utc=True,

    # Imports are bounded by MAX_FILE_SIZE_MB, so a few minutes is plenty
    task_track_started=True,
    task_time_limit=300,
    task_soft_time_limit=270,

    # One import at a time per worker process
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=200,
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    result_expires=settings.PROGRESS_CACHE_EXPIRY,
    result_extended=True,
    worker_send_task_events=True,
    task_send_sent_event=True,

    task_default_queue=DEFAULT_QUEUE,
    task_default_exchange=DEFAULT_QUEUE,
    task_default_routing_key=DEFAULT_QUEUE,
    task_queues=(
        Queue(DEFAULT_QUEUE, Exchange(DEFAULT_QUEUE), routing_key=DEFAULT_QUEUE),
        Queue(IMPORT_QUEUE, Exchange(IMPORT_QUEUE), routing_key='import.#'),
    ),
    task_routes={
        'tasks.import_tasks.import_records_file': {
            'queue': IMPORT_QUEUE,
            'routing_key': 'import.records'
        },
    },
    beat_schedule={
        'cleanup-old-jobs': {
            'task': 'tasks.import_tasks.cleanup_old_jobs',
            'schedule': 24 * 3600.0,
        },
    },
)


if __name__ == '__main__':
    celery_app.start()
