"""
Tests for background import jobs: the API endpoints and the Celery task.
"""

import json
import os
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from api.config import XLSX_CONTENT_TYPE, settings
from api.dependencies import get_db
from api.main import app
from api.routers import import_router
from backend.models.job import JobProgress, JobRun, JobStatus, JobType
from backend.models.schema import Record
from tasks import import_tasks
from tasks.celery_app import celery_app
from tests.conftest import build_workbook, data_row


class FakeRedis:
    """Minimal stand-in for the progress cache."""

    def __init__(self):
        self.values = {}

    def setex(self, key, ttl, value):
        self.values[key] = value

    def get(self, key):
        return self.values.get(key)


class FakeTask:
    """Records apply_async calls instead of queueing."""

    def __init__(self):
        self.calls = []

    def apply_async(self, args=None, task_id=None):
        self.calls.append({'args': args, 'task_id': task_id})


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, 'TEMP_UPLOAD_DIR', str(tmp_path))
    return tmp_path


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(import_router, 'redis_client', fake)
    monkeypatch.setattr(import_tasks, 'redis_client', fake)
    return fake


@pytest.fixture
def fake_task(monkeypatch):
    fake = FakeTask()
    monkeypatch.setattr(import_router, 'import_records_file', fake)
    return fake


@pytest.fixture
def client(session, upload_dir, fake_redis, fake_task):
    app.dependency_overrides[get_db] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def task_sessions(session_factory, monkeypatch):
    """Make the Celery task use the test database."""
    monkeypatch.setattr(import_tasks, 'get_db_session', session_factory)
    return session_factory


def add_job(session, job_id='job-1', status=JobStatus.PENDING.value, **fields):
    job = JobRun(job_id=job_id, job_type=JobType.IMPORT.value, status=status,
                 params={}, **fields)
    session.add(job)
    session.commit()
    return job


def run_task(task, *args, task_id):
    """Run a bound task body in-process with the given task id."""
    task.push_request(id=task_id)
    try:
        return task.run(*args)
    finally:
        task.pop_request()


class TestStartImportJob:
    """POST /api/excel/import/jobs"""

    def test_start_job(self, client, session, fake_task, upload_dir):
        """The upload is stored, a job row created and the task queued."""
        raw = build_workbook([data_row('A')])

        response = client.post('/api/excel/import/jobs',
                               files={'file': ('records.xlsx', raw, XLSX_CONTENT_TYPE)})

        assert response.status_code == 202
        body = response.json()
        job_id = body['job_id']
        assert body['status_url'] == f'/api/excel/import/jobs/{job_id}'
        assert body['websocket_url'] == f'/ws/import/{job_id}'

        job = session.query(JobRun).filter_by(job_id=job_id).one()
        assert job.status == JobStatus.PENDING.value
        assert job.params['filename'] == 'records.xlsx'

        assert len(fake_task.calls) == 1
        call = fake_task.calls[0]
        assert call['task_id'] == job_id
        temp_path = call['args'][0]
        assert os.path.dirname(temp_path) == str(upload_dir)
        with open(temp_path, 'rb') as f:
            assert f.read() == raw

    def test_wrong_content_type(self, client, fake_task):
        """Non-xlsx uploads are not queued."""
        response = client.post('/api/excel/import/jobs',
                               files={'file': ('records.csv', b'a,b', 'text/csv')})

        assert response.status_code == 400
        assert fake_task.calls == []


class TestJobStatus:
    """GET and DELETE /api/excel/import/jobs/{job_id}"""

    def test_unknown_job(self, client):
        """Unknown ids give 404."""
        assert client.get('/api/excel/import/jobs/nope').status_code == 404

    def test_progress_from_cache(self, client, session, fake_redis):
        """Live progress is read from the cache when present."""
        add_job(session, status=JobStatus.PROCESSING.value)
        fake_redis.setex('job_progress:job-1', 60, json.dumps({
            'stage': 'checking', 'percent': 40.0, 'message': 'Checking row 50/100',
            'timestamp': datetime.utcnow().isoformat()
        }))

        body = client.get('/api/excel/import/jobs/job-1').json()

        assert body['status'] == 'processing'
        assert body['progress']['stage'] == 'checking'
        assert body['progress']['percent'] == 40.0

    def test_progress_from_database(self, client, session):
        """Without cached progress the latest stored entry is used."""
        add_job(session, status=JobStatus.SUCCESS.value, result={'imported': 3, 'rejected': 1})
        session.add(JobProgress(job_id='job-1', stage='complete', percent=100,
                                message='Imported 3 records, rejected 1'))
        session.commit()

        body = client.get('/api/excel/import/jobs/job-1').json()

        assert body['status'] == 'success'
        assert body['result'] == {'imported': 3, 'rejected': 1}
        assert body['progress']['stage'] == 'complete'

    def test_cancel_pending_job(self, client, session, monkeypatch):
        """Pending jobs can be cancelled and the task is revoked."""
        revoked = []
        monkeypatch.setattr(celery_app.control, 'revoke',
                            lambda job_id, terminate=False: revoked.append(job_id))
        add_job(session)

        response = client.delete('/api/excel/import/jobs/job-1')

        assert response.status_code == 204
        session.expire_all()
        assert session.query(JobRun).filter_by(job_id='job-1').one().status == 'cancelled'
        assert revoked == ['job-1']

    def test_cancel_finished_job(self, client, session):
        """Completed jobs cannot be cancelled."""
        add_job(session, status=JobStatus.SUCCESS.value)

        assert client.delete('/api/excel/import/jobs/job-1').status_code == 400


class TestImportRecordsTask:
    """tasks.import_tasks.import_records_file"""

    def test_success(self, session, task_sessions, fake_redis, upload_dir):
        """The task imports the file and stores the ImportResult."""
        add_job(session)
        path = upload_dir / 'upload.xlsx'
        path.write_bytes(build_workbook([data_row('A'), data_row('B'), data_row('A')]))

        result = run_task(import_tasks.import_records_file, str(path), task_id='job-1')

        assert result == {'imported': 2, 'rejected': 1}
        session.expire_all()
        job = session.query(JobRun).filter_by(job_id='job-1').one()
        assert job.status == 'success'
        assert job.result == {'imported': 2, 'rejected': 1}
        assert job.started_at is not None and job.completed_at is not None
        assert {r.standard_id for r in session.query(Record).all()} == {'A', 'B'}
        assert json.loads(fake_redis.get('job_progress:job-1'))['stage'] == 'complete'
        assert session.query(JobProgress).filter_by(job_id='job-1').count() > 0
        assert not path.exists()

    def test_failure(self, session, task_sessions, fake_redis, upload_dir):
        """An unreadable file marks the job failed and re-raises."""
        add_job(session)
        path = upload_dir / 'broken.xlsx'
        path.write_bytes(b'not a workbook')

        with pytest.raises(Exception):
            run_task(import_tasks.import_records_file, str(path), task_id='job-1')

        session.expire_all()
        job = session.query(JobRun).filter_by(job_id='job-1').one()
        assert job.status == 'failed'
        assert job.error['error_type'] == 'ParseError'
        assert not path.exists()

    def test_cancelled_before_start(self, session, task_sessions, fake_redis, upload_dir):
        """A job cancelled while queued does nothing."""
        add_job(session, status=JobStatus.CANCELLED.value)
        path = upload_dir / 'upload.xlsx'
        path.write_bytes(build_workbook([data_row('A')]))

        assert run_task(import_tasks.import_records_file, str(path), task_id='job-1') == {}
        assert session.query(Record).count() == 0


class TestCleanupOldJobs:
    """tasks.import_tasks.cleanup_old_jobs"""

    def test_removes_old_finished_jobs(self, session, task_sessions):
        """Finished jobs past retention are deleted with their progress."""
        old = datetime.utcnow() - timedelta(days=40)
        add_job(session, job_id='old', status='success', completed_at=old)
        add_job(session, job_id='recent', status='success', completed_at=datetime.utcnow())
        add_job(session, job_id='running', status='processing')
        session.add(JobProgress(job_id='old', stage='complete', percent=100, message='done'))
        session.commit()

        stats = import_tasks.cleanup_old_jobs(30)

        assert stats['deleted_jobs'] == 1
        assert stats['deleted_progress'] == 1
        session.expire_all()
        assert {j.job_id for j in session.query(JobRun).all()} == {'recent', 'running'}


class TestProgressWebSocket:
    """WS /ws/import/{job_id}"""

    def test_finished_job(self, client, session):
        """A finished job gets the connect message then the final result."""
        add_job(session, status=JobStatus.SUCCESS.value, completed_at=datetime.utcnow(),
                result={'imported': 2, 'rejected': 0})

        with client.websocket_connect('/ws/import/job-1') as ws:
            first = ws.receive_json()
            last = ws.receive_json()

        assert first['status'] == 'success'
        assert last['result'] == {'imported': 2, 'rejected': 0}
        assert last['completed_at'] is not None

    def test_unknown_job(self, client):
        """Unknown jobs receive an error message."""
        with client.websocket_connect('/ws/import/missing') as ws:
            message = ws.receive_json()

        assert message['error'] == 'Job missing not found'
