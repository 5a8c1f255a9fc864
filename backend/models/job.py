"""
Bookkeeping tables for background imports.

A JobRun row is created by the API before the Celery task is queued; the
worker moves it through the status lifecycle and appends JobProgress rows
as the import advances.
"""

from enum import Enum

from sqlalchemy import (
    CheckConstraint, Column, ForeignKey, Index, Integer, Numeric, String, Text, TIMESTAMP, text
)
from sqlalchemy.orm import relationship

from backend.models.schema import Base, JSONType


class JobStatus(str, Enum):
    """Lifecycle of a job: pending -> processing -> success | failed; cancelled from either."""
    PENDING = 'pending'
    PROCESSING = 'processing'
    SUCCESS = 'success'
    FAILED = 'failed'
    CANCELLED = 'cancelled'


class JobType(str, Enum):
    IMPORT = 'import'


FINISHED_STATUSES = (JobStatus.SUCCESS, JobStatus.FAILED, JobStatus.CANCELLED)


def _iso(value):
    return value.isoformat() if value else None


class JobRun(Base):
    """One background import, keyed by its Celery task id."""

    __tablename__ = 'job_runs'
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'success', 'failed', 'cancelled')",
            name='job_runs_status_check'
        ),
        CheckConstraint("job_type IN ('import')", name='job_runs_job_type_check'),
        Index('idx_job_runs_status', 'status'),
        Index('idx_job_runs_created_at', 'created_at'),
        {'comment': 'Tracks background spreadsheet import jobs'}
    )

    job_id = Column(String(255), primary_key=True, comment='Celery task UUID')
    job_type = Column(String(50), nullable=False, comment='Type of job')
    status = Column(String(20), nullable=False, server_default='pending', comment='Current job status')

    created_at = Column(TIMESTAMP, server_default=text('CURRENT_TIMESTAMP'), nullable=False)
    started_at = Column(TIMESTAMP, nullable=True)
    completed_at = Column(TIMESTAMP, nullable=True)

    params = Column(JSONType, nullable=False, default=dict,
                    comment='Upload details: filename, size')
    result = Column(JSONType, nullable=True,
                    comment='Import result: imported / rejected counts')
    error = Column(JSONType, nullable=True, comment='Error details if job failed')
    created_by = Column(String(255), nullable=True, comment='Client that created the job')

    progress = relationship(
        'JobProgress',
        back_populates='job',
        cascade='all, delete-orphan',
        order_by='JobProgress.id'
    )

    def __repr__(self):
        return f"<JobRun(job_id='{self.job_id}', status='{self.status}')>"

    def to_dict(self) -> dict:
        return {
            'job_id': self.job_id,
            'job_type': self.job_type,
            'status': self.status,
            'created_at': _iso(self.created_at),
            'started_at': _iso(self.started_at),
            'completed_at': _iso(self.completed_at),
            'params': self.params,
            'result': self.result,
            'error': self.error,
            'created_by': self.created_by
        }

    def is_complete(self) -> bool:
        """True once the job reached success, failed or cancelled."""
        return self.status in FINISHED_STATUSES


class JobProgress(Base):
    """A progress update written by the worker."""

    __tablename__ = 'job_progress'
    __table_args__ = (
        Index('idx_job_progress_job_id', 'job_id'),
        Index('idx_job_progress_timestamp', 'timestamp'),
        {'comment': 'Detailed progress tracking for jobs'}
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(String(255), ForeignKey('job_runs.job_id', ondelete='CASCADE'), nullable=False)
    stage = Column(String(50), nullable=False, comment='parsing, checking, saving, complete, failed')
    percent = Column(Numeric(5, 2), nullable=False, comment='0.00 to 100.00')
    message = Column(Text, nullable=True)
    timestamp = Column(TIMESTAMP, server_default=text('CURRENT_TIMESTAMP'), nullable=False)

    job = relationship('JobRun', back_populates='progress')

    def __repr__(self):
        return f"<JobProgress(job_id='{self.job_id}', stage='{self.stage}', percent={self.percent})>"

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'job_id': self.job_id,
            'stage': self.stage,
            'percent': float(self.percent),
            'message': self.message,
            'timestamp': _iso(self.timestamp)
        }
