"""job_runs and job_progress for background imports

Revision ID: 002_job_tracking
Revises: 001_initial_schema
Create Date: 2025-10-15 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = '002_job_tracking'
down_revision = '001_initial_schema'
branch_labels = None
depends_on = None

JSONB = postgresql.JSONB(astext_type=sa.Text())
NOW = sa.text('CURRENT_TIMESTAMP')

JOB_RUN_INDEXES = {'idx_job_runs_status': 'status', 'idx_job_runs_created_at': 'created_at'}
JOB_PROGRESS_INDEXES = {'idx_job_progress_job_id': 'job_id', 'idx_job_progress_timestamp': 'timestamp'}


def upgrade() -> None:
    op.create_table(
        'job_runs',
        sa.Column('job_id', sa.String(255), primary_key=True, comment='Celery task UUID'),
        sa.Column('job_type', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False, server_default=NOW),
        sa.Column('started_at', sa.TIMESTAMP()),
        sa.Column('completed_at', sa.TIMESTAMP()),
        sa.Column('params', JSONB, nullable=False, server_default='{}',
                  comment='Upload details: filename, size'),
        sa.Column('result', JSONB, comment='Import result: imported / rejected counts'),
        sa.Column('error', JSONB),
        sa.Column('created_by', sa.String(255)),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'success', 'failed', 'cancelled')",
            name='job_runs_status_check'
        ),
        sa.CheckConstraint("job_type IN ('import')", name='job_runs_job_type_check'),
        comment='Tracks background spreadsheet import jobs'
    )

    op.create_table(
        'job_progress',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('job_id', sa.String(255),
                  sa.ForeignKey('job_runs.job_id', ondelete='CASCADE'), nullable=False),
        sa.Column('stage', sa.String(50), nullable=False),
        sa.Column('percent', sa.Numeric(5, 2), nullable=False),
        sa.Column('message', sa.Text()),
        sa.Column('timestamp', sa.TIMESTAMP(), nullable=False, server_default=NOW),
        comment='Detailed progress tracking for jobs'
    )

    for name, column in JOB_RUN_INDEXES.items():
        op.create_index(name, 'job_runs', [column])
    for name, column in JOB_PROGRESS_INDEXES.items():
        op.create_index(name, 'job_progress', [column])


def downgrade() -> None:
    for name in JOB_PROGRESS_INDEXES:
        op.drop_index(name, table_name='job_progress')
    op.drop_table('job_progress')

    for name in JOB_RUN_INDEXES:
        op.drop_index(name, table_name='job_runs')
    op.drop_table('job_runs')
