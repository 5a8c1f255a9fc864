"""Initial schema for spreadsheet records

Revision ID: 001_initial_schema
Revises: 
Create Date: 2025-10-14

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create records table
    op.create_table(
        'records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('standardid', sa.Text(), nullable=False,
                  comment='User-supplied business key (case-sensitive)'),
        sa.Column('tanggal', sa.Date(), nullable=False, comment='Record date'),
        sa.Column('actual', sa.Text(), nullable=False, comment='Actual value, stored as text'),
        sa.Column('kategori', sa.Text(), nullable=False, comment='Category classification'),
        sa.Column('status', sa.Text(), nullable=False, comment='Current status'),
        sa.Column('keterangan', sa.Text(), nullable=True, comment='Optional notes'),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'),
                  nullable=False, comment='Creation timestamp'),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'),
                  nullable=False, comment='Last modification timestamp'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('standardid'),
        comment='Records imported from uploaded spreadsheets'
    )

    # Date range exports filter on tanggal
    op.create_index('idx_records_tanggal', 'records', ['tanggal'])


def downgrade() -> None:
    op.drop_index('idx_records_tanggal', table_name='records')
    op.drop_table('records')
