"""
SQLAlchemy models for the spreadsheet import system.

This module defines the database schema using SQLAlchemy ORM,
matching the schema defined in Alembic migrations.
"""

from sqlalchemy import (
    Column, Integer, Text, Date, TIMESTAMP, Index, JSON, text
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), 'postgresql')


class Record(Base):
    """Represents one imported spreadsheet row."""

    __tablename__ = 'records'
    __table_args__ = (
        Index('idx_records_tanggal', 'tanggal'),
        {'comment': 'Records imported from uploaded spreadsheets'}
    )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False
    )
    standard_id = Column(
        'standardid',
        Text,
        nullable=False,
        unique=True,
        comment='User-supplied business key (case-sensitive)'
    )
    date = Column(
        'tanggal',
        Date,
        nullable=False,
        comment='Record date'
    )
    actual_value = Column(
        'actual',
        Text,
        nullable=False,
        comment='Actual value, stored as text'
    )
    category = Column(
        'kategori',
        Text,
        nullable=False,
        comment='Category classification'
    )
    status = Column(
        Text,
        nullable=False,
        comment='Current status'
    )
    note = Column(
        'keterangan',
        Text,
        nullable=True,
        comment='Optional notes'
    )
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False,
        comment='Creation timestamp'
    )
    updated_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False,
        comment='Last modification timestamp'
    )

    def __repr__(self):
        return f"<Record(id={self.id}, standardid='{self.standard_id}', tanggal={self.date})>"

    def to_dict(self) -> dict:
        """Convert record to dictionary keyed by spreadsheet column names."""
        return {
            'id': self.id,
            'standardid': self.standard_id,
            'tanggal': self.date.isoformat() if self.date else None,
            'actual': self.actual_value,
            'kategori': self.category,
            'status': self.status,
            'keterangan': self.note,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
