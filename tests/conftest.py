"""
Pytest configuration and fixtures for spreadsheet import tests.
"""

import os
import zipfile

# Point the app at an in-memory database before any app module is imported
os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('LOG_FILE', os.devnull)

from datetime import date
from io import BytesIO

import openpyxl
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.models.schema import Base
from services.record_store import InMemoryRecordStore, NewRecord
from services.row_validator import ROW_COLUMNS

VALID_ROW = ['STD-001', '2023-05-01', '95.5', 'A', 'Active', 'Sample data entry']


@pytest.fixture(scope='function')
def engine():
    """Create a fresh in-memory SQLite engine with all tables."""
    eng = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture(scope='function')
def session_factory(engine):
    """Session factory bound to the test engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope='function')
def session(session_factory):
    """Create a new database session for a test."""
    sess = session_factory()
    yield sess
    sess.close()


@pytest.fixture
def memory_store():
    """Empty in-memory record store."""
    return InMemoryRecordStore()


def new_record(standard_id: str, day: date = date(2023, 5, 1), **overrides) -> NewRecord:
    """Build a NewRecord with sensible defaults."""
    fields = {
        'standard_id': standard_id,
        'date': day,
        'actual_value': '95.5',
        'category': 'A',
        'status': 'Active',
        'note': None,
    }
    fields.update(overrides)
    return NewRecord(**fields)


def data_row(standard_id: str = 'STD-001', **overrides) -> list:
    """A valid sheet row in template column order, with overrides by header."""
    values = dict(zip(ROW_COLUMNS, VALID_ROW))
    values['standardid'] = standard_id
    values.update(overrides)
    return [values[column] for column in ROW_COLUMNS]


def build_workbook(rows, headers=ROW_COLUMNS) -> bytes:
    """Write headers and rows to the first sheet of a new workbook."""
    workbook = openpyxl.Workbook()
    worksheet = workbook.active
    worksheet.title = 'Sheet1'
    if headers is not None:
        worksheet.append(list(headers))
    for row in rows:
        worksheet.append(list(row))

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def read_workbook(raw: bytes, sheet: str = None) -> list:
    """Read all rows of a sheet (first sheet by default) as lists."""
    workbook = openpyxl.load_workbook(BytesIO(raw))
    worksheet = workbook[sheet] if sheet else workbook.worksheets[0]
    return [list(row) for row in worksheet.iter_rows(values_only=True)]


def corrupt_first_sheet(raw: bytes) -> bytes:
    """Copy a workbook with its first worksheet XML cut in half."""
    source = zipfile.ZipFile(BytesIO(raw))
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, 'w') as target:
        for item in source.infolist():
            data = source.read(item.filename)
            if item.filename == 'xl/worksheets/sheet1.xml':
                data = data[:len(data) // 2]
            target.writestr(item, data)
    return buffer.getvalue()


@pytest.fixture
def make_workbook():
    """Factory fixture: make_workbook(rows, headers=ROW_COLUMNS) -> bytes."""
    return build_workbook
