"""
Export Service - Write stored records and import templates as .xlsx.
"""

import logging
from datetime import date, datetime
from io import BytesIO
from typing import Any, Callable, Dict, List, Optional

import openpyxl

from backend.models.schema import Record
from services.record_store import RecordStore
from services.row_validator import ROW_COLUMNS

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# Export column name -> value getter
EXPORT_COLUMNS: Dict[str, Callable[[Record], Any]] = {
    'id': lambda r: r.id,
    'standardid': lambda r: r.standard_id,
    'tanggal': lambda r: r.date.isoformat() if r.date else None,
    'actual': lambda r: r.actual_value,
    'kategori': lambda r: r.category,
    'status': lambda r: r.status,
    'keterangan': lambda r: r.note,
    'created_at': lambda r: _iso(r.created_at),
    'updated_at': lambda r: _iso(r.updated_at),
}

TEMPLATE_EXAMPLE_ROW = ['STD-001', '2023-05-01', '95.5', 'A', 'Active', 'Sample data entry']

TEMPLATE_INSTRUCTIONS = [
    'Import Instructions',
    '',
    'Please follow these guidelines when filling the template:',
    '1. standardid: A unique identifier for each record (e.g., STD-001, STD-002)',
    '2. tanggal: Date in YYYY-MM-DD format (e.g., 2023-05-01)',
    '3. actual: The actual value, entered as text',
    '4. kategori: Category classification (e.g., A, B, C)',
    '5. status: Current status (e.g., Active, Pending, Completed)',
    '6. keterangan: Optional notes or comments',
]


def select_columns(columns: List[str]) -> List[str]:
    """Keep requested columns that can be exported, in request order."""
    selected = []
    for column in columns:
        if column in EXPORT_COLUMNS and column not in selected:
            selected.append(column)
        elif column not in EXPORT_COLUMNS:
            logger.warning(f"Ignoring unknown export column '{column}'")
    return selected


def _workbook_bytes(workbook: openpyxl.Workbook) -> bytes:
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def export_records(store: RecordStore, columns: List[str],
                   start_date: Optional[date] = None,
                   end_date: Optional[date] = None) -> bytes:
    """
    Export records to an .xlsx workbook.

    Args:
        store: Record store to read from
        columns: Column names to include, in order
        start_date: Optional inclusive lower bound on tanggal
        end_date: Optional inclusive upper bound on tanggal

    Returns:
        Workbook bytes with a single 'Data' sheet
    """
    selected = select_columns(columns)
    records = store.query_by_date_range(start_date, end_date)

    workbook = openpyxl.Workbook()
    worksheet = workbook.active
    worksheet.title = 'Data'

    worksheet.append(selected)
    for record in records:
        worksheet.append([EXPORT_COLUMNS[column](record) for column in selected])

    logger.info(f"Exported {len(records)} records with columns {selected}")
    return _workbook_bytes(workbook)


def generate_template() -> bytes:
    """Build the blank import template with an example row and instructions."""
    workbook = openpyxl.Workbook()
    worksheet = workbook.active
    worksheet.title = 'Template'
    worksheet.append(ROW_COLUMNS)
    worksheet.append(TEMPLATE_EXAMPLE_ROW)

    instructions = workbook.create_sheet('Instructions')
    for line in TEMPLATE_INSTRUCTIONS:
        instructions.append([line])

    return _workbook_bytes(workbook)
