"""
Import Service - Commit valid spreadsheet rows to the record store.

The import re-parses and re-validates the upload on its own; it never
reuses an earlier validation report, since the store may have changed in
between. Rows failing the schema or colliding with an existing key are
counted as rejected; the rest are created in one batch.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from services.record_store import NewRecord, RecordStore
from services.row_validator import (
    ACTUAL, CATEGORY, DATE, NOTE, STANDARD_ID, STATUS, parse_row_date, validate_row
)
from services.spreadsheet_parser import Row, SpreadsheetParser

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Counts from one import call; imported + rejected == rows parsed."""

    imported: int
    rejected: int

    def to_dict(self) -> Dict[str, Any]:
        return {'imported': self.imported, 'rejected': self.rejected}


def row_to_new_record(row: Row) -> NewRecord:
    """Map a schema-valid row onto the store's creation shape."""
    return NewRecord(
        standard_id=row[STANDARD_ID],
        date=parse_row_date(row[DATE]),
        actual_value=row[ACTUAL],
        category=row[CATEGORY],
        status=row[STATUS],
        note=row.get(NOTE) or None
    )


class ImportService:
    """
    Framework-agnostic import service.

    This service handles the complete import workflow with progress tracking.
    """

    def __init__(
        self,
        store: RecordStore,
        parser: Optional[SpreadsheetParser] = None,
        progress_callback: Optional[Callable[[str, float, str], None]] = None
    ):
        """
        Initialize import service.

        Args:
            store: Record store that receives the new records
            parser: Spreadsheet parser (default: SpreadsheetParser())
            progress_callback: Optional callback for progress updates
                              Signature: callback(stage: str, percent: float, message: str)
        """
        self.store = store
        self.parser = parser or SpreadsheetParser()
        self.progress_callback = progress_callback or (lambda *args: None)

    def _emit_progress(self, stage: str, percent: float, message: str):
        """Emit progress update via callback."""
        self.progress_callback(stage, percent, message)
        logger.info(f"Progress: {stage} ({percent:.1f}%) - {message}")

    def import_file(self, raw: bytes) -> ImportResult:
        """
        Main import workflow.

        Args:
            raw: Contents of the uploaded .xlsx file

        Returns:
            ImportResult with imported and rejected counts

        Raises:
            ParseError: If the workbook cannot be read (nothing is written)
            StoreError: If the store fails while checking or creating records
        """
        # Step 1: Parse workbook (0-10%)
        self._emit_progress('parsing', 0, 'Reading spreadsheet...')
        rows = self.parser.parse(raw)

        # Step 2: Check rows (10-80%)
        self._emit_progress('checking', 10, f"Checking {len(rows)} rows...")
        batch, rejected = self.partition_rows(rows)

        # Step 3: Create records (80-100%)
        if batch:
            self._emit_progress('saving', 80, f"Saving {len(batch)} records...")
            self.store.create_batch(batch)

        result = ImportResult(imported=len(batch), rejected=rejected)
        self._emit_progress('complete', 100,
                            f"Imported {result.imported} records, rejected {result.rejected}")
        return result

    def partition_rows(self, rows: List[Row]):
        """
        Split rows into records to create and a rejected count.

        A row is rejected when it fails the schema, when its standardid is
        already in the store, or when an earlier row of the same batch
        already claimed that standardid.

        Returns:
            (list of NewRecord, rejected count)
        """
        batch: List[NewRecord] = []
        batch_ids = set()
        rejected = 0
        total = len(rows)

        for idx, row in enumerate(rows):
            if idx % 50 == 0 and total:
                self._emit_progress('checking', 10 + (70 * (idx / total)),
                                    f"Checking row {idx}/{total}")

            if validate_row(row):
                rejected += 1
                continue

            standard_id = row[STANDARD_ID]
            if standard_id in batch_ids or self.store.find_by_standard_id(standard_id):
                logger.debug(f"Row {idx}: standardid '{standard_id}' already taken")
                rejected += 1
                continue

            batch_ids.add(standard_id)
            batch.append(row_to_new_record(row))

        return batch, rejected
