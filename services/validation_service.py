"""
Validation Service - Pre-import checks for uploaded spreadsheets.

This module checks every row of an uploaded workbook against the field
schema and the store's existing keys, and builds a report the client can
show before committing an import. Nothing is written to the store.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from services.duplicate_detector import DuplicateKeyDetector
from services.record_store import RecordStore
from services.row_validator import validate_row
from services.spreadsheet_parser import Row, SpreadsheetParser

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_ROWS = 10
EMPTY_FILE_MESSAGE = 'File is empty. Please upload a file with data.'


@dataclass
class FieldError:
    """All messages for one row (0-based position in the parsed file)."""

    row: int
    messages: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {'row': self.row, 'messages': list(self.messages)}


@dataclass
class ValidationReport:
    """Outcome of validating one uploaded file."""

    valid: bool
    errors: List[FieldError] = field(default_factory=list)
    preview: List[Row] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'valid': self.valid,
            'errors': [error.to_dict() for error in self.errors],
            'preview': self.preview
        }


class ValidationService:
    """
    Framework-agnostic validation service.

    Combines the spreadsheet parser, the row schema rules and the duplicate
    key detector into a single ValidationReport.
    """

    def __init__(
        self,
        store: RecordStore,
        parser: Optional[SpreadsheetParser] = None,
        progress_callback: Optional[Callable[[str, float, str], None]] = None,
        preview_rows: int = DEFAULT_PREVIEW_ROWS
    ):
        """
        Initialize validation service.

        Args:
            store: Record store used to look up existing standardid values
            parser: Spreadsheet parser (default: SpreadsheetParser())
            progress_callback: Optional callback for progress updates
                              Signature: callback(stage: str, percent: float, message: str)
            preview_rows: Number of parsed rows returned as preview (default: 10)
        """
        self.store = store
        self.parser = parser or SpreadsheetParser()
        self.progress_callback = progress_callback or (lambda *args: None)
        self.preview_rows = preview_rows

    def _emit_progress(self, stage: str, percent: float, message: str):
        """Emit progress update via callback."""
        self.progress_callback(stage, percent, message)
        logger.info(f"Validation progress: {stage} ({percent:.1f}%) - {message}")

    def validate_file(self, raw: bytes) -> ValidationReport:
        """
        Validate an uploaded workbook.

        Args:
            raw: Contents of the uploaded .xlsx file

        Returns:
            ValidationReport with the global flag, per-row errors and preview

        Raises:
            ParseError: If the workbook cannot be read
            StoreError: If existing keys cannot be loaded
        """
        self._emit_progress('parsing', 0, 'Reading spreadsheet...')
        rows = self.parser.parse(raw)

        if not rows:
            logger.info("Uploaded file has no data rows")
            return ValidationReport(
                valid=False,
                errors=[FieldError(row=0, messages=[EMPTY_FILE_MESSAGE])],
                preview=[]
            )

        self._emit_progress('loading', 20, 'Loading existing standard ids...')
        existing_ids = self.store.list_all_standard_ids()

        report = self.validate_rows(rows, existing_ids)

        self._emit_progress('complete', 100,
                            f"Validated {len(rows)} rows, {len(report.errors)} with errors")
        return report

    def validate_rows(self, rows: List[Row], existing_ids) -> ValidationReport:
        """
        Validate already-parsed rows against a snapshot of existing keys.

        Schema messages come first for each row, then duplicate messages.
        """
        detector = DuplicateKeyDetector(existing_ids)
        errors = []

        for idx, row in enumerate(rows):
            messages = validate_row(row) + detector.check_row(row)
            if messages:
                errors.append(FieldError(row=idx, messages=messages))

        logger.debug(f"{len(errors)} of {len(rows)} rows failed validation")

        return ValidationReport(
            valid=not errors,
            errors=errors,
            preview=rows[:self.preview_rows]
        )
