"""
Spreadsheet Row Parser - turns uploaded .xlsx bytes into row mappings.

Only the first worksheet is read. Row 1 holds the headers; every following
non-empty row becomes a dictionary keyed by header.
"""

import logging
from datetime import date, datetime, time
from io import BytesIO
from typing import Any, Dict, List, Optional, Tuple

import openpyxl

from services.exceptions import ParseError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class SpreadsheetParser:
    """Parse the first worksheet of an .xlsx workbook into rows."""

    def parse(self, raw: bytes) -> List[Row]:
        """
        Parse workbook bytes.

        Args:
            raw: Contents of an .xlsx file

        Returns:
            Rows in sheet order. Each row holds every header; missing cells
            are None, dates are YYYY-MM-DD strings, rich text is plain text.

        Raises:
            ParseError: If the bytes are not a readable workbook or the
                workbook has no worksheet
        """
        try:
            workbook = openpyxl.load_workbook(BytesIO(raw), read_only=True, data_only=True)
        except Exception as e:
            logger.error(f"Could not open workbook: {e}")
            raise ParseError(f"Could not read spreadsheet: {e}") from e

        try:
            rows, title = self._read_first_sheet(workbook)
        except ParseError:
            raise
        except Exception as e:
            logger.error(f"Could not read worksheet: {e}")
            raise ParseError(f"Could not read spreadsheet: {e}") from e
        finally:
            workbook.close()

        logger.info(f"Parsed {len(rows)} data rows from worksheet '{title}'")
        return rows

    def _read_first_sheet(self, workbook) -> Tuple[List[Row], str]:
        """Read rows from the first worksheet; sheet XML is only parsed here."""
        if not workbook.worksheets:
            raise ParseError('Worksheet not found in Excel file')

        worksheet = workbook.worksheets[0]
        rows_iter = worksheet.iter_rows(values_only=True)

        header_row = next(rows_iter, None)
        if header_row is None:
            logger.info(f"Worksheet '{worksheet.title}' is empty")
            return [], worksheet.title

        headers = [self._header_name(value) for value in header_row]

        rows = []
        for values in rows_iter:
            row = self._build_row(headers, values)
            if row is not None:
                rows.append(row)
        return rows, worksheet.title

    @staticmethod
    def _header_name(value: Any) -> Optional[str]:
        if value is None:
            return None
        name = str(value).strip()
        return name or None

    def _build_row(self, headers: List[Optional[str]], values: tuple) -> Optional[Row]:
        """Map one sheet row onto the headers; None if the row is blank."""
        row = {}
        has_data = False

        for col_idx, header in enumerate(headers):
            if header is None:
                continue
            value = values[col_idx] if col_idx < len(values) else None
            value = self.normalize_value(value)
            if value is not None and value != '':
                has_data = True
            row[header] = value

        return row if has_data else None

    @staticmethod
    def normalize_value(value: Any) -> Any:
        """Normalize an openpyxl cell value to str/number/bool/None."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, time):
            return value.isoformat()
        if isinstance(value, (str, int, float, bool)):
            return value
        # Rich text and other wrappers collapse to their plain text
        return str(value)
