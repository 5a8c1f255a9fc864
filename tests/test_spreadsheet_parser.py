"""
Tests for reading uploaded workbooks into rows.
"""

from datetime import date, datetime, time
from io import BytesIO

import openpyxl
import pytest

from services.exceptions import ParseError
from services.spreadsheet_parser import SpreadsheetParser
from tests.conftest import build_workbook, corrupt_first_sheet, data_row


class TestSpreadsheetParser:
    """First-sheet parsing behaviour."""

    def test_rows_keyed_by_header(self):
        """Each data row maps header -> value, in sheet order."""
        raw = build_workbook([data_row('STD-001'), data_row('STD-002')])

        rows = SpreadsheetParser().parse(raw)

        assert [row['standardid'] for row in rows] == ['STD-001', 'STD-002']
        assert rows[0] == {
            'standardid': 'STD-001',
            'tanggal': '2023-05-01',
            'actual': '95.5',
            'kategori': 'A',
            'status': 'Active',
            'keterangan': 'Sample data entry',
        }

    def test_headers_only(self):
        """A sheet with headers and no data has no rows."""
        assert SpreadsheetParser().parse(build_workbook([])) == []

    def test_empty_sheet(self):
        """A completely empty sheet has no rows."""
        assert SpreadsheetParser().parse(build_workbook([], headers=None)) == []

    def test_blank_rows_skipped(self):
        """Rows with no values are not returned."""
        raw = build_workbook([data_row('A'), [None] * 6, data_row('B')])

        rows = SpreadsheetParser().parse(raw)

        assert [row['standardid'] for row in rows] == ['A', 'B']

    def test_missing_cells_are_none(self):
        """Short rows still carry every header."""
        raw = build_workbook([['STD-001', '2023-05-01']])

        row = SpreadsheetParser().parse(raw)[0]

        assert row['actual'] is None
        assert row['keterangan'] is None

    def test_headers_are_stripped(self):
        """Surrounding whitespace in headers is ignored."""
        raw = build_workbook([['STD-001']], headers=['  standardid '])

        assert SpreadsheetParser().parse(raw) == [{'standardid': 'STD-001'}]

    def test_date_cells_become_iso_strings(self):
        """Date-typed cells are normalized to YYYY-MM-DD."""
        raw = build_workbook([data_row('STD-001', tanggal=datetime(2023, 5, 1, 0, 0))])

        assert SpreadsheetParser().parse(raw)[0]['tanggal'] == '2023-05-01'

    def test_numbers_are_kept(self):
        """Numeric cells stay numeric for the validator to reject."""
        raw = build_workbook([data_row('STD-001', actual=95.5)])

        assert SpreadsheetParser().parse(raw)[0]['actual'] == 95.5

    def test_only_first_sheet(self):
        """Later worksheets are ignored."""
        workbook = openpyxl.Workbook()
        workbook.active.append(['standardid'])
        workbook.active.append(['FIRST'])
        second = workbook.create_sheet('Other')
        second.append(['standardid'])
        second.append(['SECOND'])
        buffer = BytesIO()
        workbook.save(buffer)

        assert SpreadsheetParser().parse(buffer.getvalue()) == [{'standardid': 'FIRST'}]

    def test_unreadable_bytes(self):
        """Non-workbook bytes raise ParseError."""
        with pytest.raises(ParseError):
            SpreadsheetParser().parse(b'not a spreadsheet')

    def test_corrupt_worksheet(self):
        """A workbook that opens but has broken sheet XML raises ParseError."""
        raw = corrupt_first_sheet(build_workbook([data_row(f'STD-{i:03d}') for i in range(20)]))

        with pytest.raises(ParseError):
            SpreadsheetParser().parse(raw)


class TestNormalizeValue:
    """Cell value normalization."""

    @pytest.mark.parametrize('value, expected', [
        (None, None),
        ('text', 'text'),
        (3, 3),
        (True, True),
        (datetime(2023, 5, 1, 12, 30), '2023-05-01'),
        (date(2023, 5, 1), '2023-05-01'),
        (time(12, 30), '12:30:00'),
    ])
    def test_normalize(self, value, expected):
        """Values map onto str/number/bool/None."""
        assert SpreadsheetParser.normalize_value(value) == expected
