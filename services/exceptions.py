"""
Exception types raised by the import/export services.

Row-level problems (schema failures, duplicate keys) are reported as data
in validation reports and rejection counts. Only failures that abort a
whole call are raised.
"""


class SpreadsheetImportError(Exception):
    """Base class for service-level failures."""


class ParseError(SpreadsheetImportError):
    """Spreadsheet bytes could not be read or contain no worksheet."""


class StoreError(SpreadsheetImportError):
    """The record store failed to read or persist records."""


class DuplicateKeyError(StoreError):
    """A record with the same standardid already exists in the store."""

    def __init__(self, standard_id: str):
        self.standard_id = standard_id
        super().__init__(f"standardid '{standard_id}' already exists in the database.")
