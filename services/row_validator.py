"""
Row Schema Validator - field-level checks for one parsed spreadsheet row.

Rules are declared as an ordered list of FieldRule objects. Every rule is
evaluated for every row (no short-circuiting), so a row reports all of its
field problems at once, in declaration order.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

# Spreadsheet headers, in template order
STANDARD_ID = 'standardid'
DATE = 'tanggal'
ACTUAL = 'actual'
CATEGORY = 'kategori'
STATUS = 'status'
NOTE = 'keterangan'

ROW_COLUMNS = [STANDARD_ID, DATE, ACTUAL, CATEGORY, STATUS, NOTE]

DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
DATE_FORMAT = '%Y-%m-%d'


def _describe(value: Any) -> str:
    """Name the kind of a cell value for type-mismatch messages."""
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, (int, float)):
        return 'number'
    return type(value).__name__


def _required_text(message: str) -> Callable[[Any], Optional[str]]:
    def check(value: Any) -> Optional[str]:
        if value is None or value == '':
            return message
        if not isinstance(value, str):
            return f"Expected string, received {_describe(value)}"
        return None
    return check


def _optional_text(value: Any) -> Optional[str]:
    if value is None or value == '':
        return None
    if not isinstance(value, str):
        return f"Expected string, received {_describe(value)}"
    return None


def is_valid_date(value: Any) -> bool:
    """True if value is a YYYY-MM-DD string naming a real calendar day."""
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return False
    try:
        datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        return False
    return True


def _date_text(value: Any) -> Optional[str]:
    if is_valid_date(value):
        return None
    return 'Invalid date format. Use YYYY-MM-DD'


@dataclass(frozen=True)
class FieldRule:
    """One field check. `check` returns a reason string on failure."""

    field: str
    check: Callable[[Any], Optional[str]]

    def apply(self, row: Dict[str, Any]) -> Optional[str]:
        reason = self.check(row.get(self.field))
        if reason is None:
            return None
        return f"{self.field}: {reason}"


ROW_RULES: List[FieldRule] = [
    FieldRule(STANDARD_ID, _required_text('Standard ID is required')),
    FieldRule(DATE, _date_text),
    FieldRule(ACTUAL, _required_text('Actual value is required')),
    FieldRule(CATEGORY, _required_text('Kategori is required')),
    FieldRule(STATUS, _required_text('Status is required')),
    FieldRule(NOTE, _optional_text),
]


def validate_row(row: Dict[str, Any], rules: List[FieldRule] = ROW_RULES) -> List[str]:
    """
    Validate one row against the field rules.

    Args:
        row: Header -> cell value mapping produced by the parser
        rules: Ordered rules to apply (defaults to ROW_RULES)

    Returns:
        Error messages formatted as "<field>: <reason>", empty if valid
    """
    messages = []
    for rule in rules:
        message = rule.apply(row)
        if message is not None:
            messages.append(message)
    return messages


def parse_row_date(value: str) -> date:
    """Convert a validated `tanggal` string into a date."""
    return datetime.strptime(value, DATE_FORMAT).date()
