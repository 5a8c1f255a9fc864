"""
Duplicate Key Detector - finds repeated standardid values.

A row is flagged when its standardid appeared on an earlier row of the same
file, and separately when the store already holds that standardid.
"""

import logging
from typing import Any, Dict, Iterable, List, Sequence, Set, Tuple

from services.row_validator import STANDARD_ID

logger = logging.getLogger(__name__)


class DuplicateKeyDetector:
    """Incremental duplicate check over rows visited in file order."""

    def __init__(self, existing_ids: Iterable[str]):
        self.existing_ids: Set[str] = set(existing_ids)
        self.seen_ids: Set[Tuple[bool, Any]] = set()

    def check_row(self, row: Dict[str, Any]) -> List[str]:
        """
        Check one row and remember its key for later rows.

        Rows without a standardid are skipped; the schema validator
        already reports them.
        """
        standard_id = row.get(STANDARD_ID)
        if not standard_id:
            return []

        # True and 1 hash alike; keep booleans apart from numbers
        key = (isinstance(standard_id, bool), standard_id)
        messages = []
        if key in self.seen_ids:
            messages.append(f"Duplicate standardid '{standard_id}' within the file.")
        else:
            self.seen_ids.add(key)

        if standard_id in self.existing_ids:
            messages.append(f"standardid '{standard_id}' already exists in the database.")

        return messages


def find_duplicates(existing_ids: Iterable[str],
                    rows: Sequence[Dict[str, Any]]) -> Dict[int, List[str]]:
    """
    Map row index -> duplicate messages for every row that has any.

    Args:
        existing_ids: standardid values already in the store
        rows: Parsed rows in file order

    Returns:
        Dictionary keyed by 0-based row index
    """
    detector = DuplicateKeyDetector(existing_ids)
    duplicates = {}
    for index, row in enumerate(rows):
        messages = detector.check_row(row)
        if messages:
            duplicates[index] = messages

    logger.debug(f"Found duplicate keys on {len(duplicates)} of {len(rows)} rows")
    return duplicates
