"""
Record Store - persistence for imported records.

RecordStore is the interface the import/validation services talk to.
Identity (id) and timestamps are assigned by the store, never by callers.
Two backends are provided: an in-memory store for tests and local runs,
and a SQLAlchemy store for production databases.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Set

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.models.schema import Record
from services.exceptions import DuplicateKeyError, StoreError

logger = logging.getLogger(__name__)


@dataclass
class NewRecord:
    """Fields supplied by callers when creating a record."""

    standard_id: str
    date: date
    actual_value: str
    category: str
    status: str
    note: Optional[str] = None


class RecordStore(ABC):
    """Storage contract used by the import, validation and export services."""

    @abstractmethod
    def list_all_standard_ids(self) -> Set[str]:
        """Return every standardid currently stored."""

    @abstractmethod
    def find_by_standard_id(self, standard_id: str) -> Optional[Record]:
        """Return the record with this standardid, or None."""

    @abstractmethod
    def create_batch(self, records: Sequence[NewRecord]) -> List[Record]:
        """
        Create records in one call.

        Raises:
            DuplicateKeyError: If any standardid is already stored or repeated
            StoreError: If the backend fails; nothing is written
        """

    @abstractmethod
    def query_by_date_range(self, start: Optional[date] = None,
                            end: Optional[date] = None) -> List[Record]:
        """Return records with start <= tanggal <= end (bounds optional), by id."""

    @abstractmethod
    def list_all(self) -> List[Record]:
        """Return all records ordered by id."""

    @abstractmethod
    def get_by_id(self, record_id: int) -> Optional[Record]:
        """Return the record with this id, or None."""

    def create(self, record: NewRecord) -> Record:
        """Create a single record."""
        return self.create_batch([record])[0]


def _check_batch_keys(records: Sequence[NewRecord], existing: Set[str]):
    seen = set()
    for record in records:
        if record.standard_id in existing or record.standard_id in seen:
            raise DuplicateKeyError(record.standard_id)
        seen.add(record.standard_id)


class InMemoryRecordStore(RecordStore):
    """Dictionary-backed store with auto-increment ids."""

    def __init__(self):
        self._records: Dict[int, Record] = {}
        self._next_id = 1

    def list_all_standard_ids(self) -> Set[str]:
        return {record.standard_id for record in self._records.values()}

    def find_by_standard_id(self, standard_id: str) -> Optional[Record]:
        for record in self._records.values():
            if record.standard_id == standard_id:
                return record
        return None

    def create_batch(self, records: Sequence[NewRecord]) -> List[Record]:
        # Check the whole batch before writing anything
        _check_batch_keys(records, self.list_all_standard_ids())

        created = []
        for new_record in records:
            now = datetime.utcnow()
            record = Record(id=self._next_id, created_at=now, updated_at=now,
                            **asdict(new_record))
            self._records[record.id] = record
            self._next_id += 1
            created.append(record)

        logger.debug(f"Created {len(created)} records in memory")
        return created

    def query_by_date_range(self, start: Optional[date] = None,
                            end: Optional[date] = None) -> List[Record]:
        records = self.list_all()
        if start:
            records = [r for r in records if r.date >= start]
        if end:
            records = [r for r in records if r.date <= end]
        return records

    def list_all(self) -> List[Record]:
        return [self._records[record_id] for record_id in sorted(self._records)]

    def get_by_id(self, record_id: int) -> Optional[Record]:
        return self._records.get(record_id)


class SqlAlchemyRecordStore(RecordStore):
    """Store backed by the `records` table through a SQLAlchemy session."""

    def __init__(self, db_session: Session):
        """
        Initialize the store.

        Args:
            db_session: SQLAlchemy database session
        """
        self.session = db_session

    def list_all_standard_ids(self) -> Set[str]:
        try:
            rows = self.session.query(Record.standard_id).all()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not list standard ids: {e}") from e
        return {row[0] for row in rows}

    def find_by_standard_id(self, standard_id: str) -> Optional[Record]:
        try:
            return self.session.query(Record).filter_by(standard_id=standard_id).first()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not look up standardid '{standard_id}': {e}") from e

    def create_batch(self, records: Sequence[NewRecord]) -> List[Record]:
        created = [Record(**asdict(new_record)) for new_record in records]

        try:
            self.session.add_all(created)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.error(f"Unique key violation while creating {len(created)} records: {e}")
            # Find the offending key for the error message
            existing = self.list_all_standard_ids()
            for new_record in records:
                if new_record.standard_id in existing:
                    raise DuplicateKeyError(new_record.standard_id) from e
            _check_batch_keys(records, set())
            raise StoreError(f"Could not create records: {e}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Could not create {len(created)} records: {e}", exc_info=True)
            raise StoreError(f"Could not create records: {e}") from e

        for record in created:
            self.session.refresh(record)

        logger.info(f"Created {len(created)} records")
        return created

    def query_by_date_range(self, start: Optional[date] = None,
                            end: Optional[date] = None) -> List[Record]:
        query = self.session.query(Record)

        if start:
            query = query.filter(Record.date >= start)
        if end:
            query = query.filter(Record.date <= end)

        try:
            return query.order_by(Record.id).all()
        except SQLAlchemyError as e:
            raise StoreError(f"Could not query records: {e}") from e

    def list_all(self) -> List[Record]:
        return self.query_by_date_range()

    def get_by_id(self, record_id: int) -> Optional[Record]:
        try:
            return self.session.get(Record, record_id)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load record {record_id}: {e}") from e
