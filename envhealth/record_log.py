# file: envhealth/record_log.py

import json
import logging
import os
import tempfile
from typing import List
from uuid import UUID

from pydantic import TypeAdapter, ValidationError

from envhealth.errors import StorageError
from envhealth.models import Record

_records_adapter = TypeAdapter(List[Record])


class RecordLog:
    """Insertion-ordered record log persisted as one JSON file.

    Every mutation rewrites the whole file. Readers get a copy of the list,
    so appends made while an export runs are not visible to it.
    """

    def __init__(self, path: str):
        self.path = path
        self._records: List[Record] = []

    def load(self) -> None:
        """Read the log from disk; a missing file is an empty log."""
        if not os.path.exists(self.path):
            logging.info(f"No record log at {self.path}, starting empty")
            self._records = []
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self._records = _records_adapter.validate_python(data)
        except (OSError, ValueError, ValidationError) as e:
            logging.error(f"Failed to load entries from {self.path}: {e}")
            raise StorageError(f"Failed to load entries: {e}")
        logging.info(f"Loaded {len(self._records)} records from {self.path}")

    def save(self) -> None:
        """Rewrite the file from the in-memory log."""
        self._write(self._records)

    def _write(self, records: List[Record]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(_records_adapter.dump_python(records, mode="json"), f, indent=2)
            os.replace(tmp_path, self.path)
            tmp_path = None
        except (OSError, ValueError) as e:
            logging.error(f"Failed to save entries to {self.path}: {e}")
            raise StorageError(f"Failed to save entries: {e}")
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def _commit(self, records: List[Record]) -> None:
        # in-memory state only changes once the file is written
        self._write(records)
        self._records = records

    def snapshot(self) -> List[Record]:
        return list(self._records)

    def get(self, record_id: UUID) -> Record:
        for record in self._records:
            if record.id == record_id:
                return record
        raise KeyError(record_id)

    def _index_of(self, record_id: UUID) -> int:
        for i, record in enumerate(self._records):
            if record.id == record_id:
                return i
        raise KeyError(record_id)

    def append(self, record: Record) -> Record:
        if any(existing.id == record.id for existing in self._records):
            raise ValueError(f"Record {record.id} already exists")
        self._commit(self._records + [record])
        return record

    def replace(self, record: Record) -> Record:
        """Swap the stored record that has the same id."""
        index = self._index_of(record.id)
        records = list(self._records)
        records[index] = record
        self._commit(records)
        return record

    def remove(self, record_id: UUID) -> Record:
        index = self._index_of(record_id)
        records = list(self._records)
        removed = records.pop(index)
        self._commit(records)
        return removed

    def __len__(self) -> int:
        return len(self._records)
