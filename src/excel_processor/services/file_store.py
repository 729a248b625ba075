"""In-memory registry of uploaded source files and templates.

Records map an opaque file id to the stored workbook on disk. The registry is
process-wide and thread-safe; it is not persisted across restarts.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from excel_processor.utils.exceptions import FileRecordNotFoundError
from excel_processor.utils.logging import get_logger

logger = get_logger(__name__)


class FileKind(str, Enum):
    """Role of an uploaded workbook."""

    SOURCE = "source"
    TEMPLATE = "template"


@dataclass
class FileRecord:
    """An uploaded workbook."""

    file_id: str
    file_name: str
    file_path: str
    file_size: int
    kind: FileKind
    province_id: int | None = None
    unit_id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_id": self.file_id,
            "file_name": self.file_name,
            "file_path": self.file_path,
            "file_size": self.file_size,
            "kind": self.kind.value,
            "province_id": self.province_id,
            "unit_id": self.unit_id,
            "created_at": self.created_at.isoformat(),
        }


class FileRecordStore:
    """Thread-safe storage of FileRecords keyed by file id."""

    def __init__(self) -> None:
        self._records: dict[str, FileRecord] = {}
        self._lock = threading.RLock()

    def add(
        self,
        file_name: str,
        file_path: str,
        file_size: int,
        kind: FileKind,
        province_id: int | None = None,
        unit_id: int | None = None,
    ) -> FileRecord:
        """Register a stored workbook under a new file id.

        Returns:
            The created FileRecord.
        """
        record = FileRecord(
            file_id=str(uuid.uuid4()),
            file_name=file_name,
            file_path=file_path,
            file_size=file_size,
            kind=kind,
            province_id=province_id,
            unit_id=unit_id,
        )
        with self._lock:
            self._records[record.file_id] = record

        logger.info(
            "File registered",
            file_id=record.file_id,
            file_name=file_name,
            kind=kind.value,
        )
        return record

    def get_file_by_id(self, file_id: str) -> FileRecord:
        """Look up a record.

        Raises:
            FileRecordNotFoundError: If no record has this id.
        """
        with self._lock:
            record = self._records.get(file_id)
        if record is None:
            raise FileRecordNotFoundError(file_id)
        return record

    def list_files(self, kind: FileKind | None = None) -> list[FileRecord]:
        """All records, oldest first, optionally restricted to one kind."""
        with self._lock:
            records = list(self._records.values())
        if kind is not None:
            records = [record for record in records if record.kind is kind]
        return sorted(records, key=lambda record: record.created_at)

    def remove(self, file_id: str) -> FileRecord:
        """Forget a record; the file on disk is left alone.

        Raises:
            FileRecordNotFoundError: If no record has this id.
        """
        with self._lock:
            record = self._records.pop(file_id, None)
        if record is None:
            raise FileRecordNotFoundError(file_id)
        return record

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def clear_all(self) -> None:
        """Clear all records. Used primarily for testing."""
        with self._lock:
            self._records.clear()
        logger.info("All file records cleared")


# Global file store instance
_file_store: FileRecordStore | None = None


def get_file_store() -> FileRecordStore:
    """Get the global file store, creating it on first call."""
    global _file_store
    if _file_store is None:
        _file_store = FileRecordStore()
    return _file_store


def reset_file_store() -> None:
    """Reset the global file store. Used primarily for testing."""
    global _file_store
    _file_store = None
