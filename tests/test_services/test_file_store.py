"""Tests for the uploaded file registry."""

import threading

import pytest

from excel_processor.services.file_store import (
    FileKind,
    FileRecordStore,
    get_file_store,
    reset_file_store,
)
from excel_processor.utils.exceptions import FileRecordNotFoundError


@pytest.fixture
def store() -> FileRecordStore:
    return FileRecordStore()


class TestFileRecordStore:
    """Tests for FileRecordStore."""

    def test_add_and_get(self, store: FileRecordStore) -> None:
        record = store.add(
            file_name="sales.xlsx",
            file_path="/tmp/uploads/abc.xlsx",
            file_size=1024,
            kind=FileKind.SOURCE,
            province_id=1,
            unit_id=2,
        )

        assert store.get_file_by_id(record.file_id) is record
        assert record.kind is FileKind.SOURCE
        assert store.count() == 1

    def test_ids_are_unique(self, store: FileRecordStore) -> None:
        first = store.add("a.xlsx", "/tmp/a.xlsx", 1, FileKind.SOURCE)
        second = store.add("a.xlsx", "/tmp/a.xlsx", 1, FileKind.SOURCE)

        assert first.file_id != second.file_id

    def test_unknown_id(self, store: FileRecordStore) -> None:
        with pytest.raises(FileRecordNotFoundError) as exc_info:
            store.get_file_by_id("missing")

        assert exc_info.value.details["file_id"] == "missing"

    def test_list_filters_by_kind(self, store: FileRecordStore) -> None:
        source = store.add("s.xlsx", "/tmp/s.xlsx", 1, FileKind.SOURCE)
        template = store.add("t.xlsx", "/tmp/t.xlsx", 1, FileKind.TEMPLATE)

        assert store.list_files() == [source, template]
        assert store.list_files(FileKind.TEMPLATE) == [template]
        assert store.list_files(FileKind.SOURCE) == [source]

    def test_remove(self, store: FileRecordStore) -> None:
        record = store.add("s.xlsx", "/tmp/s.xlsx", 1, FileKind.SOURCE)

        assert store.remove(record.file_id) is record
        assert store.count() == 0
        with pytest.raises(FileRecordNotFoundError):
            store.remove(record.file_id)

    def test_clear_all(self, store: FileRecordStore) -> None:
        store.add("s.xlsx", "/tmp/s.xlsx", 1, FileKind.SOURCE)
        store.clear_all()

        assert store.count() == 0

    def test_to_dict(self, store: FileRecordStore) -> None:
        record = store.add("t.xlsx", "/tmp/t.xlsx", 10, FileKind.TEMPLATE)

        data = record.to_dict()

        assert data["kind"] == "template"
        assert data["file_size"] == 10
        assert data["province_id"] is None
        assert data["created_at"] == record.created_at.isoformat()

    def test_concurrent_adds(self, store: FileRecordStore) -> None:
        def worker() -> None:
            for _ in range(50):
                store.add("x.xlsx", "/tmp/x.xlsx", 1, FileKind.SOURCE)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert store.count() == 200


class TestGlobalFileStore:
    def test_singleton(self) -> None:
        assert get_file_store() is get_file_store()

    def test_reset(self) -> None:
        first = get_file_store()
        first.add("s.xlsx", "/tmp/s.xlsx", 1, FileKind.SOURCE)

        reset_file_store()

        assert get_file_store() is not first
        assert get_file_store().count() == 0
