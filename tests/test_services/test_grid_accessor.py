"""Tests for the openpyxl grid accessor."""

from pathlib import Path

import pytest
from openpyxl import load_workbook

from excel_processor.services.grid_accessor import (
    OpenpyxlGridAccessor,
    open_workbook,
)
from excel_processor.utils.exceptions import (
    SheetNotFoundError,
    WorkbookOpenError,
    WorkbookWriteError,
)


@pytest.fixture
def accessor() -> OpenpyxlGridAccessor:
    return OpenpyxlGridAccessor()


class TestOpen:
    """Tests for opening workbooks."""

    def test_missing_file(self, accessor: OpenpyxlGridAccessor, tmp_path: Path) -> None:
        with pytest.raises(WorkbookOpenError) as exc_info:
            accessor.open(tmp_path / "missing.xlsx")
        assert exc_info.value.details["reason"] == "file does not exist"

    def test_garbage_file(self, accessor: OpenpyxlGridAccessor, tmp_path: Path) -> None:
        path = tmp_path / "garbage.xlsx"
        path.write_bytes(b"this is not a workbook")

        with pytest.raises(WorkbookOpenError):
            accessor.open(path)

    def test_lists_sheets_in_order(
        self, accessor: OpenpyxlGridAccessor, template_workbook: Path
    ) -> None:
        with open_workbook(accessor, template_workbook) as handle:
            assert accessor.list_sheets(handle) == ["Template", "Other"]


class TestReadRows:
    """Tests for reading ragged rows."""

    def test_trailing_blanks_trimmed(
        self, accessor: OpenpyxlGridAccessor, workbook_factory
    ) -> None:
        path = workbook_factory(
            {"Data": {"A1": "a", "B1": 1, "B2": 2.5, "C3": None}}
        )

        with open_workbook(accessor, path) as handle:
            rows = accessor.read_rows(handle, "Data")

        assert rows == [["a", "1"], ["", "2.5"]]

    def test_booleans_and_integral_floats(
        self, accessor: OpenpyxlGridAccessor, workbook_factory
    ) -> None:
        path = workbook_factory({"Data": {"A1": True, "B1": 30.0, "C1": False}})

        with open_workbook(accessor, path) as handle:
            rows = accessor.read_rows(handle, "Data")

        assert rows == [["TRUE", "30", "FALSE"]]

    def test_interior_blank_rows_kept(
        self, accessor: OpenpyxlGridAccessor, rowwise_workbook: Path
    ) -> None:
        with open_workbook(accessor, rowwise_workbook) as handle:
            rows = accessor.read_rows(handle, "Data")

        assert len(rows) == 13
        assert rows[0] == ["Quarterly report"]
        assert rows[1] == []
        assert rows[10][8] == "1"

    def test_unknown_sheet(
        self, accessor: OpenpyxlGridAccessor, sales_workbook: Path
    ) -> None:
        with open_workbook(accessor, sales_workbook) as handle:
            with pytest.raises(SheetNotFoundError) as exc_info:
                accessor.read_rows(handle, "Nope")

        assert exc_info.value.details["available_sheets"] == ["Sales"]


class TestUsedColumnBound:
    def test_bound_is_last_used_column(
        self, accessor: OpenpyxlGridAccessor, template_workbook: Path
    ) -> None:
        with open_workbook(accessor, template_workbook) as handle:
            assert accessor.used_column_bound(handle, "Template") == "M"
            assert accessor.used_column_bound(handle, "Other") == "A"

    def test_empty_sheet_has_no_bound(
        self, accessor: OpenpyxlGridAccessor, workbook_factory
    ) -> None:
        path = workbook_factory({"Empty": {}})

        with open_workbook(accessor, path) as handle:
            assert accessor.used_column_bound(handle, "Empty") is None


class TestWriteAndSave:
    """Tests for cell writes and atomic saves."""

    def test_set_cell_and_save(
        self, accessor: OpenpyxlGridAccessor, sales_workbook: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "out" / "result.xlsx"

        with open_workbook(accessor, sales_workbook) as handle:
            accessor.set_cell(handle, "Sales", "C2", 99.0)
            saved = accessor.save(handle, output)

        assert saved == output
        wb = load_workbook(output)
        assert wb["Sales"]["C2"].value == 99
        assert wb["Sales"]["A1"].value == "N"
        assert sorted(p.name for p in output.parent.iterdir()) == ["result.xlsx"]

    def test_save_leaves_source_untouched(
        self, accessor: OpenpyxlGridAccessor, sales_workbook: Path, tmp_path: Path
    ) -> None:
        before = sales_workbook.read_bytes()

        with open_workbook(accessor, sales_workbook) as handle:
            accessor.set_cell(handle, "Sales", "A1", "changed")
            accessor.save(handle, tmp_path / "copy.xlsx")

        assert sales_workbook.read_bytes() == before

    def test_set_cell_text_is_never_a_formula(
        self, accessor: OpenpyxlGridAccessor, sales_workbook: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "text.xlsx"

        with open_workbook(accessor, sales_workbook) as handle:
            accessor.set_cell(handle, "Sales", "C1", "=1+1")
            accessor.save(handle, output)

        cell = load_workbook(output)["Sales"]["C1"]
        assert cell.value == "=1+1"
        assert cell.data_type == "s"

    def test_set_cell_bad_address(
        self, accessor: OpenpyxlGridAccessor, sales_workbook: Path
    ) -> None:
        with open_workbook(accessor, sales_workbook) as handle:
            with pytest.raises(WorkbookWriteError) as exc_info:
                accessor.set_cell(handle, "Sales", "11L", 1)

        assert exc_info.value.details["cell"] == "11L"

    def test_set_cell_unknown_sheet(
        self, accessor: OpenpyxlGridAccessor, sales_workbook: Path
    ) -> None:
        with open_workbook(accessor, sales_workbook) as handle:
            with pytest.raises(SheetNotFoundError):
                accessor.set_cell(handle, "Missing", "A1", 1)

    def test_formulas_kept_when_requested(
        self, accessor: OpenpyxlGridAccessor, template_workbook: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "kept.xlsx"

        with open_workbook(accessor, template_workbook, keep_formulas=True) as handle:
            accessor.save(handle, output)

        assert load_workbook(output)["Template"]["L14"].value == "=SUM(L11:L13)"
