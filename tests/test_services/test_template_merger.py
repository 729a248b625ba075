"""Tests for merging values into template workbooks."""

from pathlib import Path

import pytest
from openpyxl import load_workbook

from excel_processor.services.grid_accessor import open_workbook
from excel_processor.services.row_calculator import (
    RowFormulaSpec,
    compute_row_wise,
)
from excel_processor.services.sheet_materializer import SheetMaterializer
from excel_processor.services.template_merger import (
    MergeEntry,
    MergeTarget,
    TemplateMerger,
    to_cell_value,
)
from excel_processor.utils.exceptions import (
    InvalidRangeError,
    MissingAddressError,
    TargetNotFoundError,
    WorkbookOpenError,
    WorkbookWriteError,
)


@pytest.fixture
def merger() -> TemplateMerger:
    return TemplateMerger()


class TestToCellValue:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, None),
            (5, 5.0),
            (2.5, 2.5),
            ("text", "text"),
            (True, "True"),
        ],
    )
    def test_conversion(self, value: object, expected: object) -> None:
        assert to_cell_value(value) == expected

    def test_integers_become_floats(self) -> None:
        assert isinstance(to_cell_value(5), float)


class TestMergeToFile:
    """Tests for TemplateMerger.merge_to_file."""

    def test_single_target_writes_consecutive_rows(
        self, merger: TemplateMerger, template_workbook: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "merged.xlsx"
        target = MergeTarget.implicit("L", 11, [7, 9, 11])

        outcome = merger.merge_to_file(template_workbook, output, None, [target])

        assert outcome.sheet_name == "Template"
        assert outcome.cells_written == 3
        assert outcome.targets == 1
        assert outcome.output_path == output

        sheet = load_workbook(output)["Template"]
        assert [sheet[f"L{row}"].value for row in (11, 12, 13)] == [7, 9, 11]

    def test_text_starting_with_equals_stays_text(
        self, merger: TemplateMerger, template_workbook: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "merged.xlsx"
        target = MergeTarget.implicit("L", 11, ["=1+1", "-x"])

        merger.merge_to_file(template_workbook, output, None, [target])

        sheet = load_workbook(output)["Template"]
        assert sheet["L11"].value == "=1+1"
        assert sheet["L11"].data_type == "s"
        assert sheet["L12"].value == "-x"
        assert sheet["L12"].data_type == "s"
        assert sheet["L14"].data_type == "f"

    def test_surrounding_cells_and_formulas_unchanged(
        self, merger: TemplateMerger, template_workbook: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "merged.xlsx"
        target = MergeTarget.implicit("L", 11, [7, 9, 11])

        merger.merge_to_file(template_workbook, output, "Template", [target])

        sheet = load_workbook(output)["Template"]
        assert sheet["K11"].value == "keep"
        assert sheet["M12"].value == "note"
        assert sheet["L10"].value == "Total"
        assert sheet["L14"].value == "=SUM(L11:L13)"
        assert load_workbook(output)["Other"]["A1"].value == "second sheet"

    def test_explicit_rows(
        self, merger: TemplateMerger, template_workbook: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "merged.xlsx"
        target = MergeTarget(
            target_column="m",
            entries=[
                MergeEntry(value="first", target_row=20),
                MergeEntry(value=1.5, target_row=3),
            ],
        )

        merger.merge_to_file(template_workbook, output, None, [target])

        sheet = load_workbook(output)["Template"]
        assert sheet["M20"].value == "first"
        assert sheet["M3"].value == 1.5

    def test_several_targets(
        self, merger: TemplateMerger, template_workbook: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "merged.xlsx"
        targets = [
            MergeTarget.implicit("I", 11, [1, 2]),
            MergeTarget.implicit("K", 11, [None, 4]),
        ]

        outcome = merger.merge_to_file(template_workbook, output, None, targets)

        sheet = load_workbook(output)["Template"]
        assert outcome.cells_written == 4
        assert sheet["I12"].value == 2
        assert sheet["K11"].value is None
        assert sheet["K12"].value == 4

    def test_other_sheet_selected_by_name(
        self, merger: TemplateMerger, template_workbook: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "merged.xlsx"

        merger.merge_to_file(
            template_workbook, output, "Other", [MergeTarget.implicit("A", 2, ["x"])]
        )

        assert load_workbook(output)["Other"]["A2"].value == "x"

    def test_row_result_merges_at_computed_rows(
        self,
        merger: TemplateMerger,
        rowwise_workbook: Path,
        template_workbook: Path,
        tmp_path: Path,
    ) -> None:
        sheet = SheetMaterializer().materialize_file(rowwise_workbook, "Data")
        result = compute_row_wise(
            sheet, RowFormulaSpec(["I", "K"], "L", "add", start_row=10, end_row=12)
        )
        output = tmp_path / "merged.xlsx"

        merger.merge_to_file(
            template_workbook, output, None, [MergeTarget.from_row_result(result)]
        )

        merged = load_workbook(output)["Template"]
        assert [merged[f"L{row}"].value for row in (11, 12, 13)] == [7, 9, 11]
        assert merged["L14"].value == "=SUM(L11:L13)"


class TestMergeValidation:
    """A merge that fails validation writes nothing."""

    def _assert_untouched(self, template: Path, before: bytes, output: Path) -> None:
        assert template.read_bytes() == before
        assert not output.exists()

    def test_missing_target_row(
        self, merger: TemplateMerger, template_workbook: Path, tmp_path: Path
    ) -> None:
        before = template_workbook.read_bytes()
        output = tmp_path / "merged.xlsx"
        target = MergeTarget(
            target_column="L",
            entries=[MergeEntry(value=1, target_row=11), MergeEntry(value=2)],
        )

        with pytest.raises(MissingAddressError) as exc_info:
            merger.merge_to_file(template_workbook, output, None, [target])

        assert exc_info.value.details["entry_index"] == 1
        self._assert_untouched(template_workbook, before, output)

    def test_implicit_target_without_start_row(
        self, merger: TemplateMerger, template_workbook: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "merged.xlsx"
        target = MergeTarget(
            target_column="L", entries=[MergeEntry(value=1)], explicit=False
        )

        with pytest.raises(MissingAddressError):
            merger.merge_to_file(template_workbook, output, None, [target])

        assert not output.exists()

    def test_column_past_used_range(
        self, merger: TemplateMerger, template_workbook: Path, tmp_path: Path
    ) -> None:
        before = template_workbook.read_bytes()
        output = tmp_path / "merged.xlsx"
        targets = [
            MergeTarget.implicit("L", 11, [1]),
            MergeTarget.implicit("N", 11, [1]),
        ]

        with pytest.raises(TargetNotFoundError) as exc_info:
            merger.merge_to_file(template_workbook, output, None, targets)

        assert exc_info.value.details["target_column"] == "N"
        assert exc_info.value.details["used_column_bound"] == "M"
        self._assert_untouched(template_workbook, before, output)

    def test_blank_column_right_of_used_range(
        self, merger: TemplateMerger, workbook_factory, tmp_path: Path
    ) -> None:
        template = workbook_factory({"T": {"A1": "a", "K1": "k"}}, name="t.xlsx")
        output = tmp_path / "merged.xlsx"

        with pytest.raises(TargetNotFoundError) as exc_info:
            merger.merge_to_file(
                template, output, None, [MergeTarget.implicit("L", 2, [7])]
            )

        assert exc_info.value.details["used_column_bound"] == "K"
        assert not output.exists()

    def test_write_failure_saves_nothing(
        self, merger: TemplateMerger, template_workbook: Path, tmp_path: Path
    ) -> None:
        before = template_workbook.read_bytes()
        output = tmp_path / "merged.xlsx"
        target = MergeTarget.implicit("L", 11, [1, "bad\x01", 3])

        with pytest.raises(WorkbookWriteError) as exc_info:
            merger.merge_to_file(template_workbook, output, None, [target])

        assert exc_info.value.details["cell"] == "L12"
        self._assert_untouched(template_workbook, before, output)

    def test_unknown_sheet(
        self, merger: TemplateMerger, template_workbook: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "merged.xlsx"

        with pytest.raises(TargetNotFoundError) as exc_info:
            merger.merge_to_file(
                template_workbook,
                output,
                "Missing",
                [MergeTarget.implicit("A", 1, [1])],
            )

        assert exc_info.value.details["available_sheets"] == ["Template", "Other"]
        assert not output.exists()

    def test_row_below_one(
        self, merger: TemplateMerger, template_workbook: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "merged.xlsx"
        target = MergeTarget(
            target_column="L", entries=[MergeEntry(value=1, target_row=0)]
        )

        with pytest.raises(InvalidRangeError):
            merger.merge_to_file(template_workbook, output, None, [target])

        assert not output.exists()

    def test_empty_template_sheet_has_no_targets(
        self, merger: TemplateMerger, workbook_factory, tmp_path: Path
    ) -> None:
        template = workbook_factory({"Blank": {}}, name="blank.xlsx")

        with pytest.raises(TargetNotFoundError):
            merger.merge_to_file(
                template,
                tmp_path / "merged.xlsx",
                None,
                [MergeTarget.implicit("A", 1, [1])],
            )

    def test_missing_template(self, merger: TemplateMerger, tmp_path: Path) -> None:
        with pytest.raises(WorkbookOpenError):
            merger.merge_to_file(
                tmp_path / "absent.xlsx",
                tmp_path / "merged.xlsx",
                None,
                [MergeTarget.implicit("A", 1, [1])],
            )


class TestHandleMerges:
    """Merges against an open template handle."""

    def test_merge_single_then_save(
        self, merger: TemplateMerger, template_workbook: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "merged.xlsx"

        with open_workbook(
            merger.accessor, template_workbook, keep_formulas=True
        ) as handle:
            outcome = merger.merge_single(handle, "", "L", 11, [7, 9, 11])
            merger.save(handle, output)

        assert outcome.sheet_name == "Template"
        sheet = load_workbook(output)["Template"]
        assert [sheet[f"L{row}"].value for row in (11, 12, 13)] == [7, 9, 11]

    def test_merge_row_result(
        self,
        merger: TemplateMerger,
        rowwise_workbook: Path,
        template_workbook: Path,
        tmp_path: Path,
    ) -> None:
        sheet = SheetMaterializer().materialize_file(rowwise_workbook, "Data")
        result = compute_row_wise(
            sheet, RowFormulaSpec(["I"], "M", "copy", start_row=11, end_row=12)
        )
        output = tmp_path / "merged.xlsx"

        with open_workbook(merger.accessor, template_workbook) as handle:
            outcome = merger.merge_row_result(handle, "Template", result)
            merger.save(handle, output)

        merged = load_workbook(output)["Template"]
        assert outcome.cells_written == 2
        assert merged["M12"].value == 2
        assert merged["M13"].value == 3
