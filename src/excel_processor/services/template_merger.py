"""Writing computed values into the cells of a template workbook.

A merge is planned in full before anything is written: sheet, column and
address problems surface as errors while the workbook is still untouched, and
the workbook is only saved once every cell write has succeeded.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from excel_processor.services.cell_parser import (
    cell_address,
    column_to_number,
    normalize_column,
)
from excel_processor.services.grid_accessor import (
    GridAccessor,
    OpenpyxlGridAccessor,
    WorkbookHandle,
    open_workbook,
)
from excel_processor.services.row_calculator import RowFormulaResult
from excel_processor.utils.exceptions import (
    InvalidRangeError,
    MissingAddressError,
    TargetNotFoundError,
)
from excel_processor.utils.logging import get_logger, timed_operation

logger = get_logger(__name__)


@dataclass
class MergeEntry:
    """One value to merge, optionally with its own 1-based destination row."""

    value: Any
    target_row: int | None = None


@dataclass
class MergeTarget:
    """Values destined for one template column.

    Explicit targets take each entry's ``target_row``. Implicit targets place
    entry ``i`` at ``start_row + i``.
    """

    target_column: str
    entries: list[MergeEntry] = field(default_factory=list)
    start_row: int | None = None
    explicit: bool = True

    @classmethod
    def implicit(
        cls, target_column: str, start_row: int, values: Sequence[Any]
    ) -> MergeTarget:
        return cls(
            target_column=target_column,
            entries=[MergeEntry(value=value) for value in values],
            start_row=start_row,
            explicit=False,
        )

    @classmethod
    def from_row_result(cls, result: RowFormulaResult) -> MergeTarget:
        """Explicit target placing each computed value at its own row."""
        return cls(
            target_column=result.target_column,
            entries=[
                MergeEntry(value=entry.computed_value, target_row=entry.row_number)
                for entry in result.results
            ],
        )


@dataclass
class MergeOutcome:
    """What a merge wrote."""

    sheet_name: str
    cells_written: int
    targets: int
    output_path: Path | None = None


def to_cell_value(value: Any) -> Any:
    """Value as it is stored in a cell.

    Numbers are stored as numbers and None clears the cell; anything else,
    booleans included, is stored as its text form.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)):
        return float(value)
    return str(value)


class TemplateMerger:
    """Merge values into template workbooks through a GridAccessor."""

    def __init__(self, accessor: GridAccessor | None = None) -> None:
        self.accessor = accessor or OpenpyxlGridAccessor()

    def resolve_sheet(self, handle: WorkbookHandle, template_sheet: str | None) -> str:
        """Name of the sheet to merge into; defaults to the first sheet.

        Raises:
            TargetNotFoundError: If the sheet does not exist.
        """
        sheets = self.accessor.list_sheets(handle)
        if template_sheet is None or template_sheet == "":
            if not sheets:
                raise TargetNotFoundError(message="Template has no sheets")
            return sheets[0]
        if template_sheet not in sheets:
            raise TargetNotFoundError(
                message=f"Sheet not found in template: {template_sheet}",
                sheet_name=template_sheet,
                details={"available_sheets": sheets},
            )
        return template_sheet

    def plan(
        self,
        handle: WorkbookHandle,
        sheet_name: str,
        targets: Sequence[MergeTarget],
    ) -> list[tuple[str, Any]]:
        """Validate every target and resolve the cells to write.

        Returns:
            ``(address, value)`` pairs in write order.

        Raises:
            TargetNotFoundError: If a column lies past the sheet's used columns.
            MissingAddressError: If an entry or target lacks its row.
            InvalidRangeError: If a destination row is below 1.
        """
        bound = self.accessor.used_column_bound(handle, sheet_name)
        bound_number = column_to_number(bound) if bound else 0

        writes: list[tuple[str, Any]] = []
        for target in targets:
            column = normalize_column(target.target_column)
            if column_to_number(column) > bound_number:
                raise TargetNotFoundError(
                    message=(
                        f"Column {column} is outside the used range of sheet "
                        f"{sheet_name}"
                    ),
                    sheet_name=sheet_name,
                    target_column=column,
                    details={"used_column_bound": bound},
                )

            if not target.explicit and target.start_row is None:
                raise MissingAddressError(
                    target_column=column,
                    message=f"start_row missing for implicit target column {column}",
                )

            for index, entry in enumerate(target.entries):
                if target.explicit:
                    if entry.target_row is None:
                        raise MissingAddressError(
                            target_column=column, entry_index=index
                        )
                    row = entry.target_row
                else:
                    assert target.start_row is not None
                    row = target.start_row + index
                if row < 1:
                    raise InvalidRangeError(
                        message=f"Destination row must be 1 or greater, got {row}",
                        row=row,
                        sheet_name=sheet_name,
                        details={"target_column": column, "entry_index": index},
                    )
                writes.append((cell_address(column, row), to_cell_value(entry.value)))
        return writes

    def merge_multi(
        self,
        handle: WorkbookHandle,
        template_sheet: str | None,
        targets: Sequence[MergeTarget],
    ) -> MergeOutcome:
        """Merge several targets into one sheet of an open template.

        Nothing is written unless every target validates. A failed cell write
        aborts the remaining writes; the caller must not save the handle then.
        """
        sheet_name = self.resolve_sheet(handle, template_sheet)
        writes = self.plan(handle, sheet_name, targets)

        with timed_operation(logger, "template_merge") as metrics:
            for address, value in writes:
                self.accessor.set_cell(handle, sheet_name, address, value)
                metrics.cells_written += 1
            metrics.custom_metrics["targets"] = len(targets)

        return MergeOutcome(
            sheet_name=sheet_name,
            cells_written=len(writes),
            targets=len(targets),
        )

    def merge_single(
        self,
        handle: WorkbookHandle,
        template_sheet: str | None,
        target_column: str,
        start_row: int,
        values: Sequence[Any],
    ) -> MergeOutcome:
        """Write ``values[i]`` to ``target_column`` at row ``start_row + i``."""
        target = MergeTarget.implicit(target_column, start_row, values)
        return self.merge_multi(handle, template_sheet, [target])

    def merge_row_result(
        self,
        handle: WorkbookHandle,
        template_sheet: str | None,
        result: RowFormulaResult,
    ) -> MergeOutcome:
        """Write each computed value at its own row in the result's target column."""
        target = MergeTarget.from_row_result(result)
        return self.merge_multi(handle, template_sheet, [target])

    def save(self, handle: WorkbookHandle, path: Path) -> Path:
        return self.accessor.save(handle, path)

    def merge_to_file(
        self,
        template_path: Path,
        output_path: Path,
        template_sheet: str | None,
        targets: Sequence[MergeTarget],
    ) -> MergeOutcome:
        """Open a template, merge ``targets`` and save to ``output_path``.

        Template formulas are preserved. The template file itself is never
        written, and nothing is saved when the merge fails.
        """
        with open_workbook(self.accessor, template_path, keep_formulas=True) as handle:
            outcome = self.merge_multi(handle, template_sheet, targets)
            outcome.output_path = self.save(handle, output_path)

        logger.info(
            "Template merged",
            template=Path(template_path).name,
            sheet=outcome.sheet_name,
            cells_written=outcome.cells_written,
            output=str(output_path),
        )
        return outcome
