"""Conversion of raw sheet grids into typed, column-padded rows."""

from __future__ import annotations

from pathlib import Path

from excel_processor.config import settings
from excel_processor.excel_document import (
    EMPTY_CELL,
    MaterializedRow,
    MaterializedSheet,
    SheetInfo,
)
from excel_processor.services.cell_parser import (
    column_span,
    column_to_number,
    parse_cell,
)
from excel_processor.services.grid_accessor import (
    GridAccessor,
    OpenpyxlGridAccessor,
    WorkbookHandle,
    open_workbook,
)
from excel_processor.utils.exceptions import SheetReadError
from excel_processor.utils.logging import get_logger

logger = get_logger(__name__)


class SheetMaterializer:
    """Build MaterializedSheets from workbooks through a GridAccessor."""

    def __init__(
        self,
        accessor: GridAccessor | None = None,
        default_column_span: int | None = None,
    ) -> None:
        """Initialize the materializer.

        Args:
            accessor: Grid accessor to read through. Defaults to openpyxl.
            default_column_span: Columns used when a sheet reports no
                used-column bound. Defaults to ``settings.default_column_span``.
        """
        self.accessor = accessor or OpenpyxlGridAccessor()
        self.default_column_span = (
            default_column_span
            if default_column_span is not None
            else settings.default_column_span
        )

    def columns_for(self, handle: WorkbookHandle, sheet_name: str) -> tuple[str, ...]:
        """Column set of a sheet, A through its used-column bound.

        Falls back to the default span when the bound is unknown, so callers
        always get a non-empty set to index into.
        """
        bound = self.accessor.used_column_bound(handle, sheet_name)
        count = column_to_number(bound) if bound else 0
        if count <= 0:
            count = self.default_column_span
        return column_span(count)

    def materialize(self, handle: WorkbookHandle, sheet_name: str) -> MaterializedSheet:
        """Materialize every physical row of a sheet.

        Raises:
            SheetNotFoundError: If the sheet does not exist.
            SheetReadError: If the codec cannot produce rows.
        """
        raw_rows = self.accessor.read_rows(handle, sheet_name)
        columns = self.columns_for(handle, sheet_name)

        rows: list[MaterializedRow] = []
        for raw in raw_rows:
            row: MaterializedRow = {}
            for index, column in enumerate(columns):
                if index < len(raw) and raw[index].strip():
                    row[column] = parse_cell(raw[index])
                else:
                    row[column] = EMPTY_CELL
            rows.append(row)

        logger.debug(
            "Sheet materialized",
            sheet=sheet_name,
            rows=len(rows),
            columns=len(columns),
        )
        return MaterializedSheet(name=sheet_name, columns=columns, rows=rows)

    def materialize_file(self, path: Path, sheet_name: str) -> MaterializedSheet:
        """Open ``path``, materialize one sheet, and close the workbook."""
        with open_workbook(self.accessor, path) as handle:
            return self.materialize(handle, sheet_name)

    def describe_sheets(self, path: Path) -> list[SheetInfo]:
        """Name, column set and row count of every readable sheet.

        Sheets the codec cannot read (chart sheets, for example) are skipped.
        """
        sheets: list[SheetInfo] = []
        with open_workbook(self.accessor, path) as handle:
            for name in self.accessor.list_sheets(handle):
                try:
                    row_count = len(self.accessor.read_rows(handle, name))
                except SheetReadError as e:
                    logger.warning(
                        "Skipping unreadable sheet", sheet=name, error=str(e)
                    )
                    continue
                sheets.append(
                    SheetInfo(
                        name=name,
                        columns=list(self.columns_for(handle, name)),
                        row_count=row_count,
                    )
                )
        return sheets
