"""Grid reader/writer over Excel workbooks using openpyxl.

The accessor is the only code that touches the spreadsheet codec. It exposes
sheets as ragged rows of raw text, reports the used-column bound, writes
single cells and saves workbooks; it carries no business rules.
"""

from __future__ import annotations

import os
import tempfile
import zipfile
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any, Protocol

from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import (
    CellCoordinatesException,
    IllegalCharacterError,
    InvalidFileException,
)
from openpyxl.worksheet.worksheet import Worksheet

from excel_processor.excel_document import format_number
from excel_processor.utils.exceptions import (
    SheetNotFoundError,
    SheetReadError,
    WorkbookOpenError,
    WorkbookWriteError,
)
from excel_processor.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class WorkbookHandle:
    """An open workbook and the path it was loaded from."""

    path: Path
    workbook: Workbook
    keep_formulas: bool = False


class GridAccessor(Protocol):
    """Capability boundary over a spreadsheet codec."""

    def open(self, path: Path, *, keep_formulas: bool = False) -> WorkbookHandle: ...

    def list_sheets(self, handle: WorkbookHandle) -> list[str]: ...

    def read_rows(self, handle: WorkbookHandle, sheet_name: str) -> list[list[str]]: ...

    def used_column_bound(
        self, handle: WorkbookHandle, sheet_name: str
    ) -> str | None: ...

    def set_cell(
        self, handle: WorkbookHandle, sheet_name: str, address: str, value: Any
    ) -> None: ...

    def save(self, handle: WorkbookHandle, path: Path) -> Path: ...

    def close(self, handle: WorkbookHandle) -> None: ...


class OpenpyxlGridAccessor:
    """GridAccessor backed by openpyxl."""

    def open(self, path: Path, *, keep_formulas: bool = False) -> WorkbookHandle:
        """Load a workbook.

        Args:
            path: Workbook location.
            keep_formulas: Load formulas instead of their cached values. Used
                for templates, so saving does not flatten their formulas.

        Raises:
            WorkbookOpenError: If the file is missing or not a readable workbook.
        """
        path = Path(path)
        if not path.exists():
            raise WorkbookOpenError(str(path), reason="file does not exist")
        try:
            workbook = load_workbook(filename=path, data_only=not keep_formulas)
        except (
            InvalidFileException,
            zipfile.BadZipFile,
            KeyError,
            OSError,
            ValueError,
        ) as e:
            raise WorkbookOpenError(str(path), reason=str(e)) from e

        logger.debug("Workbook opened", path=str(path), sheets=len(workbook.sheetnames))
        return WorkbookHandle(path=path, workbook=workbook, keep_formulas=keep_formulas)

    def list_sheets(self, handle: WorkbookHandle) -> list[str]:
        return list(handle.workbook.sheetnames)

    def read_rows(self, handle: WorkbookHandle, sheet_name: str) -> list[list[str]]:
        """Read every row of a sheet as raw text.

        Rows are ragged: trailing blank cells are dropped from each row, and
        trailing blank rows are dropped from the sheet.
        """
        sheet = self._worksheet(handle, sheet_name)
        rows: list[list[str]] = []
        try:
            for values in sheet.iter_rows(values_only=True):
                row = [_to_text(value) for value in values]
                while row and row[-1] == "":
                    row.pop()
                rows.append(row)
        except (TypeError, ValueError) as e:
            raise SheetReadError(sheet_name, reason=str(e)) from e

        while rows and not rows[-1]:
            rows.pop()
        return rows

    def used_column_bound(self, handle: WorkbookHandle, sheet_name: str) -> str | None:
        """Letter of the sheet's last used column, or None for an empty sheet."""
        sheet = self._worksheet(handle, sheet_name)
        max_column = sheet.max_column or 0
        if max_column < 1:
            return None
        if max_column == 1 and sheet.max_row == 1:
            if sheet.cell(row=1, column=1).value is None:
                return None
        return get_column_letter(max_column)

    def set_cell(
        self, handle: WorkbookHandle, sheet_name: str, address: str, value: Any
    ) -> None:
        """Write a single value.

        Strings are always stored as text cells, so a value such as "=1+1"
        is kept literally rather than becoming a formula.

        Raises:
            SheetNotFoundError: If the sheet does not exist.
            WorkbookWriteError: If the address or value is rejected.
        """
        sheet = self._worksheet(handle, sheet_name)
        try:
            cell = sheet[address]
            cell.value = value
            if isinstance(value, str):
                cell.data_type = "s"
        except (
            CellCoordinatesException,
            IllegalCharacterError,
            AttributeError,
            TypeError,
            ValueError,
        ) as e:
            raise WorkbookWriteError(
                message=f"Failed to write cell {address}: {e}",
                sheet_name=sheet_name,
                cell=address,
            ) from e

    def save(self, handle: WorkbookHandle, path: Path) -> Path:
        """Save the workbook to ``path`` atomically.

        The workbook is written to a temporary file next to the destination
        and renamed into place, so the destination is either complete or
        untouched.

        Raises:
            WorkbookWriteError: On any I/O failure.
        """
        path = Path(path)
        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                suffix=path.suffix or ".xlsx", dir=str(path.parent)
            )
            os.close(fd)
            handle.workbook.save(tmp_name)
            os.replace(tmp_name, path)
        except OSError as e:
            raise WorkbookWriteError(
                message=f"Failed to save workbook: {e}",
                file_path=str(path),
            ) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.remove(tmp_name)

        logger.info("Workbook saved", path=str(path))
        return path

    def close(self, handle: WorkbookHandle) -> None:
        handle.workbook.close()

    @staticmethod
    def _worksheet(handle: WorkbookHandle, sheet_name: str) -> Worksheet:
        workbook = handle.workbook
        if sheet_name not in workbook.sheetnames:
            raise SheetNotFoundError(sheet_name, available=list(workbook.sheetnames))
        sheet = workbook[sheet_name]
        if not isinstance(sheet, Worksheet):
            raise SheetReadError(sheet_name, reason="not a worksheet")
        return sheet


@contextmanager
def open_workbook(
    accessor: GridAccessor, path: Path, *, keep_formulas: bool = False
) -> Generator[WorkbookHandle, None, None]:
    """Open a workbook through ``accessor`` and close it on exit."""
    handle = accessor.open(path, keep_formulas=keep_formulas)
    try:
        yield handle
    finally:
        accessor.close(handle)


def _to_text(value: Any) -> str:
    """Render a codec value the way it appears as cell text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format_number(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    return str(value)
