"""Typed parsing of raw text cells and spreadsheet column addressing."""

from __future__ import annotations

import math
import re

from openpyxl.utils import column_index_from_string, get_column_letter

from excel_processor.config import MAX_SHEET_COLUMNS
from excel_processor.excel_document import EMPTY_CELL, CellValue
from excel_processor.utils.exceptions import InvalidRangeError, ValidationError

# Plain decimal with optional exponent; no inf/nan, no underscores
_NUMBER_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_COLUMN_PATTERN = re.compile(r"[A-Z]{1,3}")


def parse_cell(raw: str | None) -> CellValue:
    """Convert a raw text cell into a typed value.

    Commas are treated as thousands separators and the dot as the decimal
    separator. Text that does not parse as a finite number is returned
    unchanged, commas included.

    Args:
        raw: The cell text as read from the sheet.

    Returns:
        ``EMPTY_CELL`` for blank input, otherwise a number or text value.
    """
    if raw is None or not raw.strip():
        return EMPTY_CELL

    cleaned = raw.replace(",", "").strip()
    if _NUMBER_PATTERN.fullmatch(cleaned):
        value = float(cleaned)
        if math.isfinite(value):
            return CellValue.of_number(value)
    return CellValue.of_text(raw)


def normalize_column(column: str) -> str:
    """Upper-case and validate a column identifier such as ``"aa"``.

    Raises:
        ValidationError: If the identifier is not 1-3 letters within XFD.
    """
    candidate = column.strip().upper() if isinstance(column, str) else ""
    if (
        not _COLUMN_PATTERN.fullmatch(candidate)
        or column_index_from_string(candidate) > MAX_SHEET_COLUMNS
    ):
        raise ValidationError(
            message=f"Invalid column identifier: {column!r}",
            field="column",
        )
    return candidate


def column_to_number(column: str) -> int:
    """Convert a column identifier to its 1-based index (A=1, AA=27)."""
    return column_index_from_string(normalize_column(column))


def number_to_column(number: int) -> str:
    """Convert a 1-based column index to its letter code (27 -> "AA")."""
    if not 1 <= number <= MAX_SHEET_COLUMNS:
        raise ValidationError(
            message=f"Column number out of range: {number}",
            field="column",
        )
    return get_column_letter(number)


def column_span(count: int) -> tuple[str, ...]:
    """Column identifiers ``A`` through the ``count``-th column."""
    return tuple(number_to_column(i) for i in range(1, count + 1))


def cell_address(column: str, row: int) -> str:
    """Build a cell address like ``"L11"`` from a column and a 1-based row."""
    if row < 1:
        raise InvalidRangeError(
            message=f"Row must be 1 or greater, got {row}",
            row=row,
        )
    return f"{normalize_column(column)}{row}"
