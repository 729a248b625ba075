"""Dataclasses representing a materialized worksheet."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Integral floats beyond this render in exponent form
_INTEGRAL_RENDER_LIMIT = 1e21


class CellKind(str, Enum):
    """Kind of a typed cell value."""

    NUMBER = "number"
    TEXT = "text"
    EMPTY = "empty"


@dataclass(frozen=True)
class CellValue:
    """A typed cell: a number, a text string, or empty.

    Empty is distinct from ``Text("")`` and from ``Number(0)``.
    """

    kind: CellKind
    number: float | None = None
    text: str | None = None

    @classmethod
    def of_number(cls, value: float) -> CellValue:
        return cls(kind=CellKind.NUMBER, number=float(value))

    @classmethod
    def of_text(cls, value: str) -> CellValue:
        return cls(kind=CellKind.TEXT, text=value)

    @property
    def is_number(self) -> bool:
        return self.kind is CellKind.NUMBER

    @property
    def is_empty(self) -> bool:
        return self.kind is CellKind.EMPTY

    def to_python(self) -> float | str | None:
        """Return the plain Python value (float, str, or None for empty)."""
        if self.kind is CellKind.NUMBER:
            return self.number
        if self.kind is CellKind.TEXT:
            return self.text
        return None

    def render(self) -> str:
        """Render the value as text, as used for group keys.

        Integral numbers render without a fractional part, so the number 30
        and the text "30" render identically.
        """
        if self.kind is CellKind.NUMBER:
            assert self.number is not None
            return format_number(self.number)
        if self.kind is CellKind.TEXT:
            return self.text or ""
        return ""


EMPTY_CELL = CellValue(kind=CellKind.EMPTY)


def format_number(value: float) -> str:
    """Format a float the shortest way, dropping ``.0`` from integral values."""
    if (
        math.isfinite(value)
        and value.is_integer()
        and abs(value) < _INTEGRAL_RENDER_LIMIT
    ):
        return str(int(value))
    return repr(value)


MaterializedRow = dict[str, CellValue]
"""Column identifier -> typed value, ordered by column."""


@dataclass
class MaterializedSheet:
    """A sheet converted to typed, column-padded rows.

    Row index 0 is the first physical row; no header row is skipped.
    """

    name: str
    columns: tuple[str, ...]
    rows: list[MaterializedRow] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_records(self) -> list[dict[str, Any]]:
        """Rows as plain dictionaries of Python values (None for empty)."""
        return [
            {column: cell.to_python() for column, cell in row.items()}
            for row in self.rows
        ]


@dataclass
class SheetInfo:
    """Summary of one worksheet within a workbook."""

    name: str
    columns: list[str]
    row_count: int
