"""Row-wise formulas across columns of a materialized sheet.

Each row of a contiguous range folds its source column values left to right
with one operation (add, subtract, multiply, divide) or copies the first
source value, producing one computed value per row. Results carry 1-based
row numbers so they can be merged straight back into a template.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, assert_never

from excel_processor.excel_document import MaterializedSheet
from excel_processor.services.cell_parser import normalize_column
from excel_processor.services.operations import RowOperation, parse_operation
from excel_processor.utils.exceptions import InvalidRangeError, ValidationError
from excel_processor.utils.logging import get_logger, timed_operation

logger = get_logger(__name__)

OPERATION_SYMBOLS: dict[RowOperation, str] = {
    RowOperation.ADD: " + ",
    RowOperation.SUBTRACT: " - ",
    RowOperation.MULTIPLY: " × ",
    RowOperation.DIVIDE: " ÷ ",
}


@dataclass
class RowFormulaSpec:
    """A formula applied to every row of a range.

    ``start_row`` and ``end_row`` are 0-based and inclusive; ``end_row``
    defaults to the last row of the sheet.
    """

    source_columns: list[str]
    target_column: str
    operation: RowOperation | str = RowOperation.ADD
    start_row: int = 0
    end_row: int | None = None


@dataclass
class RowResultEntry:
    """Computed value for one sheet row."""

    row_number: int
    computed_value: float | str | None
    source_values: dict[str, Any] = field(default_factory=dict)


@dataclass
class RowFormulaResult:
    """Outcome of a row-wise formula; rows are reported 1-based."""

    source_columns: list[str]
    target_column: str
    operation: RowOperation
    start_row: int
    end_row: int
    formula: str
    sheet_row_count: int
    results: list[RowResultEntry] = field(default_factory=list)
    skipped_divide_rows: int = 0

    @property
    def total_rows(self) -> int:
        return len(self.results)


@dataclass
class ColumnSummary:
    """Summary of the numeric computed values written to one target column."""

    total: float = 0.0
    average: float = 0.0
    min: float = 0.0
    max: float = 0.0
    count: int = 0


@dataclass
class MultiColumnResult:
    """Several row-wise formulas over one range, with per-target summaries."""

    start_row: int
    end_row: int
    sheet_row_count: int
    results: list[RowFormulaResult] = field(default_factory=list)
    summary: dict[str, ColumnSummary] = field(default_factory=dict)


def render_formula(operation: RowOperation, source_columns: list[str]) -> str:
    """Human readable formula, e.g. ``"I + K + M"`` or ``"Copy from I"``."""
    match operation:
        case RowOperation.COPY:
            return f"Copy from {source_columns[0]}"
        case (
            RowOperation.ADD
            | RowOperation.SUBTRACT
            | RowOperation.MULTIPLY
            | RowOperation.DIVIDE
        ):
            return OPERATION_SYMBOLS[operation].join(source_columns)
        case _:
            assert_never(operation)


def resolve_range(
    sheet: MaterializedSheet, start_row: int, end_row: int | None
) -> tuple[int, int]:
    """Resolve a 0-based inclusive row range against the sheet.

    An omitted end row, or one below the start or past the last row, resolves
    to the last row index.

    Raises:
        InvalidRangeError: If ``start_row`` is outside the sheet.
    """
    row_count = sheet.row_count
    if start_row < 0 or start_row >= row_count:
        raise InvalidRangeError(
            message=f"Invalid start row: {start_row} (sheet has {row_count} rows)",
            row=start_row,
            row_count=row_count,
            sheet_name=sheet.name,
        )
    last = row_count - 1
    if end_row is None or end_row < start_row or end_row > last:
        end_row = last
    return start_row, end_row


def _apply(operation: RowOperation, values: list[float]) -> tuple[float, bool]:
    """Fold ``values`` left to right; returns the result and whether a
    divide-by-zero step was skipped."""
    result = values[0]
    skipped = False
    for value in values[1:]:
        match operation:
            case RowOperation.ADD:
                result += value
            case RowOperation.SUBTRACT:
                result -= value
            case RowOperation.MULTIPLY:
                result *= value
            case RowOperation.DIVIDE:
                if value == 0:
                    skipped = True
                else:
                    result /= value
            case RowOperation.COPY:
                break
            case _:
                assert_never(operation)
    return result, skipped


def compute_row_wise(
    sheet: MaterializedSheet, spec: RowFormulaSpec
) -> RowFormulaResult:
    """Apply a row-wise formula to each row of the resolved range.

    Non-numeric source cells count as 0 in arithmetic. Copy takes the first
    source column's typed value unchanged (None for an empty cell).

    Raises:
        InvalidRangeError: If the start row is outside the sheet.
        UnsupportedOperationError: For an unknown operation.
        ValidationError: For missing or malformed columns.
    """
    operation = parse_operation(RowOperation, spec.operation)
    if not spec.source_columns:
        raise ValidationError(
            message="At least one source column is required",
            field="source_columns",
        )
    sources = [normalize_column(column) for column in spec.source_columns]
    target = normalize_column(spec.target_column)
    start, end = resolve_range(sheet, spec.start_row, spec.end_row)

    result = RowFormulaResult(
        source_columns=sources,
        target_column=target,
        operation=operation,
        start_row=start + 1,
        end_row=end + 1,
        formula=render_formula(operation, sources),
        sheet_row_count=sheet.row_count,
    )

    with timed_operation(logger, f"row_wise_{operation.value}") as metrics:
        for index in range(start, end + 1):
            row = sheet.rows[index]

            if operation is RowOperation.COPY:
                cell = row.get(sources[0])
                value = cell.to_python() if cell is not None else None
                result.results.append(
                    RowResultEntry(
                        row_number=index + 1,
                        computed_value=value,
                        source_values={sources[0]: value},
                    )
                )
                continue

            numbers: list[float] = []
            echoed: dict[str, Any] = {}
            for column in sources:
                cell = row.get(column)
                number = cell.number if cell is not None and cell.is_number else None
                numbers.append(number if number is not None else 0.0)
                echoed[column] = numbers[-1]

            computed, skipped = _apply(operation, numbers)
            if skipped:
                result.skipped_divide_rows += 1
            result.results.append(
                RowResultEntry(
                    row_number=index + 1,
                    computed_value=computed,
                    source_values=echoed,
                )
            )

        metrics.rows_processed = result.total_rows
        if result.skipped_divide_rows:
            metrics.custom_metrics["skipped_divide_rows"] = result.skipped_divide_rows

    return result


def compute_multi_column(
    sheet: MaterializedSheet,
    specs: list[RowFormulaSpec],
    start_row: int = 0,
    end_row: int | None = None,
) -> MultiColumnResult:
    """Run several formulas over the same range and summarize each target.

    The range given here overrides the range of each individual spec. The
    summary of a target column covers its numeric computed values only and is
    all zeros when there are none.
    """
    if not specs:
        raise ValidationError(
            message="At least one calculation is required",
            field="calculations",
        )
    start, end = resolve_range(sheet, start_row, end_row)

    multi = MultiColumnResult(
        start_row=start + 1,
        end_row=end + 1,
        sheet_row_count=sheet.row_count,
    )
    for spec in specs:
        ranged = RowFormulaSpec(
            source_columns=spec.source_columns,
            target_column=spec.target_column,
            operation=spec.operation,
            start_row=start,
            end_row=end,
        )
        result = compute_row_wise(sheet, ranged)
        multi.results.append(result)
        multi.summary[result.target_column] = _summarize(result)

    logger.info(
        "Multi-column calculation complete",
        sheet=sheet.name,
        calculations=len(multi.results),
        start_row=multi.start_row,
        end_row=multi.end_row,
    )
    return multi


def _summarize(result: RowFormulaResult) -> ColumnSummary:
    numbers = [
        entry.computed_value
        for entry in result.results
        if isinstance(entry.computed_value, float)
    ]
    if not numbers:
        return ColumnSummary()
    total = sum(numbers)
    return ColumnSummary(
        total=total,
        average=total / len(numbers),
        min=min(numbers),
        max=max(numbers),
        count=len(numbers),
    )
