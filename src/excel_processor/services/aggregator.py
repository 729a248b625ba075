"""Group-by aggregates and whole-column statistics over materialized sheets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, assert_never

from excel_processor.excel_document import MaterializedSheet
from excel_processor.services.cell_parser import normalize_column
from excel_processor.services.operations import (
    ColumnStatistic,
    GroupOperation,
    parse_operation,
)
from excel_processor.utils.exceptions import (
    InvalidRangeError,
    NoDataError,
    ValidationError,
)
from excel_processor.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AggregationSpec:
    """Which column partitions the rows and which columns are aggregated."""

    group_by_column: str
    target_columns: list[str]
    operation: GroupOperation | str = GroupOperation.SUM


@dataclass
class GroupAggregate:
    """Aggregates for a single group-by value."""

    key: str
    values: dict[str, float] = field(default_factory=dict)
    row_count: int = 0


@dataclass
class AggregationResult:
    """Per-group aggregates plus grand totals of the raw sums."""

    group_by_column: str
    target_columns: list[str]
    operation: GroupOperation
    groups: list[GroupAggregate] = field(default_factory=list)
    grand_totals: dict[str, float] = field(default_factory=dict)
    row_count: int = 0

    def to_records(self) -> list[dict[str, Any]]:
        """Groups as ``{group_by_column: key, target: value, ...}`` records."""
        return [
            {self.group_by_column: group.key, **group.values} for group in self.groups
        ]


@dataclass
class ColumnStatisticResult:
    """A single statistic over one column."""

    column: str
    operation: ColumnStatistic
    result: float
    count: int
    rows_processed: int
    start_row: int
    row_count: int


def aggregate_by_group(
    sheet: MaterializedSheet, spec: AggregationSpec
) -> AggregationResult:
    """Partition rows by the group-by value and aggregate each target column.

    Only numeric cells contribute; text and empty cells are skipped rather
    than counted as zero. Groups appear in first-seen order. Grand totals sum
    the raw per-group sums whatever the requested operation.

    Raises:
        UnsupportedOperationError: For an unknown operation.
        ValidationError: For malformed column identifiers.
    """
    operation = parse_operation(GroupOperation, spec.operation)
    group_by = normalize_column(spec.group_by_column)
    targets = list(dict.fromkeys(normalize_column(c) for c in spec.target_columns))
    if not targets:
        raise ValidationError(
            message="At least one target column is required",
            field="target_columns",
        )

    partitions: dict[str, list[int]] = {}
    for index, row in enumerate(sheet.rows):
        cell = row.get(group_by)
        if cell is None:
            continue
        partitions.setdefault(cell.render(), []).append(index)

    if not partitions:
        logger.warning(
            "Group-by column not present in sheet",
            sheet=sheet.name,
            column=group_by,
        )

    result = AggregationResult(
        group_by_column=group_by,
        target_columns=targets,
        operation=operation,
        grand_totals={column: 0.0 for column in targets},
        row_count=sheet.row_count,
    )

    for key, row_indexes in partitions.items():
        group = GroupAggregate(key=key, row_count=len(row_indexes))
        for column in targets:
            total = 0.0
            count = 0
            for index in row_indexes:
                cell = sheet.rows[index].get(column)
                if cell is not None and cell.is_number:
                    assert cell.number is not None
                    total += cell.number
                    count += 1

            match operation:
                case GroupOperation.SUM:
                    group.values[column] = total
                case GroupOperation.AVERAGE:
                    group.values[column] = total / count if count > 0 else 0.0
                case GroupOperation.COUNT:
                    group.values[column] = count
                case _:
                    assert_never(operation)

            result.grand_totals[column] += total
        result.groups.append(group)

    logger.info(
        "Group aggregation complete",
        sheet=sheet.name,
        group_by=group_by,
        operation=operation.value,
        groups=len(result.groups),
    )
    return result


def aggregate_column(
    sheet: MaterializedSheet,
    column: str,
    operation: ColumnStatistic | str,
    start_row: int | None = None,
) -> ColumnStatisticResult:
    """Compute one statistic over the numeric values of a column.

    Args:
        sheet: Materialized sheet.
        column: Column identifier.
        operation: sum, average, count, max or min.
        start_row: 0-based first row to include (default 0).

    Raises:
        NoDataError: If the sheet is empty or the column has no numbers.
        InvalidRangeError: If ``start_row`` is outside the sheet.
        UnsupportedOperationError: For an unknown operation.
    """
    statistic = parse_operation(ColumnStatistic, operation)
    column = normalize_column(column)

    if sheet.row_count == 0:
        raise NoDataError(
            message="No data found in sheet",
            column=column,
            sheet_name=sheet.name,
        )

    start = 0 if start_row is None else start_row
    if start < 0 or start >= sheet.row_count:
        raise InvalidRangeError(
            message=f"Invalid start row: {start} (sheet has {sheet.row_count} rows)",
            row=start,
            row_count=sheet.row_count,
            sheet_name=sheet.name,
        )

    processed = sheet.rows[start:]
    values: list[float] = []
    for row in processed:
        cell = row.get(column)
        if cell is not None and cell.is_number:
            assert cell.number is not None
            values.append(cell.number)

    if not values:
        raise NoDataError(
            message=(
                f"No numeric values found in column {column} starting from row {start}"
            ),
            column=column,
            sheet_name=sheet.name,
            details={"start_row": start},
        )

    value: float
    match statistic:
        case ColumnStatistic.SUM:
            value = sum(values)
        case ColumnStatistic.AVERAGE:
            value = sum(values) / len(values)
        case ColumnStatistic.COUNT:
            value = len(values)
        case ColumnStatistic.MAX:
            value = values[0]
            for v in values[1:]:
                if v > value:
                    value = v
        case ColumnStatistic.MIN:
            value = values[0]
            for v in values[1:]:
                if v < value:
                    value = v
        case _:
            assert_never(statistic)

    return ColumnStatisticResult(
        column=column,
        operation=statistic,
        result=value,
        count=len(values),
        rows_processed=len(processed),
        start_row=start,
        row_count=sheet.row_count,
    )
