"""Closed sets of calculation operations accepted by the calculators."""

from __future__ import annotations

from enum import Enum
from typing import TypeVar

from excel_processor.utils.exceptions import UnsupportedOperationError

_E = TypeVar("_E", bound=Enum)


class GroupOperation(str, Enum):
    """Per-group aggregate over a target column."""

    SUM = "sum"
    AVERAGE = "average"
    COUNT = "count"


class ColumnStatistic(str, Enum):
    """Whole-column statistic."""

    SUM = "sum"
    AVERAGE = "average"
    COUNT = "count"
    MAX = "max"
    MIN = "min"


class RowOperation(str, Enum):
    """Operation folded across the source columns of each row."""

    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    COPY = "copy"


def parse_operation(enum_cls: type[_E], value: str | _E) -> _E:
    """Resolve an operation name to a member of ``enum_cls``.

    Matching ignores case and surrounding whitespace.

    Raises:
        UnsupportedOperationError: If ``value`` names no member.
    """
    if isinstance(value, enum_cls):
        return value
    name = str(value).strip().lower()
    for member in enum_cls:
        if member.value == name:
            return member
    raise UnsupportedOperationError(
        operation=str(value),
        supported=[member.value for member in enum_cls],
    )
