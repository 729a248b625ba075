from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook

from excel_processor.services.file_store import reset_file_store

WorkbookFactory = Callable[..., Path]


@pytest.fixture(autouse=True)
def _fresh_file_store() -> None:
    reset_file_store()


@pytest.fixture
def workbook_factory(tmp_path: Path) -> WorkbookFactory:
    """Build a workbook from ``{sheet_title: {address: value}}`` under tmp_path."""

    def _build(sheets: dict[str, dict[str, Any]], name: str = "book.xlsx") -> Path:
        wb = Workbook()
        wb.remove(wb.active)
        for title, cells in sheets.items():
            ws = wb.create_sheet(title)
            for address, value in cells.items():
                ws[address] = value
        path = tmp_path / name
        wb.save(path)
        return path

    return _build


@pytest.fixture
def sales_workbook(workbook_factory: WorkbookFactory) -> Path:
    """Region/Sales rows without a header: N=10, N=20, S=5."""
    return workbook_factory(
        {
            "Sales": {
                "A1": "N",
                "B1": 10,
                "A2": "N",
                "B2": 20,
                "A3": "S",
                "B3": 5,
            }
        },
        name="sales.xlsx",
    )


@pytest.fixture
def rowwise_workbook(workbook_factory: WorkbookFactory) -> Path:
    """Title in A1 and numbers in I11:I13 and K11:K13 (1-based rows)."""
    return workbook_factory(
        {
            "Data": {
                "A1": "Quarterly report",
                "I10": "Opening",
                "K10": "Received",
                "I11": 1,
                "I12": 2,
                "I13": 3,
                "K11": 6,
                "K12": 7,
                "K13": 8,
            }
        },
        name="rowwise.xlsx",
    )


@pytest.fixture
def template_workbook(workbook_factory: WorkbookFactory) -> Path:
    """Template whose used columns run A..M, with a total formula in L14."""
    return workbook_factory(
        {
            "Template": {
                "A1": "Report",
                "I10": "Opening",
                "K10": "Received",
                "L10": "Total",
                "M10": "Notes",
                "K11": "keep",
                "M12": "note",
                "L14": "=SUM(L11:L13)",
            },
            "Other": {"A1": "second sheet"},
        },
        name="template.xlsx",
    )
