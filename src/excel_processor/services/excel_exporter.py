"""Export of plain row records to a new workbook using pandas."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from excel_processor.utils.exceptions import NoDataError, WorkbookWriteError
from excel_processor.utils.logging import get_logger, timed_operation

logger = get_logger(__name__)

DEFAULT_EXPORT_SHEET = "Export"


def records_to_frame(rows: Sequence[dict[str, Any]]) -> pd.DataFrame:
    """Build a DataFrame whose columns are the first record's keys, in order.

    Keys missing from later records become empty cells; keys absent from the
    first record are not exported.
    """
    if not rows:
        raise NoDataError(message="No rows to export")
    headers = list(rows[0].keys())
    return pd.DataFrame(list(rows), columns=headers)


def export_rows(
    rows: Sequence[dict[str, Any]],
    output_path: Path,
    sheet_name: str = DEFAULT_EXPORT_SHEET,
) -> Path:
    """Write ``rows`` to a new workbook: one header row, then one row per record.

    Raises:
        NoDataError: If ``rows`` is empty.
        WorkbookWriteError: If the workbook cannot be written.
    """
    frame = records_to_frame(rows)
    output_path = Path(output_path)

    with timed_operation(logger, "export_rows") as metrics:
        tmp_name: str | None = None
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                suffix=".xlsx", dir=str(output_path.parent)
            )
            os.close(fd)
            frame.to_excel(
                tmp_name, sheet_name=sheet_name, index=False, engine="openpyxl"
            )
            os.replace(tmp_name, output_path)
        except (OSError, ValueError) as e:
            raise WorkbookWriteError(
                message=f"Failed to export rows: {e}",
                file_path=str(output_path),
                sheet_name=sheet_name,
            ) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.remove(tmp_name)
        metrics.rows_processed = len(frame)
        metrics.cells_written = frame.size + len(frame.columns)

    return output_path
