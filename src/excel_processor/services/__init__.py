"""Services for the Excel processor."""

from excel_processor.services.aggregator import aggregate_by_group, aggregate_column
from excel_processor.services.file_store import (
    FileKind,
    FileRecord,
    FileRecordStore,
    get_file_store,
)
from excel_processor.services.row_calculator import (
    compute_multi_column,
    compute_row_wise,
)
from excel_processor.services.sheet_materializer import SheetMaterializer
from excel_processor.services.template_merger import TemplateMerger

__all__ = [
    "FileKind",
    "FileRecord",
    "FileRecordStore",
    "SheetMaterializer",
    "TemplateMerger",
    "aggregate_by_group",
    "aggregate_column",
    "compute_multi_column",
    "compute_row_wise",
    "get_file_store",
]
