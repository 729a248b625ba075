"""Utilities package for the Excel processor.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from excel_processor.utils.exceptions import (
    CalculationError,
    ErrorCode,
    ExcelProcessorError,
    FileError,
    HTTPStatusMixin,
    MergeError,
    SheetError,
    ValidationError,
)
from excel_processor.utils.logging import (
    LogContext,
    StructuredLogger,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Exceptions
    "CalculationError",
    "ErrorCode",
    "ExcelProcessorError",
    "FileError",
    "HTTPStatusMixin",
    "MergeError",
    "SheetError",
    "ValidationError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
