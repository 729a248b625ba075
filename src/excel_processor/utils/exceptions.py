"""Centralized exception classes for the Excel processor.

This module provides a hierarchy of custom exceptions with error codes,
HTTP status code mapping, and structured error details for consistent
error handling throughout the application.

Exception Hierarchy:
    ExcelProcessorError (base)
    ├── FileError
    │   ├── FileRecordNotFoundError
    │   ├── FileTooLargeError
    │   ├── UnsupportedFormatError
    │   ├── WorkbookOpenError
    │   └── WorkbookWriteError
    ├── SheetError
    │   ├── SheetNotFoundError
    │   ├── SheetReadError
    │   ├── InvalidRangeError
    │   └── NoDataError
    ├── CalculationError
    │   └── UnsupportedOperationError
    ├── MergeError
    │   ├── MissingAddressError
    │   └── TargetNotFoundError
    └── ValidationError

Error Codes:
    All errors have a unique error code (e.g., "E1001") that can be used
    for programmatic error handling and documentation.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Enumeration of all error codes used in the application.

    Error codes are grouped by category:
    - E1xxx: File/workbook errors
    - E2xxx: Sheet and row range errors
    - E3xxx: Calculation errors
    - E4xxx: Template merge errors
    - E5xxx: Request validation errors
    - E9xxx: Internal/unexpected errors
    """

    # File errors (E1xxx)
    FILE_NOT_FOUND = "E1001"
    FILE_TOO_LARGE = "E1002"
    UNSUPPORTED_FORMAT = "E1003"
    FILE_READ_ERROR = "E1004"
    FILE_WRITE_ERROR = "E1005"

    # Sheet errors (E2xxx)
    SHEET_NOT_FOUND = "E2001"
    SHEET_READ_ERROR = "E2002"
    INVALID_RANGE = "E2003"
    NO_DATA = "E2004"

    # Calculation errors (E3xxx)
    UNSUPPORTED_OPERATION = "E3001"

    # Merge errors (E4xxx)
    MISSING_ADDRESS = "E4001"
    TARGET_NOT_FOUND = "E4002"

    # Validation errors (E5xxx)
    VALIDATION_FAILED = "E5001"

    # Internal errors (E9xxx)
    INTERNAL_ERROR = "E9001"
    CONFIGURATION_ERROR = "E9002"
    UNEXPECTED_ERROR = "E9999"


class HTTPStatusMixin:
    """Mixin that provides HTTP status code for exceptions.

    Subclasses should set the `http_status` class attribute.
    """

    http_status: int = 500

    def get_http_status(self) -> int:
        """Get the HTTP status code for this exception.

        Returns:
            HTTP status code appropriate for this error.
        """
        return self.http_status


class ExcelProcessorError(Exception, HTTPStatusMixin):
    """Base exception for all Excel processor errors.

    It provides:
    - Unique error codes for programmatic handling
    - HTTP status code mapping for API responses
    - Structured error details naming the sheet, column or row involved

    Attributes:
        message: Human-readable error message.
        error_code: Unique error code from ErrorCode enum.
        details: Optional dictionary with additional error details.
        http_status: HTTP status code for API responses (default 500).
    """

    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error code from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for API responses.

        Returns:
            Dictionary with error information.
        """
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


# =============================================================================
# File Errors (E1xxx)
# =============================================================================


class FileError(ExcelProcessorError):
    """Base class for file and workbook errors."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.FILE_READ_ERROR,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with file path information.

        Args:
            message: Error message.
            error_code: Error code.
            file_path: Path to the problematic file.
            details: Additional details.
        """
        details = details or {}
        if file_path:
            details["file_path"] = file_path
        super().__init__(message, error_code, details)
        self.file_path = file_path


class FileRecordNotFoundError(FileError):
    """Raised when no file record exists for an identifier."""

    http_status: int = 404

    def __init__(
        self,
        file_id: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the missing file identifier.

        Args:
            file_id: Identifier that was looked up.
            message: Optional custom message.
            details: Additional details.
        """
        details = details or {}
        details["file_id"] = file_id
        message = message or f"File not found: {file_id}"
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_NOT_FOUND,
            details=details,
        )
        self.file_id = file_id


class FileTooLargeError(FileError):
    """Raised when an upload exceeds the maximum allowed size."""

    http_status: int = 413

    def __init__(
        self,
        file_size: int,
        max_size: int,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with size information.

        Args:
            file_size: Actual file size in bytes.
            max_size: Maximum allowed size in bytes.
            file_path: Optional file path.
            details: Additional details.
        """
        details = details or {}
        details["file_size_bytes"] = file_size
        details["max_size_bytes"] = max_size
        message = (
            f"File size ({file_size} bytes) exceeds maximum "
            f"allowed size ({max_size} bytes)"
        )
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_TOO_LARGE,
            file_path=file_path,
            details=details,
        )
        self.file_size = file_size
        self.max_size = max_size


class UnsupportedFormatError(FileError):
    """Raised when an uploaded file is not a supported workbook format."""

    def __init__(
        self,
        message: str,
        extension: str | None = None,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if extension is not None:
            details["extension"] = extension
        super().__init__(
            message=message,
            error_code=ErrorCode.UNSUPPORTED_FORMAT,
            file_path=file_path,
            details=details,
        )
        self.extension = extension


class WorkbookOpenError(FileError):
    """Raised when the spreadsheet codec cannot open a workbook."""

    http_status: int = 422

    def __init__(
        self,
        file_path: str,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if reason:
            details["reason"] = reason
        super().__init__(
            message=f"Failed to open workbook: {file_path}",
            error_code=ErrorCode.FILE_READ_ERROR,
            file_path=file_path,
            details=details,
        )
        self.reason = reason


class WorkbookWriteError(FileError):
    """Raised when a cell write or a workbook save fails."""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        sheet_name: str | None = None,
        cell: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the location of the failed write.

        Args:
            message: Error message.
            file_path: Destination path for save failures.
            sheet_name: Sheet being written.
            cell: Cell address being written.
            details: Additional details.
        """
        details = details or {}
        if sheet_name:
            details["sheet_name"] = sheet_name
        if cell:
            details["cell"] = cell
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_WRITE_ERROR,
            file_path=file_path,
            details=details,
        )
        self.sheet_name = sheet_name
        self.cell = cell


# =============================================================================
# Sheet Errors (E2xxx)
# =============================================================================


class SheetError(ExcelProcessorError):
    """Base class for sheet and row range errors."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.SHEET_READ_ERROR,
        sheet_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with sheet name.

        Args:
            message: Error message.
            error_code: Error code.
            sheet_name: Name of the affected sheet.
            details: Additional details.
        """
        details = details or {}
        if sheet_name:
            details["sheet_name"] = sheet_name
        super().__init__(message, error_code, details)
        self.sheet_name = sheet_name


class SheetNotFoundError(SheetError):
    """Raised when a workbook has no sheet with the requested name."""

    http_status: int = 404

    def __init__(
        self,
        sheet_name: str,
        available: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if available is not None:
            details["available_sheets"] = available
        super().__init__(
            message=f"Sheet not found: {sheet_name}",
            error_code=ErrorCode.SHEET_NOT_FOUND,
            sheet_name=sheet_name,
            details=details,
        )


class SheetReadError(SheetError):
    """Raised when the codec cannot produce rows for a sheet."""

    http_status: int = 422

    def __init__(
        self,
        sheet_name: str,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if reason:
            details["reason"] = reason
        super().__init__(
            message=f"Failed to read sheet {sheet_name}",
            error_code=ErrorCode.SHEET_READ_ERROR,
            sheet_name=sheet_name,
            details=details,
        )


class InvalidRangeError(SheetError):
    """Raised when a start or end row falls outside the sheet."""

    def __init__(
        self,
        message: str,
        row: int | None = None,
        row_count: int | None = None,
        sheet_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the offending row.

        Args:
            message: Error message.
            row: The row that was out of bounds.
            row_count: Number of rows available.
            sheet_name: Name of the affected sheet.
            details: Additional details.
        """
        details = details or {}
        if row is not None:
            details["row"] = row
        if row_count is not None:
            details["row_count"] = row_count
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_RANGE,
            sheet_name=sheet_name,
            details=details,
        )
        self.row = row
        self.row_count = row_count


class NoDataError(SheetError):
    """Raised when a computation finds no usable numeric values."""

    http_status: int = 422

    def __init__(
        self,
        message: str,
        column: str | None = None,
        sheet_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if column:
            details["column"] = column
        super().__init__(
            message=message,
            error_code=ErrorCode.NO_DATA,
            sheet_name=sheet_name,
            details=details,
        )
        self.column = column


# =============================================================================
# Calculation Errors (E3xxx)
# =============================================================================


class CalculationError(ExcelProcessorError):
    """Base class for calculation errors."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNSUPPORTED_OPERATION,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


class UnsupportedOperationError(CalculationError):
    """Raised when an operator string names no known operation."""

    def __init__(
        self,
        operation: str,
        supported: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the rejected operation.

        Args:
            operation: The operation string that was requested.
            supported: Operations accepted in this context.
            details: Additional details.
        """
        details = details or {}
        details["operation"] = operation
        if supported:
            details["supported_operations"] = supported
        super().__init__(
            message=f"Unsupported operation: {operation}",
            error_code=ErrorCode.UNSUPPORTED_OPERATION,
            details=details,
        )
        self.operation = operation


# =============================================================================
# Merge Errors (E4xxx)
# =============================================================================


class MergeError(ExcelProcessorError):
    """Base class for template merge errors."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.MISSING_ADDRESS,
        target_column: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if target_column:
            details["target_column"] = target_column
        super().__init__(message, error_code, details)
        self.target_column = target_column


class MissingAddressError(MergeError):
    """Raised when an explicitly addressed merge entry has no target row."""

    def __init__(
        self,
        target_column: str,
        entry_index: int | None = None,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the entry lacking an address.

        Args:
            target_column: Column of the merge target.
            entry_index: Index of the entry within the target's values.
            message: Optional custom message.
            details: Additional details.
        """
        details = details or {}
        if entry_index is not None:
            details["entry_index"] = entry_index
        message = message or (
            f"target_row missing for entry {entry_index} of column {target_column}"
        )
        super().__init__(
            message=message,
            error_code=ErrorCode.MISSING_ADDRESS,
            target_column=target_column,
            details=details,
        )
        self.entry_index = entry_index


class TargetNotFoundError(MergeError):
    """Raised when a merge sheet or column does not exist in the template."""

    http_status: int = 404

    def __init__(
        self,
        message: str,
        sheet_name: str | None = None,
        target_column: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if sheet_name:
            details["sheet_name"] = sheet_name
        super().__init__(
            message=message,
            error_code=ErrorCode.TARGET_NOT_FOUND,
            target_column=target_column,
            details=details,
        )
        self.sheet_name = sheet_name


# =============================================================================
# Validation Errors (E5xxx)
# =============================================================================


class ValidationError(ExcelProcessorError):
    """General validation error for input data."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with validation details.

        Args:
            message: Main error message.
            field: Field that failed validation.
            errors: List of validation errors.
            details: Additional details.
        """
        details = details or {}
        if field:
            details["field"] = field
        if errors:
            details["validation_errors"] = errors
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_FAILED,
            details=details,
        )
