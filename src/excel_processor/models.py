"""Pydantic models for API requests and responses."""

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field

from excel_processor.utils.exceptions import ErrorCode

CellPayload = float | int | str | bool | None


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: str
    version: str


class ErrorDetail(BaseModel):
    """Error detail model for API error responses.

    This model provides structured error responses with:
    - Human-readable error message
    - Machine-readable error code
    - Optional additional details for debugging
    - Optional request ID for correlation
    """

    detail: str = Field(..., description="Human-readable error message")
    error_code: str | None = Field(
        default=None,
        description="Machine-readable error code (e.g., 'E1001')",
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details for debugging",
    )
    request_id: str | None = Field(
        default=None,
        description="Request ID for error correlation",
    )

    @classmethod
    def from_error_code(
        cls,
        error_code: ErrorCode,
        detail: str,
        details: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> "ErrorDetail":
        return cls(
            detail=detail,
            error_code=error_code.value,
            details=details,
            request_id=request_id,
        )


# =============================================================================
# Files and reference data
# =============================================================================


class FileRecordResponse(BaseModel):
    """A stored source file or template."""

    file_id: str = Field(..., description="Opaque identifier of the stored file")
    file_name: str = Field(..., description="Original filename of the upload")
    file_size: int = Field(..., description="Size of the upload in bytes")
    kind: Literal["source", "template"]
    province_id: int | None = None
    unit_id: int | None = None
    created_at: datetime


class UploadResponse(FileRecordResponse):
    """Response model for upload endpoints."""

    message: str = Field(..., description="Status message")


class FileListResponse(BaseModel):
    files: list[FileRecordResponse]


class SheetInfoResponse(BaseModel):
    name: str
    columns: list[str]
    row_count: int


class SheetsResponse(BaseModel):
    file_id: str
    sheets: list[SheetInfoResponse]


class SheetDataResponse(BaseModel):
    """Materialized rows of one sheet; empty cells are null."""

    file_id: str
    sheet_name: str
    columns: list[str]
    row_count: int
    data: list[dict[str, CellPayload]]


class ProvinceResponse(BaseModel):
    id: int
    name: str
    code: str


class UnitResponse(BaseModel):
    id: int
    name: str
    code: str
    province_id: int


class ProvincesResponse(BaseModel):
    provinces: list[ProvinceResponse]


class UnitsResponse(BaseModel):
    province_id: int
    units: list[UnitResponse]


# =============================================================================
# Calculations
# =============================================================================


class SheetRequest(BaseModel):
    """Identifies a sheet of an uploaded source file."""

    file_id: str = Field(..., min_length=1)
    sheet_name: str = Field(..., min_length=1)


class CalculateRequest(SheetRequest):
    """Group-by aggregation request."""

    group_by_column: str = Field(
        ...,
        validation_alias=AliasChoices("group_by_column", "main_column"),
        description="Column whose value partitions the rows (e.g. 'A')",
    )
    target_columns: list[str] = Field(..., min_length=1)
    operation: str = Field(default="sum", description="sum, average or count")


class GroupResult(BaseModel):
    key: str
    values: dict[str, float]
    row_count: int


class CalculateResponse(BaseModel):
    group_by_column: str
    target_columns: list[str]
    operation: str
    groups: list[GroupResult]
    results: list[dict[str, Any]] = Field(
        ..., description="Groups as flat records keyed by column"
    )
    summary: dict[str, float] = Field(
        ..., description="Grand total per target column across all groups"
    )
    row_count: int


class CalculateColumnRequest(SheetRequest):
    """Single-column statistic request."""

    column: str
    operation: str = Field(..., description="sum, average, count, max or min")
    start_row: int | None = Field(
        default=None, description="0-based first row to include"
    )


class CalculateColumnResponse(BaseModel):
    column: str
    operation: str
    result: float
    count: int
    total_rows: int = Field(..., description="Rows in the sheet")
    start_row: int
    data_length: int = Field(..., description="Rows visited from start_row on")


class RowWiseRequest(SheetRequest):
    """Row-wise formula request; rows are 0-based and inclusive."""

    source_columns: list[str] = Field(..., min_length=1)
    target_column: str
    operation: str = Field(..., description="add, subtract, multiply, divide, copy")
    start_row: int = 0
    end_row: int | None = None


class RowResultModel(BaseModel):
    row_number: int = Field(..., description="1-based sheet row")
    computed_value: CellPayload
    source_values: dict[str, CellPayload]


class RowWiseResponse(BaseModel):
    source_columns: list[str]
    target_column: str
    operation: str
    start_row: int = Field(..., description="1-based first row")
    end_row: int = Field(..., description="1-based last row")
    results: list[RowResultModel]
    total_rows: int
    sheet_row_count: int
    formula: str
    skipped_divide_rows: int


class ColumnCalculation(BaseModel):
    target_column: str
    source_columns: list[str] = Field(..., min_length=1)
    operation: str


class MultiColumnRequest(SheetRequest):
    calculations: list[ColumnCalculation] = Field(..., min_length=1)
    start_row: int = 0
    end_row: int | None = None


class ColumnSummaryModel(BaseModel):
    total: float
    average: float
    min: float
    max: float
    count: int


class MultiColumnResponse(BaseModel):
    calculations: list[RowWiseResponse]
    summary: dict[str, ColumnSummaryModel]
    start_row: int
    end_row: int
    sheet_row_count: int


# =============================================================================
# Export and merge
# =============================================================================


class ExportRequest(BaseModel):
    """Rows to export; columns come from the first row's keys."""

    rows: list[dict[str, Any]] = Field(
        ..., validation_alias=AliasChoices("rows", "data")
    )
    sheet_name: str = Field(default="Export", min_length=1, max_length=31)


class ExportTemplateRequest(BaseModel):
    """Row-wise formula whose results are written into a template."""

    template_id: str = Field(..., min_length=1)
    template_sheet: str | None = None
    calculation: RowWiseRequest


class MergeValue(BaseModel):
    value: CellPayload = None
    target_row: int | None = Field(default=None, description="1-based row")


class MergeTargetModel(BaseModel):
    target_column: str
    addressing: Literal["explicit", "implicit"] = "explicit"
    start_row: int | None = Field(default=None, description="1-based first row")
    values: list[MergeValue]


class SingleMergeRequest(BaseModel):
    """Values written down one column from ``start_row``."""

    mode: Literal["single"]
    template_id: str = Field(..., min_length=1)
    template_sheet: str | None = None
    target_column: str
    start_row: int = Field(..., description="1-based row of the first value")
    values: list[CellPayload]


class MultiMergeRequest(BaseModel):
    """Several merge targets applied to one template sheet."""

    mode: Literal["multi"]
    template_id: str = Field(..., min_length=1)
    template_sheet: str | None = None
    merge_targets: list[MergeTargetModel] = Field(..., min_length=1)


MergeRequest = SingleMergeRequest | MultiMergeRequest
