"""FastAPI application for the Excel processor."""

import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Any

from fastapi import (
    Body,
    FastAPI,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
    status,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.background import BackgroundTask

from excel_processor.config import settings, validate_settings_on_startup
from excel_processor.excel_document import MaterializedSheet
from excel_processor.models import (
    CalculateColumnRequest,
    CalculateColumnResponse,
    CalculateRequest,
    CalculateResponse,
    ErrorDetail,
    ExportRequest,
    ExportTemplateRequest,
    FileListResponse,
    HealthResponse,
    MergeRequest,
    MultiColumnRequest,
    MultiColumnResponse,
    ProvincesResponse,
    RowWiseRequest,
    RowWiseResponse,
    SheetDataResponse,
    SheetsResponse,
    SingleMergeRequest,
    UnitsResponse,
    UploadResponse,
)
from excel_processor.services.aggregator import (
    AggregationSpec,
    aggregate_by_group,
    aggregate_column,
)
from excel_processor.services.excel_exporter import export_rows
from excel_processor.services.file_store import FileKind, FileRecord, get_file_store
from excel_processor.services.reference_data import (
    get_all_provinces,
    get_province,
    get_units_by_province,
)
from excel_processor.services.retention import purge_expired_exports
from excel_processor.services.row_calculator import (
    RowFormulaResult,
    RowFormulaSpec,
    compute_multi_column,
    compute_row_wise,
)
from excel_processor.services.sheet_materializer import SheetMaterializer
from excel_processor.services.template_merger import (
    MergeEntry,
    MergeTarget,
    TemplateMerger,
)
from excel_processor.utils.exceptions import (
    ErrorCode,
    ExcelProcessorError,
    FileRecordNotFoundError,
    FileTooLargeError,
    UnsupportedFormatError,
    ValidationError,
)
from excel_processor.utils.logging import (
    LogContext,
    clear_context,
    configure_logging,
    get_logger,
    get_request_id,
    set_file_id,
    set_request_id,
)

# Configure structured logging using settings
configure_logging(
    level=settings.log_level_int,
    use_structured_formatter=True,
)
logger = get_logger(__name__)

VERSION = "0.1.0"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _export_path(prefix: str) -> Path:
    return Path(settings.export_dir) / f"{prefix}_{uuid.uuid4().hex}.xlsx"


def _download(path: Path, filename: str) -> FileResponse:
    """Workbook download; expired exports are purged once it has been sent."""
    return FileResponse(
        path,
        media_type=XLSX_MEDIA_TYPE,
        filename=filename,
        background=BackgroundTask(purge_expired_exports),
    )


def _source_record(file_id: str) -> FileRecord:
    set_file_id(file_id)
    return get_file_store().get_file_by_id(file_id)


def _template_record(template_id: str) -> FileRecord:
    set_file_id(template_id)
    record = get_file_store().get_file_by_id(template_id)
    if record.kind is not FileKind.TEMPLATE:
        raise FileRecordNotFoundError(
            template_id, message=f"Template not found: {template_id}"
        )
    return record


def _materialize(record: FileRecord, sheet_name: str) -> MaterializedSheet:
    with LogContext(sheet=sheet_name):
        return SheetMaterializer().materialize_file(Path(record.file_path), sheet_name)


def _merge(
    template: FileRecord,
    template_sheet: str | None,
    targets: list[MergeTarget],
    prefix: str,
) -> Path:
    """Merge into a copy of the template and return the written path."""
    with LogContext(sheet=template_sheet or "<first>"):
        outcome = TemplateMerger().merge_to_file(
            Path(template.file_path), _export_path(prefix), template_sheet, targets
        )
    assert outcome.output_path is not None
    return outcome.output_path


def _row_result_payload(result: RowFormulaResult) -> dict[str, Any]:
    return {
        "source_columns": result.source_columns,
        "target_column": result.target_column,
        "operation": result.operation.value,
        "start_row": result.start_row,
        "end_row": result.end_row,
        "results": [
            {
                "row_number": entry.row_number,
                "computed_value": entry.computed_value,
                "source_values": entry.source_values,
            }
            for entry in result.results
        ],
        "total_rows": result.total_rows,
        "sheet_row_count": result.sheet_row_count,
        "formula": result.formula,
        "skipped_divide_rows": result.skipped_divide_rows,
    }


def _row_spec(request: RowWiseRequest) -> RowFormulaSpec:
    return RowFormulaSpec(
        source_columns=request.source_columns,
        target_column=request.target_column,
        operation=request.operation,
        start_row=request.start_row,
        end_row=request.end_row,
    )


def _merge_targets(request: MergeRequest) -> list[MergeTarget]:
    if isinstance(request, SingleMergeRequest):
        return [
            MergeTarget.implicit(
                request.target_column, request.start_row, request.values
            )
        ]
    return [
        MergeTarget(
            target_column=target.target_column,
            entries=[
                MergeEntry(value=item.value, target_row=item.target_row)
                for item in target.values
            ],
            start_row=target.start_row,
            explicit=target.addressing == "explicit",
        )
        for target in request.merge_targets
    ]


async def _read_upload(file: UploadFile) -> tuple[str, str, bytes]:
    """Validate an upload's name, extension and size.

    Returns:
        Original filename, lower-cased extension and content.
    """
    if file.filename is None or file.filename == "":
        raise ValidationError(message="A workbook file must be provided", field="file")

    extension = Path(file.filename).suffix.lower()
    if extension not in settings.allowed_extensions_list:
        raise UnsupportedFormatError(
            message=(
                f"Only {', '.join(settings.allowed_extensions_list)} files are allowed"
            ),
            extension=extension,
        )

    content = await file.read()
    if len(content) > settings.max_file_size_bytes:
        logger.warning(
            "File too large",
            file_size=len(content),
            max_size=settings.max_file_size_bytes,
        )
        raise FileTooLargeError(
            file_size=len(content),
            max_size=settings.max_file_size_bytes,
        )
    return file.filename, extension, content


def _save_upload(directory: str, extension: str, content: bytes) -> Path:
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / f"{uuid.uuid4().hex}{extension}"
    with open(path, "wb") as f:
        f.write(content)
    return path


def _upload_payload(record: FileRecord, message: str) -> dict[str, Any]:
    payload = record.to_dict()
    payload.pop("file_path")
    payload["message"] = message
    return payload


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        directories = (settings.upload_dir, settings.template_dir, settings.export_dir)
        for directory in directories:
            Path(directory).mkdir(parents=True, exist_ok=True)
        purge_expired_exports()
        yield

    app = FastAPI(
        title="Excel Processor API",
        description=(
            "Spreadsheet calculation service: group aggregation, row-wise "
            "formulas and merging of computed values into template workbooks."
        ),
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Configure CORS using settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Request-ID"],
    )

    validate_settings_on_startup(settings)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next: Any) -> Any:
        """Assign a request ID, expose it in context and response headers."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        set_request_id(request_id)
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()

    @app.exception_handler(ExcelProcessorError)
    async def processor_exception_handler(
        request: Request, exc: ExcelProcessorError
    ) -> JSONResponse:
        """Structured error response for the coded exception hierarchy."""
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.error(
            f"Processing error: {exc.message}",
            error_code=exc.error_code.value,
            http_status=exc.http_status,
        )
        return JSONResponse(
            status_code=exc.http_status,
            content=ErrorDetail(
                detail=exc.message,
                error_code=exc.error_code.value,
                details=exc.details if exc.details else None,
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        """Custom exception handler for HTTP exceptions."""
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.warning(
            f"HTTP Error: {exc.detail}",
            status_code=exc.status_code,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorDetail(
                detail=str(exc.detail),
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Generic 500 response; the exception is only described in debug mode."""
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.exception(
            f"Unexpected error: {type(exc).__name__}",
            error_type=type(exc).__name__,
        )
        if settings.debug:
            detail = f"Internal server error: {type(exc).__name__}: {exc}"
        else:
            detail = "Internal server error. Please try again later."

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorDetail.from_error_code(
                ErrorCode.INTERNAL_ERROR,
                detail,
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    error_responses: dict[int | str, dict[str, Any]] = {
        400: {"model": ErrorDetail, "description": "Invalid request"},
        404: {"model": ErrorDetail, "description": "File, sheet or target not found"},
        422: {"model": ErrorDetail, "description": "Unreadable workbook or no data"},
    }

    # =========================================================================
    # Health and reference data
    # =========================================================================

    @app.get("/api/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> dict[str, Any]:
        """Check the health status of the service."""
        logger.debug("Health check requested")
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": VERSION,
        }

    @app.get("/api/provinces", response_model=ProvincesResponse, tags=["Reference"])
    async def list_provinces() -> dict[str, Any]:
        return {"provinces": [p.to_dict() for p in get_all_provinces()]}

    @app.get(
        "/api/units/{province_id}", response_model=UnitsResponse, tags=["Reference"]
    )
    async def list_units(province_id: int) -> dict[str, Any]:
        """Units of a province; unknown provinces have none."""
        return {
            "province_id": province_id,
            "units": [u.to_dict() for u in get_units_by_province(province_id)],
        }

    # =========================================================================
    # Uploads and file records
    # =========================================================================

    @app.post(
        "/api/upload",
        response_model=UploadResponse,
        tags=["Files"],
        responses={
            400: {"model": ErrorDetail, "description": "Unsupported file"},
            413: {"model": ErrorDetail, "description": "File too large"},
        },
    )
    async def upload_file(
        file: Annotated[UploadFile, File(description="Source workbook")],
        province_id: Annotated[int | None, Form()] = None,
        unit_id: Annotated[int | None, Form()] = None,
    ) -> dict[str, Any]:
        """Upload a source workbook, optionally tagged with a province and unit."""
        if province_id is not None and get_province(province_id) is None:
            raise ValidationError(
                message=f"Unknown province: {province_id}", field="province_id"
            )
        if unit_id is not None:
            units = get_units_by_province(province_id) if province_id else ()
            if unit_id not in {u.id for u in units}:
                raise ValidationError(
                    message=f"Unknown unit {unit_id} for province {province_id}",
                    field="unit_id",
                )

        filename, extension, content = await _read_upload(file)
        path = _save_upload(settings.upload_dir, extension, content)
        record = get_file_store().add(
            file_name=filename,
            file_path=str(path),
            file_size=len(content),
            kind=FileKind.SOURCE,
            province_id=province_id,
            unit_id=unit_id,
        )
        return _upload_payload(record, "File uploaded successfully")

    @app.post(
        "/api/upload-template",
        response_model=UploadResponse,
        tags=["Files"],
        responses={
            400: {"model": ErrorDetail, "description": "Unsupported file"},
            413: {"model": ErrorDetail, "description": "File too large"},
        },
    )
    async def upload_template(
        file: Annotated[UploadFile, File(description="Template workbook")],
    ) -> dict[str, Any]:
        """Upload a template workbook for merges."""
        filename, extension, content = await _read_upload(file)
        path = _save_upload(settings.template_dir, extension, content)
        record = get_file_store().add(
            file_name=filename,
            file_path=str(path),
            file_size=len(content),
            kind=FileKind.TEMPLATE,
        )
        return _upload_payload(record, "Template uploaded successfully")

    @app.get("/api/files", response_model=FileListResponse, tags=["Files"])
    async def list_files(kind: FileKind | None = None) -> dict[str, Any]:
        records = get_file_store().list_files(kind)
        return {"files": [record.to_dict() for record in records]}

    @app.get(
        "/api/sheets/{file_id}",
        response_model=SheetsResponse,
        tags=["Files"],
        responses=error_responses,
    )
    def list_sheets(file_id: str) -> dict[str, Any]:
        """Name, columns and row count of every sheet of an uploaded workbook."""
        record = _source_record(file_id)
        sheets = SheetMaterializer().describe_sheets(Path(record.file_path))
        return {
            "file_id": file_id,
            "sheets": [
                {"name": s.name, "columns": s.columns, "row_count": s.row_count}
                for s in sheets
            ],
        }

    @app.get(
        "/api/data/{file_id}/{sheet_name}",
        response_model=SheetDataResponse,
        tags=["Files"],
        responses=error_responses,
    )
    def get_sheet_data(file_id: str, sheet_name: str) -> dict[str, Any]:
        """Materialized rows of a sheet keyed by column letter."""
        record = _source_record(file_id)
        sheet = _materialize(record, sheet_name)
        return {
            "file_id": file_id,
            "sheet_name": sheet.name,
            "columns": list(sheet.columns),
            "row_count": sheet.row_count,
            "data": sheet.to_records(),
        }

    # =========================================================================
    # Calculations
    # =========================================================================

    @app.post(
        "/api/calculate",
        response_model=CalculateResponse,
        tags=["Calculations"],
        responses=error_responses,
    )
    def calculate(request: CalculateRequest) -> dict[str, Any]:
        """Aggregate target columns per distinct value of the group-by column."""
        record = _source_record(request.file_id)
        sheet = _materialize(record, request.sheet_name)
        result = aggregate_by_group(
            sheet,
            AggregationSpec(
                group_by_column=request.group_by_column,
                target_columns=request.target_columns,
                operation=request.operation,
            ),
        )
        return {
            "group_by_column": result.group_by_column,
            "target_columns": result.target_columns,
            "operation": result.operation.value,
            "groups": [
                {"key": g.key, "values": g.values, "row_count": g.row_count}
                for g in result.groups
            ],
            "results": result.to_records(),
            "summary": result.grand_totals,
            "row_count": result.row_count,
        }

    @app.post(
        "/api/calculate-column",
        response_model=CalculateColumnResponse,
        tags=["Calculations"],
        responses=error_responses,
    )
    def calculate_column(request: CalculateColumnRequest) -> dict[str, Any]:
        """Sum, average, count, max or min of one column."""
        record = _source_record(request.file_id)
        sheet = _materialize(record, request.sheet_name)
        result = aggregate_column(
            sheet, request.column, request.operation, request.start_row
        )
        return {
            "column": result.column,
            "operation": result.operation.value,
            "result": result.result,
            "count": result.count,
            "total_rows": result.row_count,
            "start_row": result.start_row,
            "data_length": result.rows_processed,
        }

    @app.post(
        "/api/calculate-rowwise",
        response_model=RowWiseResponse,
        tags=["Calculations"],
        responses=error_responses,
    )
    def calculate_rowwise(request: RowWiseRequest) -> dict[str, Any]:
        """Apply a formula across source columns for each row of a range."""
        record = _source_record(request.file_id)
        sheet = _materialize(record, request.sheet_name)
        return _row_result_payload(compute_row_wise(sheet, _row_spec(request)))

    @app.post(
        "/api/calculate-multi",
        response_model=MultiColumnResponse,
        tags=["Calculations"],
        responses=error_responses,
    )
    def calculate_multi(request: MultiColumnRequest) -> dict[str, Any]:
        """Run several row-wise formulas over one range."""
        record = _source_record(request.file_id)
        sheet = _materialize(record, request.sheet_name)
        specs = [
            RowFormulaSpec(
                source_columns=calc.source_columns,
                target_column=calc.target_column,
                operation=calc.operation,
            )
            for calc in request.calculations
        ]
        result = compute_multi_column(sheet, specs, request.start_row, request.end_row)
        return {
            "calculations": [_row_result_payload(r) for r in result.results],
            "summary": {
                column: {
                    "total": s.total,
                    "average": s.average,
                    "min": s.min,
                    "max": s.max,
                    "count": s.count,
                }
                for column, s in result.summary.items()
            },
            "start_row": result.start_row,
            "end_row": result.end_row,
            "sheet_row_count": result.sheet_row_count,
        }

    # =========================================================================
    # Downloads
    # =========================================================================

    @app.post(
        "/api/export",
        response_class=FileResponse,
        tags=["Downloads"],
        responses={422: {"model": ErrorDetail, "description": "No rows to export"}},
    )
    def export(request: ExportRequest) -> FileResponse:
        """Write rows to a new workbook and download it."""
        path = export_rows(request.rows, _export_path("export"), request.sheet_name)
        return _download(path, "export.xlsx")

    @app.post(
        "/api/export-template",
        response_class=FileResponse,
        tags=["Downloads"],
        responses=error_responses,
    )
    def export_template(request: ExportTemplateRequest) -> FileResponse:
        """Compute a row-wise formula and write its results into a template."""
        template = _template_record(request.template_id)
        calculation = request.calculation
        source = _source_record(calculation.file_id)
        sheet = _materialize(source, calculation.sheet_name)
        result = compute_row_wise(sheet, _row_spec(calculation))

        path = _merge(
            template,
            request.template_sheet,
            [MergeTarget.from_row_result(result)],
            "calculated_template",
        )
        return _download(path, "calculated_template.xlsx")

    @app.post(
        "/api/merge-download",
        response_class=FileResponse,
        tags=["Downloads"],
        responses=error_responses,
    )
    def merge_download(
        request: Annotated[MergeRequest, Body(discriminator="mode")],
    ) -> FileResponse:
        """Merge values into a template and download the merged workbook.

        Target columns must lie within the template sheet's used columns: a
        column to the right of the last non-empty column is rejected with
        E4002 even when it is blank. Text values are stored as literal text,
        including values starting with "=".
        """
        template = _template_record(request.template_id)
        path = _merge(
            template,
            request.template_sheet,
            _merge_targets(request),
            "merged_template",
        )
        return _download(path, "merged_template.xlsx")

    logger.info("FastAPI application created successfully")
    return app


# Create the application instance
app = create_app()
