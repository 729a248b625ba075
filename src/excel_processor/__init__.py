"""Excel Processor - spreadsheet calculation and template merge service."""

from excel_processor.api import app, create_app

__all__ = ["app", "create_app"]
__version__ = "0.1.0"


def main() -> None:
    """Run the FastAPI server using uvicorn."""
    import uvicorn

    from excel_processor.config import settings

    uvicorn.run(
        "excel_processor.api:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug,
    )
