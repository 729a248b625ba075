"""Configuration management for the Excel processor.

This module provides centralized configuration using pydantic-settings.
All configuration options can be set via environment variables with the
EXP_ prefix, or via a .env file in the project root.

Environment Variables:
    EXP_MAX_FILE_SIZE_MB: Maximum upload size in MB (default: 10)
    EXP_UPLOAD_DIR: Directory for uploaded source workbooks
    EXP_TEMPLATE_DIR: Directory for uploaded template workbooks
    EXP_EXPORT_DIR: Directory for generated output workbooks
    EXP_ALLOWED_EXTENSIONS: Comma-separated upload extensions (default: .xlsx,.xlsm)
    EXP_DEFAULT_COLUMN_SPAN: Columns used when a sheet's bound is unknown (default: 52)
    EXP_EXPORT_RETENTION_SECONDS: Age after which exports are purged (default: 60)
    EXP_LOG_LEVEL: Logging level (default: INFO)
    EXP_DEBUG: Enable debug mode (default: false)
    EXP_CORS_ORIGINS: Comma-separated CORS origins
    EXP_SERVER_HOST: Server bind host (default: 0.0.0.0)
    EXP_SERVER_PORT: Server bind port (default: 8080)
"""

import logging
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# openpyxl's last column, XFD
MAX_SHEET_COLUMNS = 16384


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Example .env file:
        EXP_UPLOAD_DIR=/srv/excel/uploads
        EXP_LOG_LEVEL=DEBUG
        EXP_EXPORT_RETENTION_SECONDS=300
    """

    model_config = SettingsConfigDict(
        env_prefix="EXP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # File Storage Settings
    # =========================================================================

    max_file_size_mb: int = 10
    """Maximum file upload size in megabytes."""

    upload_dir: str = "/tmp/excel_processor/uploads"
    """Directory for uploaded source workbooks."""

    template_dir: str = "/tmp/excel_processor/templates"
    """Directory for uploaded template workbooks."""

    export_dir: str = "/tmp/excel_processor/exports"
    """Directory for merged and exported workbooks."""

    allowed_extensions: str = ".xlsx,.xlsm"
    """Comma-separated list of accepted upload extensions."""

    export_retention_seconds: int = 60
    """Generated workbooks older than this are purged."""

    # =========================================================================
    # Sheet Processing Settings
    # =========================================================================

    default_column_span: int = 52
    """Column count (A..AZ) used when a sheet's used-column bound is unknown."""

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = "INFO"
    """Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL."""

    debug: bool = False
    """Enable debug mode with additional logging and error details."""

    # =========================================================================
    # Server Settings
    # =========================================================================

    cors_origins: str = "http://localhost:5173,http://localhost:5174"
    """Comma-separated list of allowed CORS origins, or * for all."""

    server_host: str = "0.0.0.0"
    """Host address for the server to bind to."""

    server_port: int = 8080
    """Port for the server to listen on."""

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return upper_v

    @field_validator("max_file_size_mb")
    @classmethod
    def validate_file_size(cls, v: int) -> int:
        """Validate file size is positive and reasonable."""
        if not 1 <= v <= 500:
            raise ValueError(f"max_file_size_mb must be between 1 and 500, got {v}")
        return v

    @field_validator("default_column_span")
    @classmethod
    def validate_column_span(cls, v: int) -> int:
        """Validate the fallback span fits in a worksheet."""
        if not 1 <= v <= MAX_SHEET_COLUMNS:
            raise ValueError(
                f"default_column_span must be between 1 and {MAX_SHEET_COLUMNS}, "
                f"got {v}"
            )
        return v

    @field_validator("export_retention_seconds")
    @classmethod
    def validate_retention(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"export_retention_seconds must be at least 1, got {v}")
        return v

    @field_validator("allowed_extensions")
    @classmethod
    def validate_extensions(cls, v: str) -> str:
        """Validate every extension starts with a dot."""
        extensions = [ext.strip().lower() for ext in v.split(",") if ext.strip()]
        if not extensions:
            raise ValueError("allowed_extensions must list at least one extension")
        for ext in extensions:
            if not ext.startswith("."):
                raise ValueError(f"Extension must start with '.', got {ext}")
        return ",".join(extensions)

    @field_validator("server_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"server_port must be between 1 and 65535, got {v}")
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def max_file_size_bytes(self) -> int:
        """Get max file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    @property
    def allowed_extensions_list(self) -> list[str]:
        """Get accepted upload extensions as a list."""
        return self.allowed_extensions.split(",")

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        level: int = getattr(logging, self.log_level)
        return level

    def to_safe_dict(self) -> dict[str, Any]:
        """Convert settings to a dictionary suitable for logging."""
        return {
            "max_file_size_mb": self.max_file_size_mb,
            "upload_dir": self.upload_dir,
            "template_dir": self.template_dir,
            "export_dir": self.export_dir,
            "allowed_extensions": self.allowed_extensions,
            "export_retention_seconds": self.export_retention_seconds,
            "default_column_span": self.default_column_span,
            "log_level": self.log_level,
            "debug": self.debug,
            "cors_origins": self.cors_origins,
            "server_host": self.server_host,
            "server_port": self.server_port,
        }


def validate_settings_on_startup(s: Settings) -> None:
    """Validate settings on application startup.

    Emits warnings for configurations that are legal but risky, and logs a
    configuration summary.

    Args:
        s: Settings instance to validate.
    """
    logger = logging.getLogger(__name__)

    if s.cors_origins == "*" and not s.debug:
        logger.warning(
            "CORS is configured to allow all origins (*). "
            "Consider restricting this in production."
        )

    if len({s.upload_dir, s.template_dir, s.export_dir}) < 3:
        logger.warning(
            "Upload, template and export directories overlap; "
            "the export purge may remove uploaded files."
        )

    logger.info(
        f"Configuration loaded: log_level={s.log_level}, debug={s.debug}, "
        f"max_file_size_mb={s.max_file_size_mb}, "
        f"export_dir={s.export_dir}"
    )


# Create the global settings instance
settings = Settings()
