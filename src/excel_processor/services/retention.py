"""Retention and purge utilities for generated workbooks."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

from excel_processor.config import settings
from excel_processor.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PurgeResult:
    """Result of a retention purge run."""

    scanned: int = 0
    removed: int = 0
    skipped: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "scanned": self.scanned,
            "removed": self.removed,
            "skipped": self.skipped,
            "errors": self.errors,
        }


def purge_expired_exports(
    paths: Iterable[str | Path] | None = None,
    max_age_seconds: int | None = None,
    now: datetime | None = None,
) -> PurgeResult:
    """Remove generated files older than the retention window.

    Args:
        paths: Base paths to scan. Defaults to the export directory.
        max_age_seconds: Retention window. Defaults to
            settings.export_retention_seconds.
        now: Optional reference time (useful for testing).

    Returns:
        PurgeResult with counts.
    """
    result = PurgeResult()
    if max_age_seconds is None:
        max_age_seconds = settings.export_retention_seconds
    cutoff = (now or datetime.now(UTC)) - timedelta(seconds=max_age_seconds)

    scan_paths = list(paths) if paths else [settings.export_dir]
    for base in scan_paths:
        base_path = Path(base)
        if not base_path.exists():
            continue

        for item in base_path.rglob("*"):
            if not item.is_file():
                continue
            result.scanned += 1
            try:
                if datetime.fromtimestamp(item.stat().st_mtime, UTC) < cutoff:
                    item.unlink()
                    result.removed += 1
                else:
                    result.skipped += 1
            except OSError as e:
                result.errors += 1
                logger.warning(
                    "Failed to remove expired export", path=str(item), error=str(e)
                )

    logger.info(
        "Retention purge complete",
        **result.to_dict(),
        max_age_seconds=max_age_seconds,
        paths=len(scan_paths),
    )
    return result
