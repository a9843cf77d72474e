"""Report file naming and local download paths."""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path

from calcana_sync.models import EXPORT_LAYOUTS, ClientConfig

# Report download settings
DEFAULT_REPORT_DIR = "calcana-reports"  # Relative to home directory

EXCEL_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

_MEDIA_TYPES = {".xlsx": EXCEL_MEDIA_TYPE, ".pdf": PDF_MEDIA_TYPE}


def excel_report_filename(layout: str, today: date | None = None) -> str:
    """Name of a saved analyses spreadsheet, e.g. ``relatorio_default_2024-03-01.xlsx``."""
    if layout not in EXPORT_LAYOUTS:
        raise ValueError(f"Unknown report layout {layout!r}; expected one of {EXPORT_LAYOUTS}")
    stamp = (today or date.today()).isoformat()
    return f"relatorio_{layout}_{stamp}.xlsx"


def bulletin_filename(sample_number: int) -> str:
    """Name of a saved per-analysis PDF bulletin."""
    return f"Boletim_Amostra_{sample_number}.pdf"


def report_media_type(filename: str | Path) -> str:
    """``Accept`` value for a report saved under ``filename``."""
    return _MEDIA_TYPES.get(Path(filename).suffix.lower(), "*/*")


def get_report_download_path(filename: str, config: ClientConfig) -> Path:
    """Get the local file path a downloaded report is saved to.

    Validates that the resulting path stays within the download directory so
    a crafted filename cannot write elsewhere.

    Raises:
        ValueError: If the filename would escape the download directory.
    """
    if config.report_download_dir:
        base_dir = Path(config.report_download_dir).expanduser().resolve()
    else:
        base_dir = (Path.home() / DEFAULT_REPORT_DIR).resolve()
    result = (base_dir / filename).resolve()
    # Ensure the resolved path is still under the base directory
    if not str(result).startswith(str(base_dir) + os.sep) and result.parent != base_dir:
        raise ValueError(f"Invalid report filename for path construction: {filename!r}")
    return result


__all__ = [
    "DEFAULT_REPORT_DIR",
    "EXCEL_MEDIA_TYPE",
    "PDF_MEDIA_TYPE",
    "bulletin_filename",
    "excel_report_filename",
    "get_report_download_path",
    "report_media_type",
]
