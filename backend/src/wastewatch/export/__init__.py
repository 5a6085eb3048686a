"""Report export (CSV, HTML, JSON)."""

from .formatters import (
    EXPORT_FIELDS,
    MEDIA_TYPES,
    SUPPORTED_FORMATS,
    export_csv,
    export_html,
    export_json,
    export_reports,
)

__all__ = [
    "EXPORT_FIELDS",
    "MEDIA_TYPES",
    "SUPPORTED_FORMATS",
    "export_csv",
    "export_html",
    "export_json",
    "export_reports",
]
