"""Report export formatters.

Provides CSV, HTML and JSON exports of report collections. Every formatter
accepts report models or raw mappings (camelCase or snake_case keys) and
substitutes an empty string for any missing optional field.
"""

import csv
import io
import json
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from html import escape as _h
from typing import Any

from ..models.reports import WasteReport

# (column header, camelCase key, snake_case key)
EXPORT_FIELDS: list[tuple[str, str, str]] = [
    ("id", "id", "id"),
    ("status", "status", "status"),
    ("wasteType", "wasteType", "waste_type"),
    ("severity", "severity", "severity"),
    ("address", "address", "address"),
    ("createdAt", "createdAt", "created_at"),
]

HTML_HEADERS = ["ID", "Status", "Type", "Severity", "Address", "Created"]

SUPPORTED_FORMATS = ("csv", "html", "json")

ReportLike = WasteReport | Mapping[str, Any]


def _as_dict(report: ReportLike) -> dict[str, Any]:
    if isinstance(report, WasteReport):
        return report.to_api()
    return dict(report)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def export_row(report: ReportLike) -> list[str]:
    """Flatten one report into the export columns, in order."""
    data = _as_dict(report)
    location = data.get("location") or {}
    row = []
    for _, camel, snake in EXPORT_FIELDS:
        if camel == "address":
            value = data.get("address") or (location.get("address") if isinstance(location, Mapping) else None)
        else:
            value = data.get(camel, data.get(snake))
        row.append(_text(value))
    return row


def export_csv(reports: Iterable[ReportLike]) -> str:
    """Export reports as CSV.

    Every field is quoted and embedded quotes are doubled, so addresses with
    commas, quotes or newlines survive a round trip through any CSV reader.
    """
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([header for header, _, _ in EXPORT_FIELDS])
    for report in reports:
        writer.writerow(export_row(report))
    return output.getvalue()


_HTML_CSS = """
@page { size: A4; margin: 12mm; }
body { font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; font-size: 12px; color: #1f2937; margin: 24px; }
h1 { font-size: 18px; color: #15803d; margin: 0 0 4px 0; }
.meta { font-size: 11px; color: #6b7280; margin-bottom: 16px; }
table { width: 100%; border-collapse: collapse; }
th { background: #15803d; color: #fff; padding: 6px 8px; text-align: left; font-weight: 600; }
td { padding: 5px 8px; border-bottom: 1px solid #e5e7eb; }
tr:nth-child(even) { background: #f9fafb; }
.empty { padding: 16px; color: #6b7280; text-align: center; }
@media print { body { margin: 0; } }
"""


def export_html(
    reports: Iterable[ReportLike],
    title: str = "Waste Reports",
    generated_at: datetime | None = None,
) -> str:
    """Export reports as a self-contained, printable HTML document.

    All cell text is HTML-escaped. The page has inline CSS only, so it can be
    opened offline or printed to PDF from a browser.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    rows = [export_row(report) for report in reports]

    body_rows = []
    for row in rows:
        cells = "".join(f"<td>{_h(value)}</td>" for value in row)
        body_rows.append(f"<tr>{cells}</tr>")
    if not body_rows:
        body_rows.append(f'<tr><td class="empty" colspan="{len(HTML_HEADERS)}">No reports</td></tr>')

    header_cells = "".join(f"<th>{_h(h)}</th>" for h in HTML_HEADERS)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{_h(title)}</title>
<style>{_HTML_CSS}</style>
</head>
<body>
<h1>{_h(title)}</h1>
<div class="meta">Generated {_h(generated_at.strftime('%Y-%m-%d %H:%M UTC'))} &middot; {len(rows)} report(s)</div>
<table>
<thead><tr>{header_cells}</tr></thead>
<tbody>
{chr(10).join(body_rows)}
</tbody>
</table>
</body>
</html>
"""


def export_json(reports: Iterable[ReportLike], pretty: bool = True) -> str:
    """Export full report objects as a JSON array."""
    data = [_as_dict(report) for report in reports]
    if pretty:
        return json.dumps(data, indent=2, default=str)
    return json.dumps(data, default=str)


def export_reports(reports: Iterable[ReportLike], format: str = "csv") -> str:
    """Export reports in the specified format.

    Args:
        reports: Reports to export
        format: One of "csv", "html", "json"

    Returns:
        Exported content as string

    Raises:
        ValueError: If format is not supported
    """
    format = format.lower()
    if format == "csv":
        return export_csv(reports)
    if format == "html":
        return export_html(reports)
    if format == "json":
        return export_json(reports)
    raise ValueError(f"Unsupported export format: {format}")


MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "html": "text/html; charset=utf-8",
    "json": "application/json",
}
