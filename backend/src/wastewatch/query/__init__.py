"""Report filtering and sorting."""

from .filters import ALL, ReportQuery, SearchField, filter_reports, sort_reports

__all__ = ["ALL", "ReportQuery", "SearchField", "filter_reports", "sort_reports"]
