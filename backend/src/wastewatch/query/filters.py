"""Filter/query engine over report collections.

All predicates combine with logical AND and the result keeps the input
order; nothing here sorts.

Search has two distinct empty states. ``search=None`` means the user has
not searched, so no search predicate applies. A blank ``search`` is an
explicit search for nothing and matches no report.
"""

import math
from collections.abc import Iterable
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import Field, field_validator

from ..models.base import CamelModel, ReportStatus, WasteType, Zone
from ..models.reports import WasteReport

ALL = "all"


class SearchField(str, Enum):
    """Which report fields a search term is matched against."""

    ANY = "any"
    ID = "id"
    PHONE = "phone"


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ReportQuery(CamelModel):
    """A set of report predicates."""

    status: ReportStatus | Literal["all"] = ALL
    waste_type: WasteType | Literal["all"] = ALL
    zone: Zone | Literal["all"] = ALL
    severity: float | Literal["all"] = Field(
        default=ALL, description="Minimum severity, inclusive"
    )
    search: str | None = None
    search_by: SearchField = SearchField.ANY
    assigned_worker_id: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None

    @field_validator("status", "waste_type", "zone", mode="before")
    @classmethod
    def normalize_all(cls, value):
        if value is None or (isinstance(value, str) and value.strip().lower() in ("", ALL)):
            return ALL
        return value

    @field_validator("severity", mode="before")
    @classmethod
    def parse_severity(cls, value):
        if value is None:
            return ALL
        if isinstance(value, str):
            value = value.strip()
            if value.lower() in ("", ALL):
                return ALL
            try:
                value = float(value)
            except ValueError:
                raise ValueError(f"Invalid severity threshold: {value!r}")
        if isinstance(value, (int, float)) and not (math.isfinite(value) and 0 <= value <= 10):
            raise ValueError(f"Severity threshold must be between 0 and 10, got {value!r}")
        return value

    @field_validator("created_from", "created_to")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        return _aware(value)

    @property
    def is_search_idle(self) -> bool:
        return self.search is None

    def _matches_search(self, report: WasteReport) -> bool:
        term = self.search.strip().lower()
        if not term:
            return False
        in_id = term in report.id.lower()
        in_phone = term in report.citizen_phone.lower()
        if self.search_by == SearchField.ID:
            return in_id
        if self.search_by == SearchField.PHONE:
            return in_phone
        return in_id or in_phone

    def matches(self, report: WasteReport) -> bool:
        """Whether ``report`` satisfies every active predicate."""
        if self.status != ALL and report.status != self.status:
            return False
        if self.waste_type != ALL and report.waste_type != self.waste_type:
            return False
        if self.zone != ALL and report.zone != self.zone:
            return False
        if self.severity != ALL and report.severity < self.severity:
            return False
        if self.assigned_worker_id is not None and report.assigned_worker_id != self.assigned_worker_id:
            return False
        if self.created_from is not None and report.created_at < self.created_from:
            return False
        if self.created_to is not None and report.created_at > self.created_to:
            return False
        if self.search is not None and not self._matches_search(report):
            return False
        return True


def filter_reports(reports: Iterable[WasteReport], query: ReportQuery) -> list[WasteReport]:
    """Reports matching ``query``, in input order."""
    return [report for report in reports if query.matches(report)]


# Sort keys accepted by list endpoints; a leading "-" means descending
SORT_FIELDS = {
    "createdAt": lambda r: r.created_at,
    "updatedAt": lambda r: r.updated_at,
    "severity": lambda r: r.severity,
    "status": lambda r: r.status.value,
    "wasteType": lambda r: r.waste_type.value,
}


def sort_reports(reports: list[WasteReport], sort: str | None) -> list[WasteReport]:
    """Sort by a ``SORT_FIELDS`` key; None keeps the current order.

    Raises:
        ValueError: For an unknown sort key
    """
    if not sort:
        return list(reports)
    descending = sort.startswith("-")
    field = sort.lstrip("-")
    if field not in SORT_FIELDS:
        raise ValueError(f"Unsupported sort field: {field}")
    return sorted(reports, key=SORT_FIELDS[field], reverse=descending)
