"""Structured logging configuration for WasteWatch.

``LOG_FORMAT=json`` writes one JSON object per line, anything else a
readable text line. Dispatch, workflow and export events go through the
``log_*`` helpers at the bottom so their fields stay consistent.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import get_settings

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}

QUIET_LOGGERS = ("httpx", "httpcore", "passlib", "multipart")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        log_data.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )
        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging() -> None:
    """Install a single stdout handler on the root logger."""
    settings = get_settings()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if settings.log_format == "json" else TextFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    root_logger.handlers = [handler]

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    get_logger(__name__).info(
        "Logging initialized",
        extra={
            "environment": settings.environment,
            "log_level": settings.log_level,
            "log_format": settings.log_format,
        },
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """Adds the adapter's bound fields to every record's ``extra``."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**(kwargs.get("extra") or {}), **self.extra}
        return msg, kwargs


def get_context_logger(name: str, **context: Any) -> LoggerAdapter:
    """Logger that tags each record with ``context``, e.g. ``component="board"``."""
    return LoggerAdapter(get_logger(name), context)


# =========================
# Event helpers
# =========================


def _event(logger_name: str, event: str, message: str, **fields: Any) -> None:
    get_logger(logger_name).info(message, extra={**fields, "event": event})


def log_api_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    user_id: str | None = None,
    request_id: str | None = None,
) -> None:
    _event(
        "wastewatch.api",
        "api_request",
        f"{method} {path} - {status_code}",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
        user_id=user_id,
        request_id=request_id,
    )


def log_status_transition(
    report_id: str,
    from_status: str,
    to_status: str,
    actor_id: str | None,
) -> None:
    _event(
        "wastewatch.workflow",
        "status_transition",
        f"Report {report_id}: {from_status} -> {to_status}",
        report_id=report_id,
        from_status=from_status,
        to_status=to_status,
        actor_id=actor_id,
    )


def log_assignment(report_id: str, worker_id: str, strategy: str, candidates: int) -> None:
    """Log a dispatch decision.

    Args:
        report_id: Report being assigned
        worker_id: Worker that received the job
        strategy: "manual" or "auto"
        candidates: Number of eligible workers considered
    """
    _event(
        "wastewatch.dispatch",
        "assignment",
        f"Assigned report {report_id} to worker {worker_id} ({strategy})",
        report_id=report_id,
        worker_id=worker_id,
        strategy=strategy,
        candidates=candidates,
    )


def log_export(export_format: str, row_count: int, user_id: str | None = None) -> None:
    _event(
        "wastewatch.export",
        "report_export",
        f"Exported {row_count} reports as {export_format}",
        format=export_format,
        row_count=row_count,
        user_id=user_id,
    )
