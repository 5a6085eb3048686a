"""Audit trail for state-changing API requests.

Every submission, transition, assignment, deletion, export and account
event is recorded with who did it, to what, and how it ended.
"""

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from ..logging import get_context_logger
from ..store import get_store

logger = get_context_logger(__name__, component="audit")


class AuditAction(str, Enum):
    # Accounts
    USER_REGISTER = "user_register"
    USER_LOGIN = "user_login"
    USER_LOGOUT = "user_logout"
    USER_PROFILE_UPDATE = "user_profile_update"
    USER_PASSWORD_CHANGE = "user_password_change"

    # Reports
    REPORT_SUBMIT = "report_submit"
    REPORT_UPDATE = "report_update"
    REPORT_ASSIGN = "report_assign"
    REPORT_DELETE = "report_delete"
    BULK_ASSIGN = "bulk_assign"
    REPORT_EXPORT = "report_export"


@dataclass
class AuditEntry:
    """One recorded request."""

    action: AuditAction
    user_id: str | None = None
    request_id: str | None = None
    resource_type: str | None = None
    resource_id: str | None = None
    parameters: dict[str, Any] = field(default_factory=dict)
    result_summary: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None
    id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["action"] = self.action.value
        data["timestamp"] = self.timestamp.isoformat()
        return data


# (method, path pattern) -> action; ``{id}`` matches one path segment
ROUTE_ACTIONS: dict[tuple[str, str], AuditAction] = {
    ("POST", "/api/auth/register"): AuditAction.USER_REGISTER,
    ("POST", "/api/auth/login"): AuditAction.USER_LOGIN,
    ("POST", "/api/auth/logout"): AuditAction.USER_LOGOUT,
    ("PUT", "/api/auth/profile"): AuditAction.USER_PROFILE_UPDATE,
    ("PUT", "/api/auth/password"): AuditAction.USER_PASSWORD_CHANGE,
    ("POST", "/api/reports"): AuditAction.REPORT_SUBMIT,
    ("PUT", "/api/reports/{id}"): AuditAction.REPORT_UPDATE,
    ("POST", "/api/reports/{id}/assign"): AuditAction.REPORT_ASSIGN,
    ("DELETE", "/api/reports/{id}"): AuditAction.REPORT_DELETE,
    ("POST", "/api/admin/bulk-assign"): AuditAction.BULK_ASSIGN,
    ("GET", "/api/admin/export/reports"): AuditAction.REPORT_EXPORT,
}

_ROUTE_PATTERNS = [
    (method, re.compile("^" + re.sub(r"\{\w+\}", "[^/]+", pattern) + "$"), action)
    for (method, pattern), action in ROUTE_ACTIONS.items()
]


def match_route_action(method: str, path: str) -> AuditAction | None:
    """The audit action for a request, or None if it is not audited."""
    path = path.rstrip("/") or "/"
    for route_method, pattern, action in _ROUTE_PATTERNS:
        if route_method == method and pattern.match(path):
            return action
    return None


def get_client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


def _resource(path: str) -> tuple[str | None, str | None]:
    parts = path.strip("/").split("/")
    if "reports" in parts:
        index = parts.index("reports")
        return "report", parts[index + 1] if index + 1 < len(parts) else None
    if "auth" in parts:
        return "user", None
    return None, None


async def log_audit_entry(entry: AuditEntry) -> None:
    """Store an audit entry and mirror it to the structured log."""
    await get_store().record_audit(entry.to_dict())
    logger.info(
        "audit_event",
        extra={
            "action": entry.action.value,
            "user_id": entry.user_id,
            "resource_type": entry.resource_type,
            "resource_id": entry.resource_id,
            "status_code": entry.result_summary.get("status_code"),
        },
    )


class AuditMiddleware(BaseHTTPMiddleware):
    """Records every request that matches ``ROUTE_ACTIONS`` once it has been answered.

    Only query parameters are kept; request bodies (passwords, photos) never are.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        action = match_route_action(request.method, request.url.path)
        response = await call_next(request)
        if action is None:
            return response

        resource_type, resource_id = _resource(request.url.path)
        await log_audit_entry(
            AuditEntry(
                action=action,
                user_id=getattr(request.state, "user_id", None),
                request_id=getattr(request.state, "request_id", None),
                resource_type=resource_type,
                resource_id=resource_id,
                parameters=dict(request.query_params),
                result_summary={"status_code": response.status_code},
                ip_address=get_client_ip(request),
                user_agent=request.headers.get("User-Agent"),
            )
        )
        return response
