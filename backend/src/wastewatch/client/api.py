"""Async HTTP client for the WasteWatch REST API.

Unwraps the ``{success, data}`` envelope and turns failures into two
exception types: ``TransportError`` when the server could not be reached and
``ServerError`` for any non-2xx response.
"""

import json
from typing import Any

import httpx

from ..config import get_settings
from ..logging import get_context_logger
from ..models.reports import ReportCreate

logger = get_context_logger(__name__, component="client")


class ApiClientError(Exception):
    """Base class for client-side API failures."""


class TransportError(ApiClientError):
    """The request never produced an HTTP response."""


class ServerError(ApiClientError):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str, error_code: str | None = None):
        self.status_code = status_code
        self.message = message
        self.error_code = error_code
        super().__init__(f"HTTP {status_code}: {message}")


def extract_docs(payload: Any) -> list[dict]:
    """Report list from either a paginated ``data`` object or a bare list."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        return list(payload.get("docs") or [])
    return []


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _params(**filters: Any) -> dict[str, Any]:
    params = {}
    for key, value in filters.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = str(value).lower()
        params[_camel(key)] = value
    return params


def _error_details(response: httpx.Response) -> tuple[str, str | None]:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase, None
    if isinstance(body, dict):
        message = body.get("error") or body.get("message") or body.get("detail")
        if message:
            return str(message), body.get("error_code")
    return response.reason_phrase, None


class WasteApiClient:
    """Thin wrapper over the REST endpoints.

    Args:
        base_url: API root, defaults to ``settings.api_base_url``
        token: Bearer token to send with every request
        transport: Optional httpx transport (tests pass a MockTransport or
            ASGITransport here)
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = (base_url or get_settings().api_base_url).rstrip("/")
        self.token = token
        self._transport = transport
        self._timeout = timeout
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={
                    "User-Agent": "WasteWatch-Client/1.0",
                    "Accept": "application/json",
                },
            )
        return self._http_client

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "WasteApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # =========================
    # Request plumbing
    # =========================

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request and raise on transport failure or error status.

        Raises:
            TransportError: If no response was received
            ServerError: For any non-2xx status
        """
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = await self.http_client.request(method, path, headers=headers, **kwargs)
        except httpx.RequestError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise TransportError(f"Could not reach {self.base_url}: {e}") from e

        if response.is_error:
            message, error_code = _error_details(response)
            logger.info(
                f"{method} {path} -> {response.status_code}",
                extra={"status_code": response.status_code, "error_code": error_code},
            )
            raise ServerError(response.status_code, message, error_code)
        return response

    async def _data(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self.request(method, path, **kwargs)
        return response.json().get("data")

    # =========================
    # Auth
    # =========================

    async def register(self, payload: dict[str, Any]) -> dict:
        """Create an account. Returns ``{token, user}``."""
        return await self._data("POST", "/api/auth/register", json=payload)

    async def login(self, email: str, password: str) -> dict:
        """Returns ``{token, user}``."""
        return await self._data(
            "POST", "/api/auth/login", json={"email": email, "password": password}
        )

    async def me(self) -> dict:
        return await self._data("GET", "/api/auth/me")

    async def logout(self) -> None:
        await self.request("POST", "/api/auth/logout")

    async def update_profile(self, name: str | None = None, phone: str | None = None) -> dict:
        """Change name and/or phone. Returns the updated user."""
        return await self._data("PUT", "/api/auth/profile", json=_params(name=name, phone=phone))

    async def change_password(self, current_password: str, new_password: str) -> None:
        await self.request(
            "PUT",
            "/api/auth/password",
            json={"currentPassword": current_password, "newPassword": new_password},
        )

    # =========================
    # Reports
    # =========================

    async def list_reports(self, page: int = 1, limit: int = 10, **filters: Any) -> dict:
        """One page of reports. ``filters`` take snake_case names."""
        params = _params(page=page, limit=limit, **filters)
        return await self._data("GET", "/api/reports", params=params)

    async def my_reports(self, page: int = 1, limit: int = 10) -> dict:
        return await self._data("GET", "/api/reports/my-reports", params=_params(page=page, limit=limit))

    async def get_report(self, report_id: str) -> dict:
        return await self._data("GET", f"/api/reports/{report_id}")

    async def submit_report(
        self,
        report: ReportCreate,
        image: bytes,
        filename: str = "photo.jpg",
        content_type: str = "image/jpeg",
    ) -> dict:
        """File a report as multipart form data with its photo."""
        fields = {
            "wasteType": report.waste_type.value,
            "severity": str(report.severity),
            "confidence": str(report.confidence),
            "location": json.dumps(report.location.to_api()),
        }
        optional = {
            "zone": report.zone.value if report.zone else None,
            "description": report.description,
            "citizenName": report.citizen_name,
            "citizenPhone": report.citizen_phone,
        }
        fields.update({key: value for key, value in optional.items() if value})
        return await self._data(
            "POST",
            "/api/reports",
            data=fields,
            files={"image": (filename, image, content_type)},
        )

    async def update_report(self, report_id: str, **changes: Any) -> dict:
        """Partial update; ``changes`` take snake_case names."""
        body = {_camel(key): value for key, value in changes.items() if value is not None}
        return await self._data("PUT", f"/api/reports/{report_id}", json=body)

    async def start_job(self, report_id: str) -> dict:
        return await self.update_report(report_id, status="In Progress")

    async def complete_job(self, report_id: str, completion_notes: str) -> dict:
        return await self.update_report(
            report_id, status="Resolved", completion_notes=completion_notes
        )

    async def assign_report(
        self,
        report_id: str,
        worker_id: str | None = None,
        allow_cross_zone: bool | None = None,
    ) -> dict:
        """Assign to ``worker_id``, or let the server pick when it is None."""
        body = {}
        if worker_id is not None:
            body["workerId"] = worker_id
        if allow_cross_zone is not None:
            body["allowCrossZone"] = allow_cross_zone
        return await self._data("POST", f"/api/reports/{report_id}/assign", json=body or None)

    async def assignment_candidates(
        self, report_id: str, cross_zone: bool | None = None
    ) -> list[dict]:
        return await self._data(
            "GET",
            f"/api/reports/{report_id}/assignment-candidates",
            params=_params(cross_zone=cross_zone),
        )

    async def delete_report(self, report_id: str) -> None:
        await self.request("DELETE", f"/api/reports/{report_id}")

    async def stats(self) -> dict:
        return await self._data("GET", "/api/reports/stats/overview")

    # =========================
    # Workers and admin
    # =========================

    async def list_workers(self, zone: str | None = None, q: str | None = None) -> list[dict]:
        return await self._data("GET", "/api/workers", params=_params(zone=zone, q=q))

    async def analytics(self, queue_limit: int = 10) -> dict:
        return await self._data("GET", "/api/admin/analytics", params=_params(queue_limit=queue_limit))

    async def bulk_assign(self, report_ids: list[str], agent_id: str) -> dict:
        return await self._data(
            "POST",
            "/api/admin/bulk-assign",
            json={"reportIds": report_ids, "agentId": agent_id},
        )

    async def export_reports(self, format: str = "csv", **filters: Any) -> bytes:
        """Download an export. Returns the raw file body."""
        response = await self.request(
            "GET", "/api/admin/export/reports", params=_params(format=format, **filters)
        )
        return response.content
