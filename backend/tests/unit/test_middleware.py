"""Unit tests for API middleware helpers and log formatting.

Run with: pytest tests/unit/test_middleware.py -v
"""

import json
import logging

import pytest

from wastewatch.api.audit import AuditAction, AuditEntry, match_route_action
from wastewatch.api.middleware import RATE_LIMITS, InMemoryRateLimiter, get_rate_limit_category
from wastewatch.logging import JSONFormatter, LoggerAdapter, get_context_logger


class TestRouteActions:
    """Tests for mapping requests to audit actions."""

    @pytest.mark.parametrize(
        "method,path,expected",
        [
            ("POST", "/api/reports", AuditAction.REPORT_SUBMIT),
            ("POST", "/api/reports/", AuditAction.REPORT_SUBMIT),
            ("PUT", "/api/reports/42", AuditAction.REPORT_UPDATE),
            ("POST", "/api/reports/42/assign", AuditAction.REPORT_ASSIGN),
            ("DELETE", "/api/reports/42", AuditAction.REPORT_DELETE),
            ("POST", "/api/auth/login", AuditAction.USER_LOGIN),
            ("PUT", "/api/auth/profile", AuditAction.USER_PROFILE_UPDATE),
            ("PUT", "/api/auth/password", AuditAction.USER_PASSWORD_CHANGE),
            ("GET", "/api/admin/export/reports", AuditAction.REPORT_EXPORT),
        ],
    )
    def test_audited_routes(self, method, path, expected):
        assert match_route_action(method, path) == expected

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/reports"),
            ("GET", "/api/reports/42"),
            ("POST", "/api/reports/42/assign/extra"),
            ("GET", "/health"),
        ],
    )
    def test_reads_not_audited(self, method, path):
        assert match_route_action(method, path) is None

    def test_entry_serialization(self):
        entry = AuditEntry(
            action=AuditAction.REPORT_ASSIGN,
            user_id="admin-1",
            resource_type="report",
            resource_id="1",
            result_summary={"status_code": 200},
        )

        data = entry.to_dict()

        assert data["action"] == "report_assign"
        assert data["resource_id"] == "1"
        assert data["parameters"] == {}
        assert data["timestamp"].endswith("+00:00")


class TestRateLimiting:
    """Tests for rate limit categories and the in-memory limiter."""

    @pytest.mark.parametrize(
        "path,method,category",
        [
            ("/api/auth/login", "POST", "login"),
            ("/api/auth/password", "PUT", "password"),
            ("/api/auth/profile", "PUT", "auth"),
            ("/api/auth/register", "POST", "auth"),
            ("/api/admin/export/reports", "GET", "export"),
            ("/api/reports", "POST", "upload"),
            ("/api/reports", "GET", "default"),
            ("/api/reports/1/assign", "POST", "default"),
        ],
    )
    def test_categories(self, path, method, category):
        assert get_rate_limit_category(path, method) == category

    def test_password_change_limited_like_login(self):
        assert RATE_LIMITS["password"][0] <= RATE_LIMITS["login"][0]
        assert RATE_LIMITS["password"][1] >= RATE_LIMITS["login"][1]

    @pytest.mark.asyncio
    async def test_blocks_after_limit(self):
        limiter = InMemoryRateLimiter()

        results = [await limiter.check_rate_limit("ip:1:login", 3, 60) for _ in range(4)]

        assert [allowed for allowed, _, _ in results] == [True, True, True, False]
        assert [remaining for _, remaining, _ in results] == [2, 1, 0, 0]
        assert 1 <= results[-1][2] <= 60

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        limiter = InMemoryRateLimiter()
        await limiter.check_rate_limit("ip:1:login", 1, 60)

        allowed, _, _ = await limiter.check_rate_limit("ip:2:login", 1, 60)

        assert allowed

    @pytest.mark.asyncio
    async def test_cleanup_keeps_live_windows(self):
        limiter = InMemoryRateLimiter()
        await limiter.check_rate_limit("ip:1:default", 5, 60)

        await limiter.cleanup()

        allowed, remaining, _ = await limiter.check_rate_limit("ip:1:default", 5, 60)
        assert allowed
        assert remaining == 3


class TestLogging:
    """Tests for structured log output."""

    def make_record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord("wastewatch.workflow", logging.INFO, __file__, 10, "Report %s moved", ("1",), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_formatter_includes_extras(self):
        record = self.make_record(report_id="1", event="status_transition")

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "Report 1 moved"
        assert data["level"] == "INFO"
        assert data["report_id"] == "1"
        assert data["event"] == "status_transition"
        assert "args" not in data

    def test_context_logger_merges_extra(self):
        adapter = get_context_logger("wastewatch.test", component="board")

        msg, kwargs = adapter.process("hello", {"extra": {"report_id": "2"}})

        assert isinstance(adapter, LoggerAdapter)
        assert kwargs["extra"] == {"report_id": "2", "component": "board"}
