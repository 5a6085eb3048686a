"""Integration tests for the WasteWatch REST API.

Runs the FastAPI app in-process with sample data loaded: three workers,
four reports (one per status) and admin, citizen and worker accounts.

Run with: pytest tests/integration/test_api_flow.py -v
"""

import csv
import io
import json
from pathlib import Path

SAMPLE_PASSWORD = "password123"

LOCATION = json.dumps({"lat": 28.6139, "lng": 77.209, "address": "Janpath, New Delhi"})


def submit(api_client, headers, png_bytes, **fields):
    data = {"wasteType": "Plastic", "severity": "7.5", "location": LOCATION, "zone": "Central Delhi"}
    data.update(fields)
    return api_client.post(
        "/api/reports",
        headers=headers,
        data=data,
        files={"image": ("bin.png", png_bytes, "image/png")},
    )


class TestHealthAndErrors:
    """Tests for the health check and the error envelope."""

    def test_health(self, api_client):
        response = api_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["service"] == "wastewatch-api"

    def test_security_and_request_id_headers(self, api_client):
        response = api_client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_unauthenticated(self, api_client):
        response = api_client.get("/api/reports")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "AUTHENTICATION_REQUIRED"

    def test_validation_error_shape(self, api_client, admin_headers):
        response = api_client.get("/api/reports?page=0", headers=admin_headers)

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"][0]["field"] == "query.page"

    def test_unknown_filter_value(self, api_client, admin_headers):
        response = api_client.get("/api/reports?status=Archived", headers=admin_headers)

        assert response.status_code == 422

    def test_non_finite_severity_rejected(self, api_client, admin_headers):
        listing = api_client.get("/api/reports?severity=nan", headers=admin_headers)
        export = api_client.get("/api/admin/export/reports?severity=inf", headers=admin_headers)

        assert listing.status_code == 422
        assert listing.json()["error_code"] == "VALIDATION_ERROR"
        assert export.status_code == 422

    def test_report_not_found(self, api_client, admin_headers):
        response = api_client.get("/api/reports/missing", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"


class TestAuth:
    """Tests for register, login, me and logout."""

    def test_login_and_me(self, api_client, seeded_store):
        response = api_client.post(
            "/api/auth/login",
            json={"email": "Admin@WasteManagement.com", "password": SAMPLE_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["role"] == "admin"

        me = api_client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.json()["data"]["id"] == "admin-1"

    def test_bad_password(self, api_client, seeded_store):
        response = api_client.post(
            "/api/auth/login",
            json={"email": "admin@wastemanagement.com", "password": "nope"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid credentials"

    def test_register_citizen(self, api_client, seeded_store):
        response = api_client.post(
            "/api/auth/register",
            json={
                "name": "Priya Singh",
                "email": "priya@example.com",
                "phone": "+91-9123456780",
                "password": "secret123",
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "User registered successfully"
        assert body["data"]["user"]["role"] == "citizen"
        assert "passwordHash" not in body["data"]["user"]

    def test_duplicate_email(self, api_client, seeded_store):
        response = api_client.post(
            "/api/auth/register",
            json={
                "name": "Someone Else",
                "email": "neha.kapoor@wastewatch.org",
                "phone": "+91-9000000001",
                "password": "secret123",
            },
        )

        assert response.status_code == 400
        assert "already exists" in response.json()["error"]

    def test_admin_self_registration_forbidden(self, api_client, seeded_store):
        response = api_client.post(
            "/api/auth/register",
            json={
                "name": "Sneaky",
                "email": "sneaky@example.com",
                "phone": "+91-9000000002",
                "password": "secret123",
                "role": "admin",
            },
        )

        assert response.status_code == 403

    def test_worker_registration_joins_roster(self, api_client, seeded_store, admin_headers):
        response = api_client.post(
            "/api/auth/register",
            json={
                "name": "Kavita Rao",
                "email": "kavita@example.com",
                "phone": "+91-9000000003",
                "password": "secret123",
                "role": "worker",
                "zone": "West Delhi",
            },
        )
        assert response.status_code == 201

        workers = api_client.get("/api/workers", params={"zone": "West Delhi"}, headers=admin_headers).json()["data"]
        assert [w["name"] for w in workers] == ["Kavita Rao"]

    def test_worker_registration_needs_zone(self, api_client, seeded_store):
        response = api_client.post(
            "/api/auth/register",
            json={
                "name": "No Zone",
                "email": "nozone@example.com",
                "phone": "+91-9000000004",
                "password": "secret123",
                "role": "worker",
            },
        )

        assert response.status_code == 422

    def test_logout_revokes_token(self, api_client, citizen_headers):
        assert api_client.post("/api/auth/logout", headers=citizen_headers).status_code == 200

        response = api_client.get("/api/auth/me", headers=citizen_headers)

        assert response.status_code == 401
        assert response.json()["error"] == "Token has been revoked"

    def test_invalid_token(self, api_client, seeded_store):
        response = api_client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401


class TestAccount:
    """Tests for profile edits and password changes."""

    def test_update_profile(self, api_client, citizen_headers):
        response = api_client.put(
            "/api/auth/profile", json={"name": "  Neha K  ", "phone": "+91-9000000010"}, headers=citizen_headers
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Profile updated successfully"
        me = api_client.get("/api/auth/me", headers=citizen_headers).json()["data"]
        assert me["name"] == "Neha K"
        assert me["phone"] == "+91-9000000010"
        assert me["email"] == "neha.kapoor@wastewatch.org"

    def test_empty_profile_update(self, api_client, citizen_headers):
        response = api_client.put("/api/auth/profile", json={}, headers=citizen_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Nothing to update"

    def test_profile_phone_taken(self, api_client, citizen_headers):
        response = api_client.put("/api/auth/profile", json={"phone": "+91-1123456789"}, headers=citizen_headers)

        assert response.status_code == 400
        assert "already exists" in response.json()["error"]

    def test_profile_rejects_bad_phone(self, api_client, citizen_headers):
        response = api_client.put("/api/auth/profile", json={"phone": "call me"}, headers=citizen_headers)

        assert response.status_code == 422

    def test_worker_rename_updates_roster(self, api_client, worker_headers, admin_headers):
        api_client.put("/api/auth/profile", json={"name": "Amit K."}, headers=worker_headers)

        worker = api_client.get("/api/workers/1", headers=admin_headers).json()["data"]
        assert worker["name"] == "Amit K."

    def test_profile_requires_login(self, api_client, seeded_store):
        assert api_client.put("/api/auth/profile", json={"name": "X"}).status_code == 401

    def test_change_password(self, api_client, citizen_headers):
        response = api_client.put(
            "/api/auth/password",
            json={"currentPassword": SAMPLE_PASSWORD, "newPassword": "fresh-secret"},
            headers=citizen_headers,
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Password changed successfully"

        old = api_client.post(
            "/api/auth/login", json={"email": "neha.kapoor@wastewatch.org", "password": SAMPLE_PASSWORD}
        )
        new = api_client.post(
            "/api/auth/login", json={"email": "neha.kapoor@wastewatch.org", "password": "fresh-secret"}
        )
        assert old.status_code == 401
        assert new.status_code == 200

    def test_wrong_current_password(self, api_client, citizen_headers):
        response = api_client.put(
            "/api/auth/password",
            json={"currentPassword": "guess", "newPassword": "fresh-secret"},
            headers=citizen_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Current password is incorrect"

    def test_short_new_password(self, api_client, citizen_headers):
        response = api_client.put(
            "/api/auth/password",
            json={"currentPassword": SAMPLE_PASSWORD, "newPassword": "abc"},
            headers=citizen_headers,
        )

        assert response.status_code == 422

class TestListing:
    """Tests for listing, filtering and visibility."""

    def test_admin_sees_all_newest_first(self, api_client, admin_headers):
        data = api_client.get("/api/reports", headers=admin_headers).json()["data"]

        assert [r["id"] for r in data["docs"]] == ["1", "2", "3", "4"]
        assert data["totalDocs"] == 4
        assert data["hasNextPage"] is False

    def test_pagination(self, api_client, admin_headers):
        data = api_client.get("/api/reports?limit=3&page=2", headers=admin_headers).json()["data"]

        assert [r["id"] for r in data["docs"]] == ["4"]
        assert data["totalPages"] == 2
        assert data["hasPrevPage"] is True

    def test_filters(self, api_client, admin_headers):
        response = api_client.get(
            "/api/reports", params={"severity": "9", "wasteType": "E-Waste"}, headers=admin_headers
        )

        assert [r["id"] for r in response.json()["data"]["docs"]] == ["3"]

    def test_phone_search(self, api_client, admin_headers):
        response = api_client.get(
            "/api/reports", params={"search": "+91-9876543210"}, headers=admin_headers
        )

        assert [r["id"] for r in response.json()["data"]["docs"]] == ["1"]

    def test_sort_by_severity(self, api_client, admin_headers):
        response = api_client.get("/api/reports?sort=-severity", headers=admin_headers)

        assert [r["id"] for r in response.json()["data"]["docs"]] == ["4", "3", "1", "2"]

    def test_bad_sort(self, api_client, admin_headers):
        assert api_client.get("/api/reports?sort=citizenName", headers=admin_headers).status_code == 400

    def test_worker_sees_only_assigned(self, api_client, worker_headers):
        data = api_client.get("/api/reports", headers=worker_headers).json()["data"]

        assert [r["id"] for r in data["docs"]] == ["2"]

    def test_worker_cannot_widen_view(self, api_client, worker_headers):
        response = api_client.get("/api/reports?assignedAgentId=2", headers=worker_headers)

        assert [r["id"] for r in response.json()["data"]["docs"]] == ["2"]

    def test_citizen_cannot_list_all(self, api_client, citizen_headers):
        assert api_client.get("/api/reports", headers=citizen_headers).status_code == 403

    def test_worker_cannot_view_other_job(self, api_client, worker_headers):
        assert api_client.get("/api/reports/3", headers=worker_headers).status_code == 403
        assert api_client.get("/api/reports/2", headers=worker_headers).status_code == 200


class TestSubmission:
    """Tests for multipart report submission."""

    def test_submit_report(self, api_client, citizen_headers, png_bytes, isolated_settings):
        response = submit(api_client, citizen_headers, png_bytes, description="Overflowing bins")

        assert response.status_code == 201
        report = response.json()["data"]
        assert report["status"] == "Pending"
        assert report["citizenName"] == "Neha Kapoor"
        assert report["severityLevel"] == "Very High"
        assert report["imageUrl"].startswith("/uploads/reports/")

        mine = api_client.get("/api/reports/my-reports", headers=citizen_headers).json()["data"]
        assert [r["id"] for r in mine["docs"]] == [report["id"]]

        stored = Path(isolated_settings.upload_dir) / report["imageUrl"].removeprefix("/uploads/")
        assert stored.read_bytes() == png_bytes

    def test_missing_image(self, api_client, citizen_headers):
        response = api_client.post(
            "/api/reports",
            headers=citizen_headers,
            data={"wasteType": "Plastic", "severity": "5", "location": LOCATION},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Please upload an image"

    def test_non_image_rejected(self, api_client, citizen_headers):
        response = api_client.post(
            "/api/reports",
            headers=citizen_headers,
            data={"wasteType": "Plastic", "severity": "5", "location": LOCATION},
            files={"image": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Only image files are allowed"

    def test_out_of_range_severity(self, api_client, citizen_headers, png_bytes):
        response = submit(api_client, citizen_headers, png_bytes, severity="11")

        assert response.status_code == 422

    def test_bad_location(self, api_client, citizen_headers, png_bytes):
        response = submit(api_client, citizen_headers, png_bytes, location="Janpath")

        assert response.status_code == 422
        assert response.json()["details"][0]["field"] == "location"


class TestLifecycle:
    """Tests for status transitions over HTTP."""

    def test_full_lifecycle(self, api_client, admin_headers, headers_for, make_worker):
        assigned = api_client.put(
            "/api/reports/1",
            json={"status": "Assigned", "assignedAgentId": "1"},
            headers=admin_headers,
        )
        assert assigned.status_code == 200
        assert assigned.json()["data"]["assignedWorker"] == "Amit Kumar"

        amit = headers_for(make_worker("1", "Amit Kumar"))
        started = api_client.put("/api/reports/1", json={"status": "In Progress"}, headers=amit)
        assert started.json()["data"]["status"] == "In Progress"

        resolved = api_client.put(
            "/api/reports/1",
            json={"status": "Resolved", "completionNotes": "Cleared by the morning crew"},
            headers=amit,
        )
        data = resolved.json()["data"]
        assert data["status"] == "Resolved"
        assert data["completedAt"] is not None
        assert [e["toStatus"] for e in data["history"]] == ["Pending", "Assigned", "In Progress", "Resolved"]

    def test_skip_is_conflict(self, api_client, admin_headers):
        response = api_client.put("/api/reports/1", json={"status": "Resolved"}, headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_TRANSITION"

    def test_resolved_is_terminal(self, api_client, admin_headers):
        response = api_client.put("/api/reports/4", json={"status": "Pending"}, headers=admin_headers)

        assert response.status_code == 409

    def test_wrong_worker(self, api_client, seeded_store, headers_for, make_worker):
        suresh = headers_for(make_worker("2", "Suresh Yadav"))

        response = api_client.put("/api/reports/2", json={"status": "In Progress"}, headers=suresh)

        assert response.status_code == 403

    def test_foreign_report_denied_before_status_check(self, api_client, worker_headers):
        response = api_client.put("/api/reports/4", json={"status": "Pending"}, headers=worker_headers)

        assert response.status_code == 403
        assert response.json()["error_code"] == "ACCESS_DENIED"
        assert "Resolved" not in response.json()["error"]

    def test_admin_cannot_start_jobs(self, api_client, admin_headers):
        response = api_client.put("/api/reports/2", json={"status": "In Progress"}, headers=admin_headers)

        assert response.status_code == 403

    def test_citizen_cannot_update(self, api_client, citizen_headers):
        response = api_client.put("/api/reports/1", json={"status": "Assigned"}, headers=citizen_headers)

        assert response.status_code == 403

    def test_complete_needs_notes(self, api_client, seeded_store, headers_for, make_worker):
        suresh = headers_for(make_worker("2", "Suresh Yadav"))

        response = api_client.put("/api/reports/3", json={"status": "Resolved"}, headers=suresh)

        assert response.status_code == 400
        report = api_client.get("/api/reports/3", headers=suresh).json()["data"]
        assert report["status"] == "In Progress"

    def test_assign_needs_worker(self, api_client, admin_headers):
        response = api_client.put("/api/reports/1", json={"status": "Assigned"}, headers=admin_headers)

        assert response.status_code == 400

    def test_assign_unknown_worker(self, api_client, admin_headers):
        response = api_client.post("/api/reports/1/assign", json={"workerId": "99"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid worker: 99"


class TestAssignment:
    """Tests for automatic dispatch and candidates."""

    def test_auto_assign(self, api_client, admin_headers):
        response = api_client.post("/api/reports/1/assign", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["data"]["assignedWorkerId"] == "1"
        assert body["message"] == "Report assigned to Amit Kumar"

    def test_no_worker_in_zone(self, api_client, admin_headers, citizen_headers, png_bytes):
        report_id = submit(api_client, citizen_headers, png_bytes, zone="West Delhi").json()["data"]["id"]

        response = api_client.post(f"/api/reports/{report_id}/assign", headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error_code"] == "NO_AVAILABLE_WORKER"

        fallback = api_client.post(
            f"/api/reports/{report_id}/assign",
            json={"allowCrossZone": True},
            headers=admin_headers,
        )
        assert fallback.status_code == 200

    def test_candidates(self, api_client, admin_headers):
        response = api_client.get("/api/reports/1/assignment-candidates", headers=admin_headers)

        candidates = response.json()["data"]
        assert [c["worker"]["id"] for c in candidates] == ["1"]
        assert candidates[0]["worker"]["activeJobs"] == 1

    def test_candidates_cross_zone(self, api_client, admin_headers, citizen_headers, png_bytes):
        report_id = submit(api_client, citizen_headers, png_bytes, zone="West Delhi").json()["data"]["id"]

        assert api_client.get(f"/api/reports/{report_id}/assignment-candidates", headers=admin_headers).json()["data"] == []
        response = api_client.get(
            f"/api/reports/{report_id}/assignment-candidates?crossZone=true", headers=admin_headers
        )

        assert [c["worker"]["id"] for c in response.json()["data"]] == ["3", "1", "2"]

    def test_worker_cannot_assign(self, api_client, worker_headers):
        assert api_client.post("/api/reports/1/assign", headers=worker_headers).status_code == 403


class TestAdmin:
    """Tests for deletion, workers, analytics, bulk assignment and export."""

    def test_delete_report(self, api_client, admin_headers):
        assert api_client.delete("/api/reports/1", headers=admin_headers).status_code == 200
        assert api_client.get("/api/reports/1", headers=admin_headers).status_code == 404
        assert api_client.delete("/api/reports/1", headers=admin_headers).status_code == 404

    def test_workers(self, api_client, admin_headers):
        workers = api_client.get("/api/workers", headers=admin_headers).json()["data"]

        assert {w["id"]: w["activeJobs"] for w in workers} == {"1": 1, "2": 1, "3": 0}

        found = api_client.get("/api/workers?q=ravi", headers=admin_headers).json()["data"]
        assert [w["id"] for w in found] == ["3"]

    def test_get_worker(self, api_client, admin_headers):
        assert api_client.get("/api/workers/2", headers=admin_headers).json()["data"]["name"] == "Suresh Yadav"
        assert api_client.get("/api/workers/99", headers=admin_headers).status_code == 404

    def test_workers_need_admin(self, api_client, worker_headers):
        assert api_client.get("/api/workers", headers=worker_headers).status_code == 403

    def test_stats_overview(self, api_client, admin_headers):
        data = api_client.get("/api/reports/stats/overview", headers=admin_headers).json()["data"]

        assert data["totals"] == {"total": 4, "pending": 1, "assigned": 1, "inProgress": 1, "resolved": 1}
        assert data["highPriority"] == 3

    def test_analytics(self, api_client, admin_headers):
        data = api_client.get("/api/admin/analytics?queueLimit=1", headers=admin_headers).json()["data"]

        assert data["summary"]["totals"]["total"] == 4
        assert [r["id"] for r in data["highPriorityQueue"]] == ["3"]
        assert len(data["workers"]) == 3

    def test_bulk_assign(self, api_client, admin_headers):
        response = api_client.post(
            "/api/admin/bulk-assign",
            json={"reportIds": ["1", "2"], "agentId": "1"},
            headers=admin_headers,
        )

        body = response.json()
        assert body["data"] == {"modifiedCount": 1, "reportIds": ["1"]}
        assert body["message"] == "1 reports assigned successfully"

    def test_export_csv(self, api_client, admin_headers):
        response = api_client.get("/api/admin/export/reports?format=csv&status=Pending", headers=admin_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment; filename=\"waste-reports-" in response.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(response.text)))
        assert [row[0] for row in rows] == ["id", "1"]

    def test_export_html(self, api_client, admin_headers):
        response = api_client.get("/api/admin/export/reports?format=html", headers=admin_headers)

        assert response.headers["content-type"].startswith("text/html")
        assert "Connaught Place" in response.text

    def test_export_bad_format(self, api_client, admin_headers):
        response = api_client.get("/api/admin/export/reports?format=pdf", headers=admin_headers)

        assert response.status_code == 422

    def test_export_needs_admin(self, api_client, citizen_headers):
        assert api_client.get("/api/admin/export/reports", headers=citizen_headers).status_code == 403

    def test_audit_trail(self, api_client, admin_headers):
        api_client.post("/api/reports/1/assign", headers=admin_headers)

        entries = api_client.get("/api/admin/audit", headers=admin_headers).json()["data"]

        latest = entries[0]
        assert latest["action"] == "report_assign"
        assert latest["resource_id"] == "1"
        assert latest["user_id"] == "admin-1"
        assert latest["result_summary"] == {"status_code": 200}
