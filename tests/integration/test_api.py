from datetime import datetime, timedelta, timezone

import pytest

from enrollment_portal.core.rate_limiter import RateLimitBudget
from tests.conftest import ADMIN_TOKEN, NO_ROLE_TOKEN, STUDENT_TOKEN, auth_header, junior_form, senior_form

BASE = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


def submit(client, token=STUDENT_TOKEN, **overrides):
    response = client.post("/api/v1/enrollments", json=junior_form(**overrides), headers=auth_header(token))
    assert response.status_code == 201, response.json()
    return response.json()["id"]


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]
        assert "X-Process-Time" in response.headers

    def test_full_health_is_admin_only(self, client):
        assert client.get("/health/full").status_code == 401
        response = client.get("/health/full", headers=auth_header(ADMIN_TOKEN))
        assert response.status_code == 200
        body = response.json()
        assert body["store"] == "reachable"
        assert body["encryption"] == {"enabled": True, "configured": True}
        assert body["live_listeners"] == 0


class TestAuth:
    def test_missing_token(self, client):
        response = client.get("/api/v1/auth/me")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token(self, client):
        assert client.get("/api/v1/auth/me", headers=auth_header("forged")).status_code == 401

    def test_first_sign_in_creates_student(self, client, db):
        response = client.get("/api/v1/auth/me", headers=auth_header(STUDENT_TOKEN))
        assert response.status_code == 200
        assert response.json()["role"] == "student"
        assert db.docs("users")["student-1"]["role"] == "student"

    def test_existing_admin(self, client):
        response = client.get("/api/v1/auth/me", headers=auth_header(ADMIN_TOKEN))
        assert response.json()["role"] == "admin"


class TestEnrollmentSubmission:
    def test_submit(self, client, db):
        id = submit(client)
        stored = db.docs("enrollments")[id]
        assert stored["userId"] == "student-1"
        assert stored["_encrypted"] is True
        assert stored["status"] == "submitted"

    def test_submit_requires_sign_in(self, client):
        assert client.post("/api/v1/enrollments", json=junior_form()).status_code == 401

    def test_invalid_form_returns_field_errors(self, client):
        form = junior_form(lrn="123", hasPSA=False)
        response = client.post("/api/v1/enrollments", json=form, headers=auth_header(STUDENT_TOKEN))
        assert response.status_code == 422
        errors = response.json()["detail"]["errors"]
        assert set(errors) == {"lrn", "documents"}

    def test_closed_level_is_refused(self, client):
        client.put("/api/v1/settings/enrollment", json={"seniorHighOpen": False}, headers=auth_header(ADMIN_TOKEN))
        response = client.post("/api/v1/enrollments", json=senior_form(), headers=auth_header(STUDENT_TOKEN))
        assert response.status_code == 409

    def test_my_enrollments_are_summaries(self, client):
        submit(client)
        submit(client, token=ADMIN_TOKEN, fullName="Maria Clara")
        response = client.get("/api/v1/enrollments/me", headers=auth_header(STUDENT_TOKEN))
        assert response.status_code == 200
        mine = response.json()
        assert len(mine) == 1
        assert mine[0]["maskedName"] == "Encrypted"
        assert "lrn" not in mine[0]


class TestEnrollmentAdministration:
    @pytest.mark.parametrize("token,status_code", [
        (None, 401),
        (STUDENT_TOKEN, 403),
        (NO_ROLE_TOKEN, 403),
        (ADMIN_TOKEN, 200),
    ])
    def test_listing_requires_admin(self, client, token, status_code):
        headers = auth_header(token) if token else {}
        assert client.get("/api/v1/enrollments", headers=headers).status_code == status_code

    def test_admin_responses_are_not_cached(self, client):
        response = client.get("/api/v1/enrollments", headers=auth_header(ADMIN_TOKEN))
        assert response.headers["Cache-Control"] == "no-store"

    def test_cursor_pagination(self, client, db):
        for i in range(5):
            db.seed("enrollments", f"e{i}", {"status": "submitted", "type": "junior", "submittedAt": BASE + timedelta(hours=i)})

        first = client.get("/api/v1/enrollments", params={"pageSize": 2}, headers=auth_header(ADMIN_TOKEN)).json()
        assert [r["id"] for r in first["items"]] == ["e4", "e3"]
        assert first["has_more"] is True

        second = client.get(
            "/api/v1/enrollments",
            params={"pageSize": 2, "cursor": first["cursor"]},
            headers=auth_header(ADMIN_TOKEN),
        ).json()
        assert [r["id"] for r in second["items"]] == ["e2", "e1"]

    def test_unknown_cursor(self, client):
        response = client.get("/api/v1/enrollments", params={"cursor": "nope"}, headers=auth_header(ADMIN_TOKEN))
        assert response.status_code == 400

    def test_search_term_switches_to_search(self, client):
        submit(client)
        submit(client, fullName="Maria Clara")
        response = client.get(
            "/api/v1/enrollments", params={"searchTerm": "maria"}, headers=auth_header(ADMIN_TOKEN)
        )
        body = response.json()
        assert [r["fullName"] for r in body["items"]] == ["Maria Clara"]
        assert body["has_more"] is False

    def test_get_update_and_status(self, client, db):
        id = submit(client)
        admin = auth_header(ADMIN_TOKEN)

        record = client.get(f"/api/v1/enrollments/{id}", headers=admin).json()
        assert record["fullName"] == "Juan Dela Cruz"

        assert client.patch(f"/api/v1/enrollments/{id}", json={"adminNotes": "PSA checked"}, headers=admin).status_code == 200
        response = client.patch(
            f"/api/v1/enrollments/{id}/status",
            json={"status": "rejected", "rejectionReason": "Incomplete documents"},
            headers=admin,
        )
        assert response.json() == {"id": id, "status": "rejected"}
        stored = db.docs("enrollments")[id]
        assert stored["adminNotes"] == "PSA checked"
        assert stored["rejectionReason"] == "Incomplete documents"

    def test_type_cannot_change(self, client):
        id = submit(client)
        response = client.patch(f"/api/v1/enrollments/{id}", json={"type": "senior"}, headers=auth_header(ADMIN_TOKEN))
        assert response.status_code == 400

    @pytest.mark.parametrize("changes", [
        {"_iv": "00" * 16},
        {"_encrypted": False, "_encryptedAt": "2026-01-01"},
        {"userId": "someone-else"},
        {"schoolYear": "2019-2020"},
        {"submittedAt": "2020-01-01T00:00:00Z"},
    ])
    def test_patch_refuses_undeclared_fields(self, client, db, changes):
        id = submit(client)
        admin = auth_header(ADMIN_TOKEN)
        before = dict(db.docs("enrollments")[id])

        response = client.patch(f"/api/v1/enrollments/{id}", json={"adminNotes": "ok", **changes}, headers=admin)
        assert response.status_code == 422
        response = client.post(
            "/api/v1/enrollments/batch/update",
            json={"updates": [{"id": id, "data": changes}]},
            headers=admin,
        )
        assert response.status_code == 422

        assert db.docs("enrollments")[id] == before
        record = client.get(f"/api/v1/enrollments/{id}", headers=admin).json()
        assert record["fullName"] == "Juan Dela Cruz"

    def test_patch_corrects_protected_field(self, client, db):
        id = submit(client)
        admin = auth_header(ADMIN_TOKEN)
        response = client.patch(f"/api/v1/enrollments/{id}", json={"address": "45 Mabini Street"}, headers=admin)
        assert response.status_code == 200
        assert db.docs("enrollments")[id]["address"] != "45 Mabini Street"
        record = client.get(f"/api/v1/enrollments/{id}", headers=admin).json()
        assert record["address"] == "45 Mabini Street"
        assert response.status_code == 400

    def test_unknown_status_is_rejected(self, client):
        id = submit(client)
        response = client.patch(
            f"/api/v1/enrollments/{id}/status", json={"status": "approved"}, headers=auth_header(ADMIN_TOKEN)
        )
        assert response.status_code == 422

    def test_missing_enrollment(self, client):
        admin = auth_header(ADMIN_TOKEN)
        assert client.get("/api/v1/enrollments/nope", headers=admin).status_code == 404
        assert client.delete("/api/v1/enrollments/nope", headers=admin).status_code == 404

    def test_delete(self, client, db):
        id = submit(client)
        assert client.delete(f"/api/v1/enrollments/{id}", headers=auth_header(ADMIN_TOKEN)).status_code == 204
        assert id not in db.docs("enrollments")

    def test_batch_update_and_delete(self, client, db):
        ids = [submit(client), submit(client, fullName="Maria Clara")]
        admin = auth_header(ADMIN_TOKEN)
        response = client.post(
            "/api/v1/enrollments/batch/update",
            json={"updates": [{"id": id, "data": {"status": "verified"}} for id in ids]},
            headers=admin,
        )
        assert response.json() == {"updated": 2}
        assert all(db.docs("enrollments")[id]["status"] == "verified" for id in ids)

        response = client.post("/api/v1/enrollments/batch/delete", json={"ids": ids}, headers=admin)
        assert response.json() == {"deleted": 2}
        assert db.docs("enrollments") == {}

    def test_batch_update_missing_document_changes_nothing(self, client, db):
        id = submit(client)
        response = client.post(
            "/api/v1/enrollments/batch/update",
            json={"updates": [{"id": id, "data": {"status": "verified"}}, {"id": "nope", "data": {"status": "verified"}}]},
            headers=auth_header(ADMIN_TOKEN),
        )
        assert response.status_code == 404
        assert db.docs("enrollments")[id]["status"] == "submitted"

    def test_archive(self, client, db):
        id = submit(client)
        response = client.post("/api/v1/enrollments/archive", json={"ids": [id]}, headers=auth_header(ADMIN_TOKEN))
        assert response.json() == {"archived": 1, "strategy": "flag"}
        assert db.docs("enrollments")[id]["status"] == "archived"
        assert len(db.docs("archived_enrollments")) == 1

    def test_count_stats_and_activity(self, client):
        submit(client)
        submit(client, fullName="Maria Clara")
        admin = auth_header(ADMIN_TOKEN)

        assert client.get("/api/v1/enrollments/count", params={"type": "junior"}, headers=admin).json() == {"count": 2}
        stats = client.get("/api/v1/enrollments/stats", headers=admin).json()
        assert stats["total"] == 2
        assert stats["byType"] == {"junior": 2, "senior": 0}
        activity = client.get("/api/v1/enrollments/activity", params={"days": 3}, headers=admin).json()
        assert len(activity) == 3


class TestContent:
    def test_settings_defaults_and_update(self, client):
        response = client.get("/api/v1/settings/enrollment")
        assert response.json() == {
            "isOpen": True,
            "schoolYear": "2025-2026",
            "juniorHighOpen": True,
            "seniorHighOpen": True,
            "message": "",
        }

        assert client.put("/api/v1/settings/enrollment", json={"isOpen": False}).status_code == 401
        response = client.put(
            "/api/v1/settings/enrollment",
            json={"isOpen": False, "message": "Enrollment resumes in January"},
            headers=auth_header(ADMIN_TOKEN),
        )
        assert response.json()["isOpen"] is False
        assert response.json()["schoolYear"] == "2025-2026"

    def test_teachers(self, client):
        admin = auth_header(ADMIN_TOKEN)
        teacher = {"name": "Ana Reyes", "position": "Adviser", "department": "Science", "order": 2}
        assert client.post("/api/v1/teachers", json=teacher, headers=auth_header(STUDENT_TOKEN)).status_code == 403
        client.post("/api/v1/teachers", json=teacher, headers=admin)
        client.post("/api/v1/teachers", json={**teacher, "name": "Ben Cruz", "order": 1}, headers=admin)

        names = [t["name"] for t in client.get("/api/v1/teachers").json()]
        assert names == ["Ben Cruz", "Ana Reyes"]

    def test_news_hides_drafts_from_public(self, client, db):
        db.seed("news", "live", {"title": "Open house", "isPublished": True, "publishedAt": BASE})
        db.seed("news", "draft", {"title": "Draft", "isPublished": False, "publishedAt": BASE})

        assert [p["id"] for p in client.get("/api/v1/news").json()] == ["live"]
        assert client.get("/api/v1/news/draft").status_code == 404
        assert client.get("/api/v1/news/live").status_code == 200
        assert client.get("/api/v1/news/all").status_code == 401
        all_posts = client.get("/api/v1/news/all", headers=auth_header(ADMIN_TOKEN)).json()
        assert {p["id"] for p in all_posts} == {"live", "draft"}


class TestRateLimiting:
    def test_over_budget_returns_429_with_retry_after(self, app, client):
        app.state.rate_limiter.budgets["general"] = RateLimitBudget("general", 2, 60)
        assert client.get("/health").status_code == 200
        assert client.get("/health").status_code == 200
        response = client.get("/health")
        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) >= 1
        assert response.json()["error"] == "Too Many Requests"
