"""
API tests using FastAPI's TestClient.

The app is built with create_app() and its collaborators are swapped
through dependency_overrides: settings with known tokens, an in-memory
document store, and a recording notifier. Everything else, including the
admin guard and the error handlers, is the real thing.
"""

import pytest
from fastapi.testclient import TestClient

from clinic_placement.api.dependencies import get_document_store, get_notifier
from clinic_placement.config.settings import Settings, get_settings
from clinic_placement.infrastructure.documents.client import DocumentStoreError, MockDocumentStore
from clinic_placement.infrastructure.identity.client import ADMIN_COLLECTION
from clinic_placement.infrastructure.notifications.client import MockNotifier
from clinic_placement.main import create_app

API = "/api/v1/clinic"
SEASON = "Winter Break 2025-26"

ADMIN = {"Authorization": "Bearer admin-token"}
PARENT = {"Authorization": "Bearer parent-token"}


@pytest.fixture
def settings():
    return Settings(
        auth_tokens="admin-token=admin@example.com,parent-token=parent@example.com,staff-token=staff@example.com",
        admin_allow_emails="admin@example.com",
        snowflake_mock_mode=True,
        notifications_mock_mode=True,
        notify_email="office@example.com",
        default_season=SEASON,
    )


@pytest.fixture
def store():
    return MockDocumentStore()


@pytest.fixture
def notifier():
    return MockNotifier()


@pytest.fixture
def app(settings, store, notifier):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_notifier] = lambda: notifier
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def submission_body(**overrides):
    body = {
        "parent_email": "parent@example.com",
        "parent_phone": "555-123-4567",
        "swimmer_name": "Amy Chen",
        "level": "Silver Beginner",
        "preferences": [{"location": "PoolA", "selections": ["Dec 22 9AM", "Dec 23 9AM"]}],
    }
    body.update(overrides)
    return body


def activity_body(**overrides):
    body = {
        "season": SEASON,
        "title": "Winter Clinic",
        "type": "clinic",
        "locations": [
            {
                "name": "PoolA",
                "slots": [
                    {"label": "Dec 22 9AM", "date": "2099-12-22", "time": "9:00-10:00"},
                    {"label": "Dec 23 9AM", "date": "2099-12-23", "time": "9:00-10:00"},
                ],
            }
        ],
        "levels": ["Silver Beginner"],
    }
    body.update(overrides)
    return body


@pytest.fixture
def activity_id(client):
    response = client.post(f"{API}/activities", json=activity_body(), headers=ADMIN)
    assert response.status_code == 201
    return response.json()["id"]


def placement_body(activity_id, **overrides):
    body = {
        "activity_id": activity_id,
        "season": SEASON,
        "location": "PoolA",
        "slot_label": "Dec 22 9AM",
        "lanes": [{"lane_number": 1, "capacity": 3, "swimmers": [{"submission_id": "S1", "swimmer_name": "Amy"}]}],
        "waitlist": [],
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

class TestHealth:

    def test_liveness(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_readiness(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_readiness_reports_missing_configuration(self, app, client):
        app.dependency_overrides[get_settings] = lambda: Settings(snowflake_mock_mode=True, auth_tokens="")
        response = client.get("/health/ready")
        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"


# ---------------------------------------------------------------------------
# Authentication and the admin guard
# ---------------------------------------------------------------------------

class TestAdminGuard:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/admin/aggregate"),
            ("get", "/placements"),
            ("post", "/placements"),
            ("delete", "/placements/some-id"),
            ("get", "/recommendations"),
            ("get", "/activities"),
            ("post", "/activities"),
            ("put", "/activities/some-id"),
            ("delete", "/activities/some-id"),
        ],
    )
    def test_admin_routes_require_token(self, client, method, path):
        response = getattr(client, method)(f"{API}{path}")
        assert response.status_code == 401
        assert response.json() == {"error": "Missing bearer token"}

    def test_unknown_token(self, client):
        response = client.get(f"{API}/placements", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token"}

    def test_non_admin_is_forbidden(self, client):
        response = client.get(f"{API}/placements", headers=PARENT)
        assert response.status_code == 403
        assert response.json() == {"error": "Admin access required"}

    def test_admin_collection_grants_access(self, client, store):
        store.set(ADMIN_COLLECTION, "staff@example.com", {"email": "staff@example.com"})
        response = client.get(f"{API}/placements", headers={"Authorization": "Bearer staff-token"})
        assert response.status_code == 200

    def test_me(self, client):
        response = client.get(f"{API}/admin/me", headers=PARENT)
        assert response.status_code == 200
        assert response.json() == {"uid": "parent@example.com", "email": "parent@example.com", "is_admin": False}

        assert client.get(f"{API}/admin/me", headers=ADMIN).json()["is_admin"] is True

    def test_me_requires_token(self, client):
        assert client.get(f"{API}/admin/me").status_code == 401


# ---------------------------------------------------------------------------
# Submissions and aggregation
# ---------------------------------------------------------------------------

class TestSubmissions:

    def test_submit_is_public(self, client, notifier):
        response = client.post(f"{API}/submissions", json=submission_body())

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["submission_id"] == "winter_break_2025-26__parent@example.com__amy_chen"
        assert len(notifier.sent) == 1

    def test_invalid_submission(self, client):
        response = client.post(f"{API}/submissions", json=submission_body(parent_email="nope"))
        assert response.status_code == 400
        assert response.json() == {"error": "parent_email: invalid email"}

    def test_honeypot(self, client, notifier):
        response = client.post(f"{API}/submissions", json=submission_body(website="spam"))
        assert response.status_code == 200
        assert response.json() == {"ok": True, "submission_id": None}
        assert notifier.sent == []

    def test_malformed_body(self, client):
        response = client.post(f"{API}/submissions", json=submission_body(preferences="PoolA"))
        assert response.status_code == 422
        assert response.json()["error"].startswith("preferences")

    def test_aggregate(self, client):
        client.post(f"{API}/submissions", json=submission_body())
        client.post(f"{API}/submissions", json=submission_body(swimmer_name="Ben Chen", level="Gold Beginner"))
        client.post(f"{API}/submissions", json=submission_body(swimmer_name="AMY CHEN"))

        response = client.get(f"{API}/admin/aggregate", params={"season": SEASON}, headers=ADMIN)

        assert response.status_code == 200
        body = response.json()
        assert [(r["location"], r["label"], r["date_key"]) for r in body["rows"]] == [
            ("PoolA", "Dec 22 9AM", "Dec 22"),
            ("PoolA", "Dec 23 9AM", "Dec 23"),
        ]
        assert len(body["rows"][0]["swimmers"]) == 2
        assert body["by_level"] == {"Silver Beginner": 1, "Gold Beginner": 1}
        assert body["unique_swimmer_count"] == 2

    def test_aggregate_unknown_activity(self, client):
        response = client.get(f"{API}/admin/aggregate", params={"activity_id": "nope"}, headers=ADMIN)
        assert response.status_code == 404
        assert response.json() == {"error": "Activity not found: nope"}


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------

class TestActivities:

    def test_public_reads(self, client, activity_id):
        active = client.get(f"{API}/activities/active")
        assert active.status_code == 200
        assert active.json()["activity"]["id"] == activity_id

        single = client.get(f"{API}/activities/{activity_id}")
        assert single.status_code == 200
        assert single.json()["title"] == "Winter Clinic"
        assert single.json()["type"] == "clinic"

    def test_no_active_activity(self, client):
        response = client.get(f"{API}/activities/active")
        assert response.status_code == 200
        assert response.json() == {"activity": None}

    def test_unknown_activity(self, client):
        response = client.get(f"{API}/activities/nope")
        assert response.status_code == 404

    def test_list(self, client, activity_id):
        response = client.get(f"{API}/activities", params={"season": SEASON}, headers=ADMIN)
        assert response.status_code == 200
        assert [a["id"] for a in response.json()] == [activity_id]

    def test_create_requires_locations(self, client):
        response = client.post(f"{API}/activities", json=activity_body(locations=[]), headers=ADMIN)
        assert response.status_code == 400
        assert response.json() == {"error": "locations: at least one location is required"}

    def test_update_closes_signup(self, client, activity_id):
        response = client.put(
            f"{API}/activities/{activity_id}",
            json={"active": False, "is_full": True},
            headers=ADMIN,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["active"] is False
        assert body["is_full"] is True
        assert body["title"] == "Winter Clinic"
        assert client.get(f"{API}/activities/active").json() == {"activity": None}

    def test_update_is_admin_only(self, client, activity_id):
        response = client.put(f"{API}/activities/{activity_id}", json={"active": False}, headers=PARENT)
        assert response.status_code == 403

    def test_update_unknown(self, client):
        response = client.put(f"{API}/activities/nope", json={"active": False}, headers=ADMIN)
        assert response.status_code == 404
        assert response.json() == {"error": "Activity not found: nope"}

    def test_update_rejects_empty_locations(self, client, activity_id):
        response = client.put(f"{API}/activities/{activity_id}", json={"locations": []}, headers=ADMIN)
        assert response.status_code == 400

    def test_delete(self, client, activity_id):
        deleted = client.delete(f"{API}/activities/{activity_id}", headers=ADMIN)
        assert deleted.status_code == 204
        assert client.get(f"{API}/activities/{activity_id}").status_code == 404
        assert client.delete(f"{API}/activities/{activity_id}", headers=ADMIN).status_code == 404

    def test_public_listing_flags_and_archives_expired(self, client, activity_id):
        past = activity_body(
            title="Last Winter",
            locations=[{"name": "PoolA", "slots": [{"label": "Dec 22 9AM", "date": "2001-12-22"}]}],
        )
        expired_id = client.post(f"{API}/activities", json=past, headers=ADMIN).json()["id"]

        response = client.get(f"{API}/activities/public")

        assert response.status_code == 200
        listed = {a["id"]: a for a in response.json()}
        assert listed[activity_id]["is_expired"] is False
        assert listed[activity_id]["active"] is True
        assert listed[expired_id]["is_expired"] is True
        assert listed[expired_id]["active"] is False
        assert listed[expired_id]["archived_at"] is not None

        stored = client.get(f"{API}/activities/{expired_id}").json()
        assert stored["active"] is False


# ---------------------------------------------------------------------------
# Placements
# ---------------------------------------------------------------------------

class TestPlacements:

    def test_create_list_and_delete(self, client, activity_id):
        created = client.post(f"{API}/placements", json=placement_body(activity_id, expected_version=0), headers=ADMIN)

        assert created.status_code == 200
        placement = created.json()
        assert placement["version"] == 1
        assert placement["used_capacity"] == 1
        assert placement["lanes"][0]["swimmers"][0]["placed_at"] is not None

        listed = client.get(
            f"{API}/placements",
            params={"season": SEASON, "activity_id": activity_id},
            headers=ADMIN,
        )
        assert [p["id"] for p in listed.json()] == [placement["id"]]

        deleted = client.delete(f"{API}/placements/{placement['id']}", headers=ADMIN)
        assert deleted.status_code == 204
        assert client.delete(f"{API}/placements/{placement['id']}", headers=ADMIN).status_code == 404

    def test_stale_version_conflicts(self, client, activity_id):
        client.post(f"{API}/placements", json=placement_body(activity_id), headers=ADMIN)

        response = client.post(
            f"{API}/placements",
            json=placement_body(activity_id, expected_version=0),
            headers=ADMIN,
        )

        assert response.status_code == 409
        assert "expected version 0, current version 1" in response.json()["error"]

    def test_duplicate_swimmer_rejected(self, client, activity_id, store):
        lanes = [
            {"lane_number": 1, "swimmers": [{"submission_id": "S1"}]},
            {"lane_number": 2, "swimmers": [{"submission_id": "S1"}]},
        ]

        response = client.post(f"{API}/placements", json=placement_body(activity_id, lanes=lanes), headers=ADMIN)

        assert response.status_code == 400
        assert response.json()["error"].startswith("lanes[2]:")
        assert client.get(f"{API}/placements", headers=ADMIN).json() == []

    def test_missing_slot_label(self, client, activity_id):
        response = client.post(f"{API}/placements", json=placement_body(activity_id, slot_label=""), headers=ADMIN)
        assert response.status_code == 400
        assert response.json() == {"error": "slot_label: is required"}


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

class TestRecommendations:

    def test_recommendations(self, client, activity_id):
        client.post(f"{API}/submissions", json=submission_body())

        response = client.get(
            f"{API}/recommendations",
            params={"season": SEASON, "activity_id": activity_id},
            headers=ADMIN,
        )

        assert response.status_code == 200
        [rec] = response.json()["recommendations"]
        assert rec["swimmer_name"] == "Amy Chen"
        assert [s["slot_label"] for s in rec["recommended_slots"]] == ["Dec 22 9AM", "Dec 23 9AM"]
        assert all(s["needs_configuration"] for s in rec["recommended_slots"])
        assert rec["recommended_slots"][0]["reason"] == "Available capacity (3 spots open)"

    def test_unknown_activity(self, client):
        response = client.get(
            f"{API}/recommendations",
            params={"season": SEASON, "activity_id": "nope"},
            headers=ADMIN,
        )
        assert response.status_code == 404

    def test_season_required(self, client, activity_id):
        response = client.get(f"{API}/recommendations", params={"activity_id": activity_id}, headers=ADMIN)
        assert response.status_code == 400
        assert response.json() == {"error": "season: is required"}


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

class TestErrorHandling:

    def test_storage_failure_is_a_generic_500(self, app, client):
        class BrokenStore(MockDocumentStore):
            def query(self, collection, filters=None):
                raise DocumentStoreError("connection reset")

        app.dependency_overrides[get_document_store] = lambda: BrokenStore()

        response = client.get(f"{API}/admin/aggregate", headers=ADMIN)

        assert response.status_code == 500
        assert "connection reset" not in response.json()["error"]

    def test_unexpected_error_is_hidden(self, app):
        class ExplodingStore(MockDocumentStore):
            def get(self, collection, doc_id):
                raise RuntimeError("boom")

        app.dependency_overrides[get_document_store] = lambda: ExplodingStore()
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get(f"{API}/activities/abc")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

    def test_unknown_route(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert "error" in response.json()
