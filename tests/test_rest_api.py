from __future__ import annotations

import jwt
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from conftest import auth, make_context, make_settings
from travel_itinerary.server import create_app

PARIS = {
    "title": "Paris Trip",
    "destination": "Paris",
    "startDate": "2024-06-01",
    "endDate": "2024-06-05",
    "activities": [
        {"time": "09:00", "description": "Louvre", "location": "Rue de Rivoli"},
    ],
}


def _create(client, token, body=None):
    resp = client.post("/api/itineraries", json=body or PARIS, headers=auth(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["itinerary"]


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class TestAuthRoutes:
    def test_register_returns_verifiable_token(self, ctx, register_user):
        token, user = register_user()
        assert ctx.tokens.verify(token) == user["_id"]
        assert "password" not in user
        assert user["email"] == "alice@mail.com"

    def test_register_same_email_twice(self, client, register_user):
        register_user()
        resp = client.post(
            "/api/auth/register",
            json={"email": "alice@mail.com", "password": "secret123", "name": "Alice"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "User already exists with this email"

    def test_register_validation(self, client):
        resp = client.post("/api/auth/register", json={"email": "alice@mail.com", "password": "123"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Password must be at least 6 characters"

    def test_register_rejects_password_over_72_bytes(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"email": "alice@mail.com", "password": "x" * 80, "name": "Alice"},
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Password must be at most 72 bytes"
        assert resp.json()["field"] == "password"

    def test_login(self, client, register_user):
        register_user()
        resp = client.post("/api/auth/login", json={"email": "alice@mail.com", "password": "secret123"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Login successful"
        assert body["token"]
        assert "password" not in body["user"]

    def test_login_trims_email(self, client, register_user):
        _, user = register_user()
        resp = client.post("/api/auth/login", json={"email": "  alice@mail.com ", "password": "secret123"})
        assert resp.status_code == 200
        assert resp.json()["user"]["_id"] == user["_id"]

    def test_login_missing_fields(self, client):
        resp = client.post("/api/auth/login", json={"email": "alice@mail.com"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Email and password are required"

    def test_wrong_password_and_unknown_email_look_the_same(self, client, register_user):
        register_user()
        wrong = client.post("/api/auth/login", json={"email": "alice@mail.com", "password": "nope-nope"})
        unknown = client.post("/api/auth/login", json={"email": "bob@mail.com", "password": "secret123"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()

    def test_me(self, client, register_user):
        token, user = register_user()
        resp = client.get("/api/auth/me", headers=auth(token))
        assert resp.status_code == 200
        assert resp.json()["user"]["_id"] == user["_id"]

    def test_token_for_deleted_user(self, client, ctx, register_user):
        token, user = register_user()
        ctx.db["users"].delete_many({})
        resp = client.get("/api/auth/me", headers=auth(token))
        assert resp.status_code == 401
        assert resp.json()["message"] == "User not found"


# ---------------------------------------------------------------------------
# Itineraries
# ---------------------------------------------------------------------------

class TestItineraryRoutes:
    def test_create_requires_auth(self, client):
        resp = client.post("/api/itineraries", json=PARIS)
        assert resp.status_code == 401
        assert resp.json()["message"] == "Authentication required"

    def test_invalid_token(self, client):
        resp = client.get("/api/itineraries", headers=auth("garbage"))
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid or expired token"

    def test_expired_token(self, client, register_user):
        _, user = register_user()
        expired = jwt.encode({"sub": user["_id"], "exp": 1}, "test-secret", algorithm="HS256")
        assert client.get("/api/itineraries", headers=auth(expired)).status_code == 401

    def test_create_and_get(self, client, register_user):
        token, user = register_user()
        created = _create(client, token)

        assert created["userId"] == user["_id"]
        assert created["startDate"] == "2024-06-01T00:00:00.000Z"
        assert created["activities"][0]["location"] == "Rue de Rivoli"

        resp = client.get(f"/api/itineraries/{created['_id']}", headers=auth(token))
        assert resp.status_code == 200
        assert resp.json()["itinerary"]["title"] == "Paris Trip"

    def test_create_rejects_end_before_start(self, client, register_user):
        token, _ = register_user()
        body = dict(PARIS, startDate="2024-06-05", endDate="2024-06-01")
        resp = client.post("/api/itineraries", json=body, headers=auth(token))
        assert resp.status_code == 400
        assert resp.json()["message"] == "End date must be after start date"

    def test_create_missing_title(self, client, register_user):
        token, _ = register_user()
        body = {k: v for k, v in PARIS.items() if k != "title"}
        resp = client.post("/api/itineraries", json=body, headers=auth(token))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Title is required"

    def test_malformed_activity_is_400(self, client, register_user):
        token, _ = register_user()
        body = dict(PARIS, activities=[{"time": "09:00"}])
        resp = client.post("/api/itineraries", json=body, headers=auth(token))
        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"

    def test_listing_is_scoped_to_owner(self, client, register_user):
        alice, _ = register_user()
        bob, _ = register_user("bob@mail.com", "secret123", "Bob")
        _create(client, alice)
        _create(client, alice, dict(PARIS, title="Rome Trip", destination="Rome"))

        resp = client.get("/api/itineraries?destination=Paris", headers=auth(alice))
        body = resp.json()
        assert [it["title"] for it in body["itineraries"]] == ["Paris Trip"]
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}

        for query in ("", "?destination=Paris", "?page=1&limit=1&sort=-title"):
            other = client.get(f"/api/itineraries{query}", headers=auth(bob)).json()
            assert other["itineraries"] == []
            assert other["pagination"]["total"] == 0

    def test_list_rejects_bad_paging(self, client, register_user):
        token, _ = register_user()
        assert client.get("/api/itineraries?page=0", headers=auth(token)).status_code == 400
        assert client.get("/api/itineraries?limit=abc", headers=auth(token)).status_code == 400

    def test_get_by_other_user_is_forbidden(self, client, register_user):
        alice, _ = register_user()
        bob, _ = register_user("bob@mail.com", "secret123", "Bob")
        created = _create(client, alice)

        # warm the response cache as the owner first
        assert client.get(f"/api/itineraries/{created['_id']}", headers=auth(alice)).status_code == 200

        resp = client.get(f"/api/itineraries/{created['_id']}", headers=auth(bob))
        assert resp.status_code == 403
        assert resp.json()["message"] == "Access denied"

        anonymous = client.get(f"/api/itineraries/{created['_id']}")
        assert anonymous.status_code == 401

    def test_get_invalid_and_missing_id(self, client, register_user):
        token, _ = register_user()
        bad = client.get("/api/itineraries/not-an-id", headers=auth(token))
        assert bad.status_code == 400
        assert bad.json()["message"] == "Invalid itinerary ID format"

        missing = client.get("/api/itineraries/64b0000000000000000000ff", headers=auth(token))
        assert missing.status_code == 404

    def test_partial_update(self, client, register_user):
        token, _ = register_user()
        created = _create(client, token)

        resp = client.put(f"/api/itineraries/{created['_id']}", json={"title": "Updated"}, headers=auth(token))
        assert resp.status_code == 200
        updated = resp.json()["itinerary"]
        assert updated["title"] == "Updated"
        for field in ("destination", "startDate", "endDate", "activities"):
            assert updated[field] == created[field]

    def test_update_rejects_end_before_start(self, client, register_user):
        token, _ = register_user()
        created = _create(client, token)
        resp = client.put(
            f"/api/itineraries/{created['_id']}", json={"endDate": "2024-05-01"}, headers=auth(token)
        )
        assert resp.status_code == 400

    def test_update_is_visible_through_response_cache(self, client, register_user):
        token, _ = register_user()
        created = _create(client, token)
        path = f"/api/itineraries/{created['_id']}"

        client.get(path, headers=auth(token))
        client.put(path, json={"title": "Updated"}, headers=auth(token))
        assert client.get(path, headers=auth(token)).json()["itinerary"]["title"] == "Updated"

    def test_delete_then_get_is_404_despite_cached_copy(self, client, register_user):
        token, _ = register_user()
        created = _create(client, token)
        path = f"/api/itineraries/{created['_id']}"

        assert client.get(path, headers=auth(token)).status_code == 200
        resp = client.delete(path, headers=auth(token))
        assert resp.status_code == 200
        assert resp.json()["message"] == "Itinerary deleted successfully"

        assert client.get(path, headers=auth(token)).status_code == 404

    def test_uppercase_id_shares_cache_entry_with_canonical_id(self, client, register_user):
        token, _ = register_user()
        created = _create(client, token)
        upper = f"/api/itineraries/{created['_id'].upper()}"

        assert client.get(upper, headers=auth(token)).status_code == 200
        assert client.delete(f"/api/itineraries/{created['_id']}", headers=auth(token)).status_code == 200
        assert client.get(upper, headers=auth(token)).status_code == 404

    def test_update_through_uppercase_id_evicts_cached_copy(self, client, register_user):
        token, _ = register_user()
        created = _create(client, token)
        path = f"/api/itineraries/{created['_id']}"

        client.get(path, headers=auth(token))
        upper = f"/api/itineraries/{created['_id'].upper()}"
        client.put(upper, json={"title": "Updated"}, headers=auth(token))
        assert client.get(path, headers=auth(token)).json()["itinerary"]["title"] == "Updated"

    def test_nocache_reads_past_the_response_cache(self, client, ctx, register_user):
        token, _ = register_user()
        created = _create(client, token)
        path = f"/api/itineraries/{created['_id']}"

        assert client.get(path, headers=auth(token)).json()["itinerary"]["title"] == "Paris Trip"
        ctx.db["itineraries"].update_one({"_id": ObjectId(created["_id"])}, {"$set": {"title": "Changed"}})
        ctx.cache.invalidate(f"itinerary:{created['_id']}")

        fresh = client.get(f"{path}?nocache=true", headers=auth(token))
        assert fresh.status_code == 200
        assert fresh.json()["itinerary"]["title"] == "Changed"
        # the bypassed read does not refresh the cached response
        assert client.get(path, headers=auth(token)).json()["itinerary"]["title"] == "Paris Trip"

    def test_delete_by_other_user_is_forbidden(self, client, register_user):
        alice, _ = register_user()
        bob, _ = register_user("bob@mail.com", "secret123", "Bob")
        created = _create(client, alice)
        assert client.delete(f"/api/itineraries/{created['_id']}", headers=auth(bob)).status_code == 403


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------

class TestSharing:
    def test_share_is_idempotent_and_public(self, client, register_user):
        token, _ = register_user()
        created = _create(client, token)
        path = f"/api/itineraries/{created['_id']}/share"

        first = client.post(path, headers=auth(token)).json()
        second = client.post(path, headers=auth(token)).json()
        assert first["shareableId"] == second["shareableId"]
        assert first["shareableUrl"] == f"http://testserver/api/itineraries/share/{first['shareableId']}"

        shared = client.get(f"/api/itineraries/share/{first['shareableId']}")
        assert shared.status_code == 200
        itinerary = shared.json()["itinerary"]
        assert itinerary["title"] == "Paris Trip"
        assert "userId" not in itinerary

    def test_unknown_share_token(self, client):
        resp = client.get("/api/itineraries/share/does-not-exist")
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Misc
# ---------------------------------------------------------------------------

def test_root_banner(client):
    assert client.get("/").json() == {
        "status": "ok",
        "message": "TMTC itinerary API is running",
        "env": "test",
    }


def test_health(client):
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["timestamp"].endswith("Z")
    assert body["database"] in ("connected", "disconnected")
    assert body["redis"] == "memory"


@pytest.mark.parametrize("environment, exposes_error", [("development", True), ("production", False)])
def test_unexpected_errors_become_500(environment, exposes_error):
    ctx = make_context(make_settings(environment=environment))
    client = TestClient(create_app(ctx), raise_server_exceptions=False)
    token = client.post(
        "/api/auth/register",
        json={"email": "alice@mail.com", "password": "secret123", "name": "Alice"},
    ).json()["token"]

    def _boom(*args, **kwargs):
        raise RuntimeError("store exploded")

    ctx.itinerary_service.list = _boom
    resp = client.get("/api/itineraries", headers=auth(token))

    assert resp.status_code == 500
    assert resp.json()["message"] == "Server error"
    assert ("error" in resp.json()) is exposes_error
    ctx.dispatcher.shutdown()
