"""
NoteFlow Backend — API Endpoint Tests
=======================================

What:  End-to-end tests through the HTTP layer: routing, identity
       dependencies, response envelopes and status codes.
How:   HTTPX AsyncClient against a fresh app; each request commits into the
       in-memory test database.

What we test:
    ✅ Signup/login/current-user lifecycle and auth error messages
    ✅ Creator-only note management, public listing, access decisions
    ✅ Purchase flow: 201, 403, 400, history and earnings
    ✅ Comments, likes and bookmarks
    ✅ Error envelope for validation failures and unknown routes
"""

from datetime import timedelta
from uuid import UUID

import pytest

from noteflow.models.user import ROLE_CREATOR, ROLE_VIEWER
from noteflow.security import MSG_EXPIRED_TOKEN, MSG_INVALID_TOKEN, MSG_NO_TOKEN, create_access_token


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestAuthEndpoints:
    @pytest.mark.asyncio
    async def test_signup_returns_user_and_token(self, test_client):
        response = await test_client.post(
            "/api/auth/signup",
            json={
                "name": "Grace",
                "email": "Grace@Example.com",
                "password": "secret123",
                "confirmPassword": "secret123",
                "userType": "creator",
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User registered successfully"
        assert body["data"]["user"]["email"] == "grace@example.com"
        assert body["data"]["user"]["role"] == "creator"
        assert "password_hash" not in body["data"]["user"]
        assert body["data"]["token"]
        assert "errors" not in body

    @pytest.mark.asyncio
    async def test_duplicate_email(self, test_client):
        payload = {
            "name": "Grace",
            "email": "grace@example.com",
            "password": "secret123",
            "confirmPassword": "secret123",
            "userType": "viewer",
        }
        await test_client.post("/api/auth/signup", json=payload)

        response = await test_client.post("/api/auth/signup", json={**payload, "email": "GRACE@example.com"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "User with this email already exists"}

    @pytest.mark.asyncio
    async def test_signup_validation_errors(self, test_client):
        response = await test_client.post(
            "/api/auth/signup",
            json={
                "name": "G",
                "email": "not-an-email",
                "password": "secret123",
                "confirmPassword": "different",
                "userType": "admin",
            },
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        fields = {e["field"] for e in body["errors"]}
        assert {"name", "email", "userType"} <= fields
        assert all(e["location"] == "body" for e in body["errors"])

    @pytest.mark.asyncio
    async def test_password_mismatch(self, test_client):
        response = await test_client.post(
            "/api/auth/signup",
            json={
                "name": "Grace",
                "email": "grace@example.com",
                "password": "secret123",
                "confirmPassword": "secret124",
                "userType": "viewer",
            },
        )

        assert response.status_code == 400
        assert any("Passwords do not match" in e["message"] for e in response.json()["errors"])

    @pytest.mark.asyncio
    async def test_login_and_current_user(self, test_client, api):
        account = await api.signup(role=ROLE_VIEWER, name="Linus")
        email = account["user"]["email"]

        login = await test_client.post("/api/auth/login", json={"email": email, "password": "secret123"})
        assert login.status_code == 200
        assert login.json()["message"] == "Login successful"
        token = login.json()["data"]["token"]

        me = await test_client.get("/api/auth/current-user", headers=bearer(token))
        assert me.status_code == 200
        assert me.json()["data"]["user"]["name"] == "Linus"

        verify = await test_client.get("/api/auth/verify-token", headers=bearer(token))
        assert verify.json()["message"] == "Token is valid"

        logout = await test_client.post("/api/auth/logout", headers=bearer(token))
        assert logout.json() == {"success": True, "message": "Logout successful"}

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, test_client, api):
        account = await api.signup()

        wrong = await test_client.post(
            "/api/auth/login", json={"email": account["user"]["email"], "password": "nope-nope"}
        )
        unknown = await test_client.post(
            "/api/auth/login", json={"email": "nobody@example.com", "password": "nope-nope"}
        )

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"success": False, "message": "Invalid email or password"}

    @pytest.mark.asyncio
    async def test_token_errors(self, test_client, api):
        missing = await test_client.get("/api/auth/current-user")
        assert missing.status_code == 401
        assert missing.json()["message"] == MSG_NO_TOKEN

        garbage = await test_client.get("/api/auth/current-user", headers=bearer("garbage"))
        assert garbage.status_code == 401
        assert garbage.json()["message"] == MSG_INVALID_TOKEN

        account = await api.signup()

        expired_token = create_access_token(
            UUID(account["user"]["id"]), ROLE_VIEWER, expires_delta=timedelta(seconds=-5)
        )
        expired = await test_client.get("/api/auth/current-user", headers=bearer(expired_token))
        assert expired.status_code == 401
        assert expired.json()["message"] == MSG_EXPIRED_TOKEN

    @pytest.mark.asyncio
    async def test_update_and_delete_profile(self, test_client, api):
        account = await api.signup(name="Before")
        token = account["token"]

        updated = await test_client.put(
            "/api/auth/current-user", json={"name": "After"}, headers=bearer(token)
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["user"]["name"] == "After"

        deleted = await test_client.delete("/api/auth/current-user", headers=bearer(token))
        assert deleted.status_code == 200

        gone = await test_client.get("/api/auth/current-user", headers=bearer(token))
        assert gone.status_code == 401


class TestNoteEndpoints:
    @pytest.mark.asyncio
    async def test_viewer_cannot_create_notes(self, test_client, api):
        viewer = await api.signup(role=ROLE_VIEWER)

        response = await test_client.post(
            "/api/notes",
            json={
                "title": "Sneaky",
                "subject": "History",
                "topics": ["Rome"],
                "content_type": "pdf",
                "content_urls": ["https://cdn.example.com/x.pdf"],
            },
            headers=bearer(viewer["token"]),
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Access denied. Required role: creator"

    @pytest.mark.asyncio
    async def test_price_serializes_as_decimal_string(self, api):
        creator = await api.signup(role=ROLE_CREATOR)

        note = await api.create_note(creator["token"], price="9.99")

        assert note["price"] == "9.99"
        assert note["is_free"] is False
        assert note["is_owner"] is True

    @pytest.mark.asyncio
    async def test_price_with_three_decimals_rejected(self, test_client, api):
        creator = await api.signup(role=ROLE_CREATOR)

        response = await test_client.post(
            "/api/notes",
            json={
                "title": "Precise",
                "subject": "Maths",
                "topics": ["Pi"],
                "content_type": "pdf",
                "content_urls": ["https://cdn.example.com/pi.pdf"],
                "price": "1.999",
            },
            headers=bearer(creator["token"]),
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "price"

    @pytest.mark.asyncio
    async def test_public_listing_and_detail(self, test_client, api):
        creator = await api.signup(role=ROLE_CREATOR, name="Author")
        note = await api.create_note(
            creator["token"],
            price="9.99",
            free_topics=["A"],
            content_urls=["u1", "u2", "u3"],
        )

        listing = await test_client.get("/api/notes")
        assert listing.status_code == 200
        data = listing.json()["data"]
        assert data["is_authenticated"] is False
        assert data["pagination"] == {"total": 1, "limit": 20, "offset": 0, "has_more": False}
        assert "content_urls" not in data["notes"][0]
        assert data["notes"][0]["creator_name"] == "Author"

        detail = await test_client.get(f"/api/notes/{note['id']}")
        content = detail.json()["data"]["note"]["content_access"]
        assert content == {"can_view_full": False, "available_content": ["u1"], "locked_content_count": 2}

    @pytest.mark.asyncio
    async def test_invalid_token_on_public_route_is_anonymous(self, test_client, api):
        creator = await api.signup(role=ROLE_CREATOR)
        await api.create_note(creator["token"])

        response = await test_client.get("/api/notes", headers=bearer("garbage"))

        assert response.status_code == 200
        assert response.json()["data"]["is_authenticated"] is False

    @pytest.mark.asyncio
    async def test_bad_query_parameter(self, test_client):
        response = await test_client.get("/api/notes", params={"sort_by": "popularity"})

        assert response.status_code == 400
        error = response.json()["errors"][0]
        assert error["field"] == "sort_by"
        assert error["location"] == "query"

    @pytest.mark.asyncio
    async def test_update_and_delete_scoped_to_owner(self, test_client, api):
        owner = await api.signup(role=ROLE_CREATOR)
        other = await api.signup(role=ROLE_CREATOR)
        note = await api.create_note(owner["token"], title="Original")

        hijack = await test_client.put(
            f"/api/notes/{note['id']}", json={"title": "Hijacked"}, headers=bearer(other["token"])
        )
        assert hijack.status_code == 404

        empty = await test_client.put(f"/api/notes/{note['id']}", json={}, headers=bearer(owner["token"]))
        assert empty.status_code == 400
        assert empty.json()["message"] == "No fields provided for update"

        renamed = await test_client.put(
            f"/api/notes/{note['id']}", json={"title": "Renamed"}, headers=bearer(owner["token"])
        )
        assert renamed.status_code == 200
        assert renamed.json()["data"]["note"]["title"] == "Renamed"

        deleted = await test_client.delete(f"/api/notes/{note['id']}", headers=bearer(owner["token"]))
        assert deleted.json() == {"success": True, "message": "Note deleted successfully"}

        missing = await test_client.get(f"/api/notes/{note['id']}")
        assert missing.status_code == 404


class TestPaymentEndpoints:
    @pytest.mark.asyncio
    async def test_purchase_flow(self, test_client, api):
        creator = await api.signup(role=ROLE_CREATOR, name="Seller")
        buyer = await api.signup(role=ROLE_VIEWER, name="Buyer")
        note = await api.create_note(creator["token"], price="9.99", content_urls=["u1", "u2"])

        purchase = await test_client.post(
            "/api/payments/purchase", json={"note_id": note["id"]}, headers=bearer(buyer["token"])
        )
        assert purchase.status_code == 201
        body = purchase.json()
        assert body["message"] == "Note purchased successfully"
        assert body["data"]["payment"]["amount"] == "9.99"
        assert body["data"]["note"]["content_access"]["available_content"] == ["u1", "u2"]

        again = await test_client.post(
            "/api/payments/purchase", json={"note_id": note["id"]}, headers=bearer(buyer["token"])
        )
        assert again.status_code == 400
        assert again.json()["message"] == "You have already purchased this note"

        detail = await test_client.get(f"/api/notes/{note['id']}", headers=bearer(buyer["token"]))
        assert detail.json()["data"]["note"]["is_purchased"] is True
        assert detail.json()["data"]["note"]["can_view_full"] is True

        history = await test_client.get("/api/payments/my-purchases", headers=bearer(buyer["token"]))
        assert history.json()["data"]["pagination"]["total"] == 1

        earnings = await test_client.get(
            "/api/payments/creator-earnings", params={"period": "day"}, headers=bearer(creator["token"])
        )
        assert earnings.status_code == 200
        assert earnings.json()["data"]["summary"]["total_earnings"] == "9.99"
        assert earnings.json()["data"]["transactions"][0]["buyer_name"] == "Buyer"

        payment_id = body["data"]["payment"]["id"]
        lookup = await test_client.get(f"/api/payments/{payment_id}", headers=bearer(creator["token"]))
        assert lookup.status_code == 200

    @pytest.mark.asyncio
    async def test_purchase_errors(self, test_client, api):
        creator = await api.signup(role=ROLE_CREATOR)
        buyer = await api.signup(role=ROLE_VIEWER)
        paid = await api.create_note(creator["token"], price="5.00")
        free = await api.create_note(creator["token"], price="0")

        own = await test_client.post(
            "/api/payments/purchase", json={"note_id": paid["id"]}, headers=bearer(creator["token"])
        )
        assert own.status_code == 403
        assert own.json()["message"] == "You cannot purchase your own note"

        free_purchase = await test_client.post(
            "/api/payments/purchase", json={"note_id": free["id"]}, headers=bearer(buyer["token"])
        )
        assert free_purchase.status_code == 400
        assert free_purchase.json()["message"] == "This note is free and does not require purchase"

        anonymous = await test_client.post("/api/payments/purchase", json={"note_id": paid["id"]})
        assert anonymous.status_code == 401

    @pytest.mark.asyncio
    async def test_viewer_cannot_see_earnings(self, test_client, api):
        viewer = await api.signup(role=ROLE_VIEWER)

        response = await test_client.get("/api/payments/creator-earnings", headers=bearer(viewer["token"]))

        assert response.status_code == 403


class TestCommunityEndpoints:
    @pytest.mark.asyncio
    async def test_comment_lifecycle(self, test_client, api):
        creator = await api.signup(role=ROLE_CREATOR)
        viewer = await api.signup(role=ROLE_VIEWER)
        note = await api.create_note(creator["token"])

        for rating in (0, 6, True):
            rejected = await test_client.post(
                "/api/comments",
                json={"note_id": note["id"], "text": "Out of range", "rating": rating},
                headers=bearer(viewer["token"]),
            )
            assert rejected.status_code == 400

        added = await test_client.post(
            "/api/comments",
            json={"note_id": note["id"], "text": "Superb", "rating": 5},
            headers=bearer(viewer["token"]),
        )
        assert added.status_code == 201
        comment_id = added.json()["data"]["comment"]["id"]

        listing = await test_client.get("/api/comments", params={"note_id": note["id"]})
        assert listing.json()["data"]["rating"]["average_rating"] == 5.0

        not_mine = await test_client.delete(f"/api/comments/{comment_id}", headers=bearer(creator["token"]))
        assert not_mine.status_code == 404

        deleted = await test_client.delete(f"/api/comments/{comment_id}", headers=bearer(viewer["token"]))
        assert deleted.status_code == 200

        rating = await test_client.get(f"/api/comments/rating/{note['id']}")
        assert rating.json()["data"]["rating"]["rating_count"] == 0

    @pytest.mark.asyncio
    async def test_like_toggle(self, test_client, api):
        creator = await api.signup(role=ROLE_CREATOR)
        viewer = await api.signup(role=ROLE_VIEWER)
        note = await api.create_note(creator["token"])

        liked = await test_client.post("/api/likes", json={"note_id": note["id"]}, headers=bearer(viewer["token"]))
        assert liked.json()["message"] == "Note liked successfully"
        assert liked.json()["data"]["like_count"] == 1

        unliked = await test_client.post("/api/likes", json={"note_id": note["id"]}, headers=bearer(viewer["token"]))
        assert unliked.json()["message"] == "Note unliked successfully"
        assert unliked.json()["data"]["is_liked"] is False

        count = await test_client.get("/api/likes", params={"note_id": note["id"]})
        assert count.json()["data"]["like_count"] == 0

    @pytest.mark.asyncio
    async def test_bookmarks(self, test_client, api):
        creator = await api.signup(role=ROLE_CREATOR)
        viewer = await api.signup(role=ROLE_VIEWER)
        note = await api.create_note(creator["token"], title="Keep Me")

        added = await test_client.post(
            "/api/bookmarks", json={"note_id": note["id"]}, headers=bearer(viewer["token"])
        )
        assert added.json()["data"]["action"] == "added"

        mine = await test_client.get("/api/bookmarks", headers=bearer(viewer["token"]))
        assert [n["title"] for n in mine.json()["data"]["notes"]] == ["Keep Me"]

        check = await test_client.get(f"/api/bookmarks/check/{note['id']}", headers=bearer(viewer["token"]))
        assert check.json()["data"]["is_bookmarked"] is True

        removed = await test_client.delete(f"/api/bookmarks/{note['id']}", headers=bearer(viewer["token"]))
        assert removed.status_code == 200

        again = await test_client.delete(f"/api/bookmarks/{note['id']}", headers=bearer(viewer["token"]))
        assert again.status_code == 404


class TestErrorEnvelope:
    @pytest.mark.asyncio
    async def test_unknown_route(self, test_client):
        response = await test_client.get("/api/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Route not found"}

    @pytest.mark.asyncio
    async def test_malformed_uuid(self, test_client):
        response = await test_client.get("/api/notes/not-a-uuid")

        assert response.status_code == 400
        assert response.json()["errors"][0]["location"] == "path"

    @pytest.mark.asyncio
    async def test_request_id_header(self, test_client):
        generated = await test_client.get("/api/notes")
        assert generated.headers["X-Request-ID"]

        echoed = await test_client.get("/api/notes", headers={"X-Request-ID": "abc123"})
        assert echoed.headers["X-Request-ID"] == "abc123"
