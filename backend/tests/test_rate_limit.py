"""
NoteFlow Backend — Auth Rate Limit Tests
==========================================

What:  Tests for the sliding-window limiter on login and signup.

What we test:
    ✅ Requests beyond the limit get 429 with Retry-After
    ✅ Routes other than login/signup are never limited
    ✅ The window slides: old hits stop counting
"""

import pytest

from noteflow.config import settings
from noteflow.middleware.rate_limit import RateLimitMiddleware


@pytest.fixture
def tight_limit(monkeypatch):
    monkeypatch.setattr(settings, "auth_rate_limit_requests", 2)
    monkeypatch.setattr(settings, "auth_rate_limit_window", 60)


class TestRateLimitMiddleware:
    @pytest.mark.asyncio
    async def test_login_is_limited(self, test_client, tight_limit):
        credentials = {"email": "nobody@example.com", "password": "whatever1"}
        for _ in range(2):
            response = await test_client.post("/api/auth/login", json=credentials)
            assert response.status_code == 401

        blocked = await test_client.post("/api/auth/login", json=credentials)

        assert blocked.status_code == 429
        assert int(blocked.headers["Retry-After"]) > 0
        body = blocked.json()
        assert body["success"] is False
        assert body["message"].startswith("Too many authentication attempts")

    @pytest.mark.asyncio
    async def test_other_routes_not_limited(self, test_client, tight_limit):
        for _ in range(5):
            response = await test_client.get("/api/notes")
            assert response.status_code == 200

    def test_window_slides(self, tight_limit):
        limiter = RateLimitMiddleware(app=None)

        assert limiter._check("10.0.0.1", 1000.0) is None
        assert limiter._check("10.0.0.1", 1001.0) is None
        assert limiter._check("10.0.0.1", 1002.0) == 59
        # Another client has its own window
        assert limiter._check("10.0.0.2", 1002.0) is None
        # First hit has aged out
        assert limiter._check("10.0.0.1", 1060.5) is None

    def test_cleanup_drops_idle_clients(self, tight_limit):
        limiter = RateLimitMiddleware(app=None)
        limiter._check("10.0.0.1", 1000.0)

        limiter._cleanup_inactive_ips(window_start=2000.0)

        assert "10.0.0.1" not in limiter._requests
