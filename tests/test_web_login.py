"""
tests/test_web_login.py -- Integration tests for the web sign-in flow.

Uses web_client (follow_redirects=False) so every redirect Location is asserted
directly.

Coverage:
  - Form renders; whitelisted ?error= codes map to messages, others are ignored
  - Successful sign-in sets the cookie and returns to next (or /dashboard)
  - next= is never allowed to leave the site
  - Failed sign-in returns to the form with bad_credentials and next preserved
  - Logout revokes the session server-side and clears the cookie
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from auth.tokens import COOKIE_NAME

_EMAIL = "webcook@example.com"
_PASSWORD = "testpass123"


class TestLoginForm:
    def test_form_renders(self, web_client: tuple[TestClient, str]) -> None:
        client, _token = web_client
        resp = client.get("/login")
        assert resp.status_code == 200
        assert 'name="identity"' in resp.text
        assert 'name="secret"' in resp.text

    def test_known_error_code_shows_message(self, web_client: tuple[TestClient, str]) -> None:
        client, _token = web_client
        resp = client.get("/login", params={"error": "session_expired"})
        assert "Your session has expired" in resp.text

    def test_unknown_error_code_is_not_reflected(self, web_client: tuple[TestClient, str]) -> None:
        client, _token = web_client
        resp = client.get("/login", params={"error": "<script>alert(1)</script>"})
        assert resp.status_code == 200
        assert "<script>alert(1)</script>" not in resp.text

    def test_signed_in_user_is_sent_on(self, web_client: tuple[TestClient, str]) -> None:
        client, token = web_client
        client.cookies.set(COOKIE_NAME, token)
        resp = client.get("/login", params={"next": "/news"})
        assert resp.status_code == 302
        assert resp.headers["location"] == "/news"


class TestLoginSubmit:
    def test_success_defaults_to_dashboard(self, web_client: tuple[TestClient, str]) -> None:
        client, _token = web_client
        resp = client.post("/login", data={"identity": _EMAIL, "secret": _PASSWORD})
        assert resp.status_code == 302
        assert resp.headers["location"] == "/dashboard"
        assert COOKIE_NAME in resp.cookies
        assert resp.headers["cache-control"] == "no-store"

    def test_success_returns_to_next(self, web_client: tuple[TestClient, str]) -> None:
        client, _token = web_client
        resp = client.post("/login", data={"identity": _EMAIL, "secret": _PASSWORD, "next": "/news"})
        assert resp.headers["location"] == "/news"

    def test_next_from_query_string(self, web_client: tuple[TestClient, str]) -> None:
        client, _token = web_client
        resp = client.post("/login?next=/dashboard/recent", data={"identity": _EMAIL, "secret": _PASSWORD})
        assert resp.headers["location"] == "/dashboard/recent"

    @pytest.mark.parametrize("target", ["https://evil.example.com", "//evil.example.com", "/\\evil.example.com", "news"])
    def test_offsite_next_is_ignored(self, web_client: tuple[TestClient, str], target: str) -> None:
        client, _token = web_client
        resp = client.post("/login", data={"identity": _EMAIL, "secret": _PASSWORD, "next": target})
        assert resp.headers["location"] == "/dashboard"

    def test_cookie_opens_protected_page(self, web_client: tuple[TestClient, str]) -> None:
        client, _token = web_client
        client.post("/login", data={"identity": _EMAIL, "secret": _PASSWORD})
        assert client.get("/dashboard").status_code == 200

    def test_bad_credentials_back_to_form(self, web_client: tuple[TestClient, str]) -> None:
        client, _token = web_client
        resp = client.post("/login", data={"identity": _EMAIL, "secret": "wrong", "next": "/news"})
        assert resp.status_code == 302
        location = resp.headers["location"]
        assert urlparse(location).path == "/login"
        assert parse_qs(urlparse(location).query) == {"error": ["bad_credentials"], "next": ["/news"]}
        assert COOKIE_NAME not in resp.cookies


class TestLogout:
    def test_logout_revokes_and_clears(self, web_client: tuple[TestClient, str]) -> None:
        client, _token = web_client
        token = client.post("/login", data={"identity": _EMAIL, "secret": _PASSWORD}).cookies[COOKIE_NAME]
        resp = client.post("/logout")
        assert resp.status_code == 302
        assert resp.headers["location"] == "/login"
        assert "Max-Age=0" in resp.headers.get("set-cookie", "")

        # The old token is dead server-side even if a client kept a copy.
        client.cookies.clear()
        client.cookies.set(COOKIE_NAME, token)
        again = client.get("/dashboard")
        assert again.status_code == 302
        assert parse_qs(urlparse(again.headers["location"]).query)["error"] == ["session_invalid"]
