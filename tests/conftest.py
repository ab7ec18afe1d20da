"""
tests/conftest.py -- Shared test fixtures for RecipeHub integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for auth + resources
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient with a live session token for API integration tests
  - web_client: TestClient with follow_redirects=False for web route tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

DEBUG and RATE_LIMIT_ENABLED must be set before any app module import:
get_settings() is cached on first call, and the limiter reads it at import.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any auth/core import so get_settings() auto-generates
# SECRET_KEY in dev mode and the login limit never trips during the suite.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.guard import build_guard
from auth.models import User
from auth.sessions import issue_session
from auth.store import UserStore
from auth.tokens import hash_password
from cache.store import NewsCache
from core.config import get_settings
from resources.service import ResourceService
from resources.store import ResourceStore

TEST_PASSWORD = "testpass123"

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, ResourceStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so parallel test
                   modules don't share state (e.g. 'api', 'web').
    """
    auth_url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    resources_url = f"sqlite:///file:test_resources_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=auth_url), ResourceStore(db_url=resources_url)


def _create_user(user_store: UserStore, email: str, password: str = TEST_PASSWORD) -> User:
    uid = user_store.create_user(User(email=email, hashed_password=hash_password(password)))
    return user_store.get_by_id(uid)


def _patch_lifespan(user_store: UserStore, resource_store: ResourceStore, news_cache: NewsCache):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the production databases.

    The purge_task is a long-sleeping coroutine that keeps asyncio happy
    (a real asyncio.Task is required; MagicMock would fail on .cancel()).
    """

    @asynccontextmanager
    async def test_lifespan(app):
        settings = get_settings()
        app.state.user_store = user_store
        app.state.resources = ResourceService(
            resource_store,
            require_identity=settings.require_identity_for_writes,
            owner_scoped=settings.owner_scoped_resources,
        )
        app.state.news_cache = news_cache
        app.state.guard = build_guard(settings)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use isolated in-memory stores.
    The token belongs to a real session row, so the access guard accepts it.
    """
    user_store, resource_store = _make_test_stores(f"api_{request.module.__name__}")
    news_cache = NewsCache(":memory:")
    user = _create_user(user_store, "cook@example.com")
    issued = issue_session(user_store, user)

    app.router.lifespan_context = _patch_lifespan(user_store, resource_store, news_cache)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, issued.token, user.id

    news_cache.close()
    resource_store.close()
    user_store.close()


@pytest.fixture(scope="module")
def web_client(request) -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, token) for web route integration tests.

    follow_redirects=False is essential for web route tests: we assert on
    redirect *locations* (e.g. 302 to /login), which are invisible once
    the client follows the redirect and returns the final 200 response.
    """
    user_store, resource_store = _make_test_stores(f"web_{request.module.__name__}")
    news_cache = NewsCache(":memory:")
    user = _create_user(user_store, "webcook@example.com")
    issued = issue_session(user_store, user)

    app.router.lifespan_context = _patch_lifespan(user_store, resource_store, news_cache)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, issued.token

    news_cache.close()
    resource_store.close()
    user_store.close()


@pytest.fixture(autouse=True)
def _fresh_cookies(request) -> Generator[None, None, None]:
    """Drop cookies a login test left on a shared module-scoped client."""
    yield
    for name in ("api_client", "web_client"):
        if name in request.fixturenames:
            request.getfixturevalue(name)[0].cookies.clear()