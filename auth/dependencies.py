"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The access guard middleware resolves the session for protected paths and
leaves the User on request.state.user. These helpers read that first and
only fall back to resolving the token themselves when the guard did not run
a check (the path matched no rule).

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises AuthorizationDenied (401) if
unauthenticated.

Layer rule: no imports from web/, resources/, or cache/.
"""

from __future__ import annotations

from fastapi import Request

from auth.guard import extract_token
from auth.models import User
from auth.sessions import resolve_session
from core.errors import AuthorizationDenied


def try_get_current_user(request: Request) -> User | None:
    """Return the authenticated User for this request, or None. Never raises on bad tokens."""
    user = getattr(request.state, "user", None)
    if user is not None:
        return user

    guard = getattr(request.app.state, "guard", None)
    allow_query_token = guard.allow_query_token if guard is not None else False
    token = extract_token(request, allow_query_token)
    if token is None:
        return None
    try:
        user = resolve_session(request.app.state.user_store, token)
    except AuthorizationDenied:
        return None
    request.state.user = user
    return user


def get_current_user(request: Request) -> User:
    """Require authentication. Raises AuthorizationDenied (401) if not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise AuthorizationDenied()
    return user
