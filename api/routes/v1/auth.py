"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login   -- credentials login; returns token + sets cookie
  POST /api/v1/auth/logout  -- revokes the session; clears cookie
  GET  /api/v1/auth/me      -- current user info (requires auth)

Security:
  POST /login is rate-limited (LOGIN_RATE_LIMIT, default 10/minute per IP).
  verify_credentials() provides timing equalization -- use it, never inline
  get_by_email() + verify_password().
  Cache-Control: no-store on login responses so tokens never sit in a cache.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import ErrorResponse, LoginRequest, LoginResponse, MeResponse
from auth.dependencies import get_current_user
from auth.guard import extract_token
from auth.models import User
from auth.sessions import issue_session, revoke_session
from auth.store import UserStore
from auth.tokens import clear_auth_cookie, set_auth_cookie, verify_credentials
from core.config import get_settings
from core.errors import AuthenticationFailed

logger = logging.getLogger("recipehub.auth")

# Auth policy:
# - POST /api/v1/auth/login:   public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/logout:  public -- revoking a session needs only the token itself
# - GET  /api/v1/auth/me:      requires auth (access guard rule + get_current_user)
router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(get_settings().login_rate_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Verify credentials, issue a session, and set the session cookie.

    Returns the same generic error for an unknown email and a wrong password
    ("bad_credentials") to avoid leaking which emails are registered.
    """
    user_store: UserStore = request.app.state.user_store
    try:
        user = verify_credentials(user_store, body.identity, body.secret)
    except AuthenticationFailed as exc:
        logger.info("Login failed for %r", body.identity.strip().lower())
        resp = JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=exc.to_dict()).model_dump())
        resp.headers["Cache-Control"] = "no-store"
        return resp

    issued = issue_session(user_store, user)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=issued.token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_at=issued.expires_at,
            expires_in=issued.lifetime_seconds,
            email=user.email,
        ).model_dump(),
    )
    set_auth_cookie(resp, issued.token, issued.lifetime_seconds)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout")
def logout(request: Request) -> JSONResponse:
    """Revoke the caller's session (if any) and clear the cookie. Always 200."""
    token = extract_token(request)
    if token:
        revoke_session(request.app.state.user_store, token)
    resp = JSONResponse(content={"message": "Logged out."})
    clear_auth_cookie(resp)
    return resp


@router.get("/auth/me", response_model=MeResponse)
async def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    """Return identity information for the currently authenticated user."""
    return MeResponse(user_id=current_user.id, email=current_user.email)
