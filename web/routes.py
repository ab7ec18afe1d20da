"""
web/routes.py -- Jinja2 template routes for the RecipeHub web UI.

These routes serve server-rendered HTML. They share app.state with the API
routes (same user store, resource service, news cache) but return HTML
instead of JSON.

Protection is not decided here. The access guard middleware (auth/guard.py)
redirects anonymous visitors of /dashboard* and /news* to
/login?error=login_required&next=<path> before these handlers run; by the time
dashboard() executes, request.state.user is set.

Routes:
  GET  /login      -- sign-in form
  POST /login      -- handle credentials, redirect to ?next= or /dashboard
  POST /logout     -- revoke session, clear cookie, redirect /login
  GET  /dashboard  -- resource list (protected, redirect mode)
  GET  /news       -- headlines page (protected, redirect mode)
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth.dependencies import try_get_current_user
from auth.guard import extract_token
from auth.sessions import issue_session, revoke_session
from auth.store import UserStore
from auth.tokens import clear_auth_cookie, set_auth_cookie, verify_credentials
from core.config import get_settings
from core.errors import AuthenticationFailed, UpstreamUnavailable, ValidationFailed
from core.pipeline import get_headlines, normalize_query
from resources.service import ResourceService

logger = logging.getLogger("recipehub.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

_DEFAULT_LANDING = "/dashboard"
_DASHBOARD_PAGE_SIZE = 50

# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------

# Whitelist mapping for ?error= query params on /login.
# The raw query param is NEVER passed to templates -- only the message from
# this dict is. Prevents reflected XSS via crafted error query strings.
_ERROR_MESSAGES: dict[str, str] = {
    "bad_credentials": "Invalid email or password.",
    "login_required": "Please sign in to continue.",
    "session_expired": "Your session has expired. Please sign in again.",
    "session_invalid": "Your session is no longer valid. Please sign in again.",
}


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths.

    Prevents open redirect attacks where an attacker crafts a URL like:
      /login?next=https://attacker.com  or  /login?next=//attacker.com

    Both would redirect off-site after login. We only allow paths that:
    - Start with "/" (relative, server-local)
    - Do NOT start with "//" or "/\\" (protocol-relative, redirects off-site)
    """
    if next_url and next_url.startswith("/") and not next_url.startswith(("//", "/\\")):
        return next_url
    return _DEFAULT_LANDING


# ---------------------------------------------------------------------------
# Sign-in / sign-out
# ---------------------------------------------------------------------------


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the sign-in form."""
    # Redirect already-authenticated users to where they were going
    if try_get_current_user(request) is not None:
        return RedirectResponse(_safe_next(request.query_params.get("next")), status_code=302)

    error_msg = _ERROR_MESSAGES.get(request.query_params.get("error", ""), None)
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "error_msg": error_msg,
            "next": _safe_next(request.query_params.get("next")),
        },
    )


@router.post("/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    identity: str = Form(...),
    secret: str = Form(...),
    next: Optional[str] = Form(default=None),
) -> RedirectResponse:
    """Handle sign-in form submission.

    The target comes from the hidden form field, falling back to ?next= on the
    action URL. Failures go back to the form with the next target preserved.
    """
    next_url = _safe_next(next or request.query_params.get("next"))
    user_store: UserStore = request.app.state.user_store
    try:
        user = verify_credentials(user_store, identity, secret)
    except AuthenticationFailed:
        logger.info("Web login failed for %r", identity.strip().lower())
        query = urlencode({"error": "bad_credentials", "next": next_url}, safe="/")
        return RedirectResponse(f"/login?{query}", status_code=302)

    issued = issue_session(user_store, user)
    resp = RedirectResponse(next_url, status_code=302)
    set_auth_cookie(resp, issued.token, issued.lifetime_seconds)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout")
def logout(request: Request) -> RedirectResponse:
    """Revoke the session behind the cookie and redirect to the sign-in page."""
    token = extract_token(request)
    if token:
        revoke_session(request.app.state.user_store, token)
    resp = RedirectResponse("/login", status_code=302)
    clear_auth_cookie(resp)
    return resp


# ---------------------------------------------------------------------------
# Protected pages
# ---------------------------------------------------------------------------


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, q: Optional[str] = None) -> HTMLResponse:
    """Render the caller's resources, newest first."""
    user = try_get_current_user(request)
    service: ResourceService = request.app.state.resources
    resources = service.list_resources(
        actor_id=user.id if user else None,
        search=q or None,
        limit=_DASHBOARD_PAGE_SIZE,
    )
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"user": user, "resources": resources, "q": q or ""},
    )


@router.get("/news", response_class=HTMLResponse)
def news_page(request: Request, q: Optional[str] = None) -> HTMLResponse:
    """Render headlines for q. Upstream failures render inline, never as a 5xx page."""
    user = try_get_current_user(request)
    articles = []
    error_msg = None
    query = q or ""
    try:
        query = normalize_query(q)
        articles = get_headlines(q, get_settings(), request.app.state.news_cache)
    except UpstreamUnavailable:
        error_msg = "News is temporarily unavailable. Please try again later."
    except ValidationFailed as exc:
        error_msg = exc.message
    return templates.TemplateResponse(
        request,
        "news.html",
        {"user": user, "query": query, "articles": articles, "error_msg": error_msg},
    )
