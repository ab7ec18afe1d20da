"""
auth/guard.py -- Access Guard: path-based allow / redirect / deny decisions.

Every request passes through AccessGuard.evaluate() (wired as HTTP middleware
in api/main.py) before any route handler runs. The decision is final for the
request: downstream code never re-evaluates it.

State machine per request:
  unchecked --(no rule matches)---------------------> allowed
  unchecked --(rule matches, valid session)---------> allowed (user attached)
  unchecked --(rule matches, no/bad session, redirect mode)--> redirected
  unchecked --(rule matches, no/bad session, deny mode)------> denied

Rules are an ordered list of ProtectedPath(pattern, mode). Patterns are
fnmatch globs against the URL path; the first match wins.

Redirect targets carry an error indicator and the original path:
  /login?error=login_required&next=/dashboard
  /login?error=session_expired&next=/dashboard
next is always the request path (never a full URL), so it cannot be used
for an open redirect.

Layer rule: may import from fastapi/starlette (it builds responses) and
core/. No imports from api/, web/, resources/, or cache/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from fnmatch import fnmatchcase
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from auth.models import User
from auth.sessions import resolve_session
from auth.store import UserStore
from auth.tokens import COOKIE_NAME, clear_auth_cookie
from core.config import EnforcementMode, ProtectedPath, Settings
from core.errors import AuthorizationDenied

logger = logging.getLogger("recipehub.guard")

QUERY_TOKEN_PARAM = "token"


class GuardState(str, Enum):
    unchecked = "unchecked"
    allowed = "allowed"
    redirected = "redirected"
    denied = "denied"


@dataclass
class GuardDecision:
    """Outcome of one evaluation. response is set for redirected / denied."""

    state: GuardState
    rule: ProtectedPath | None = None
    user: User | None = None
    response: Response | None = None


def extract_token(request: Request, allow_query_token: bool = False) -> str | None:
    """Pull the session token from the request.

    Priority:
      1. access_token cookie -- set by the web and API login flows.
      2. Authorization: Bearer header -- API clients.
      3. ?token= query parameter -- only when the token gate is enabled.
    """
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
    if not token and allow_query_token:
        token = request.query_params.get(QUERY_TOKEN_PARAM)
    return token or None


class AccessGuard:
    """Evaluates requests against an ordered list of protected-path rules."""

    def __init__(
        self,
        rules: list[ProtectedPath],
        sign_in_path: str = "/login",
        allow_query_token: bool = False,
    ) -> None:
        self.rules = list(rules)
        self.sign_in_path = sign_in_path
        self.allow_query_token = allow_query_token

    def match(self, path: str) -> ProtectedPath | None:
        for rule in self.rules:
            if fnmatchcase(path, rule.pattern):
                return rule
        return None

    def evaluate(self, request: Request, store: UserStore) -> GuardDecision:
        """Decide what happens to this request. Never raises AuthorizationDenied.

        StoreUnavailable from the session lookup is not caught here -- an
        unreachable store must surface as 503, not as a sign-in redirect.
        """
        path = request.url.path
        rule = self.match(path)
        if rule is None:
            return GuardDecision(GuardState.allowed)

        token = extract_token(request, self.allow_query_token)
        if token is None:
            code = "login_required" if rule.mode == EnforcementMode.redirect else "unauthorized"
            return self._reject(request, rule, AuthorizationDenied(code=code), stale_cookie=False)

        try:
            user = resolve_session(store, token)
        except AuthorizationDenied as exc:
            stale = request.cookies.get(COOKIE_NAME) is not None
            return self._reject(request, rule, exc, stale_cookie=stale)

        return GuardDecision(GuardState.allowed, rule=rule, user=user)

    def _reject(
        self,
        request: Request,
        rule: ProtectedPath,
        failure: AuthorizationDenied,
        stale_cookie: bool,
    ) -> GuardDecision:
        path = request.url.path
        logger.info("Guard %s %s %s (%s)", rule.mode.value, request.method, path, failure.code)

        if rule.mode == EnforcementMode.redirect:
            query = urlencode({"error": failure.code, "next": path}, safe="/")
            response: Response = RedirectResponse(f"{self.sign_in_path}?{query}", status_code=302)
            state = GuardState.redirected
        else:
            response = JSONResponse(status_code=failure.status_code, content={"error": failure.to_dict()})
            response.headers["WWW-Authenticate"] = "Bearer"
            state = GuardState.denied

        if stale_cookie:
            # Leaving a dead cookie in place would make every later request
            # look like an expired session instead of a fresh visitor.
            clear_auth_cookie(response)
        return GuardDecision(state, rule=rule, response=response)


def build_guard(settings: Settings) -> AccessGuard:
    """Construct the guard from process-wide settings (called once at startup)."""
    return AccessGuard(
        settings.protected_paths,
        sign_in_path=settings.sign_in_path,
        allow_query_token=settings.allow_query_token,
    )
