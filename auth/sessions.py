"""
auth/sessions.py -- Session Issuer: issue, resolve and revoke sign-in sessions.

A session is two halves that must agree:
  - a signed JWT held by the client (cookie, Bearer header or ?token=)
  - a server-side record keyed by the JWT's "sid" claim

The signature proves the token came from this server; the record makes logout
and secret rotation effective before the JWT's own exp. resolve_session()
requires both.

Failure codes (AuthorizationDenied.code):
  session_expired -- signature valid but exp passed, or the record expired.
  session_invalid -- bad signature, malformed claims, unknown/revoked sid,
                     sid owned by another user, or the user no longer exists.

Layer rule: no imports from api/, web/, resources/, or cache/.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError

from auth.models import IssuedSession, Session, User
from auth.store import UserStore
from auth.tokens import create_access_token, decode_access_token
from core.config import get_settings
from core.errors import AuthorizationDenied

logger = logging.getLogger("recipehub.auth")


def _expired() -> AuthorizationDenied:
    return AuthorizationDenied("Session expired. Please sign in again.", code="session_expired")


def _invalid() -> AuthorizationDenied:
    return AuthorizationDenied("Session is not valid. Please sign in again.", code="session_invalid")


def issue_session(
    store: UserStore,
    user: User,
    lifetime_seconds: int = 0,
    now: datetime | None = None,
) -> IssuedSession:
    """Create a session for a verified user and return its signed token.

    Args:
        store:            UserStore holding session records.
        user:             User returned by verify_credentials().
        lifetime_seconds: Session duration. 0 (default) uses
                          Settings.session_lifetime_seconds (24 hours).
        now:              Issue time; defaults to the current UTC time.

    The User record is not modified.
    """
    duration = lifetime_seconds if lifetime_seconds > 0 else get_settings().session_lifetime_seconds
    issued_at = now or datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(seconds=duration)
    # 32 random bytes -> 43 URL-safe chars, 256 bits of entropy
    session_id = secrets.token_urlsafe(32)

    record = Session(
        session_id=session_id,
        user_id=user.id,
        issued_at=issued_at.isoformat(timespec="microseconds"),
        expires_at=expires_at.isoformat(timespec="microseconds"),
    )
    store.create_session(record)
    token = create_access_token(user.id, user.email, session_id, issued_at, expires_at)
    logger.info("Session issued for user_id=%s (expires %s)", user.id, record.expires_at)
    return IssuedSession(
        token=token,
        session_id=session_id,
        user_id=user.id,
        issued_at=record.issued_at,
        expires_at=record.expires_at,
        lifetime_seconds=duration,
    )


def resolve_session(store: UserStore, token: str, now: datetime | None = None) -> User:
    """Return the User a token belongs to, or raise AuthorizationDenied."""
    if not token:
        raise AuthorizationDenied()
    try:
        payload = decode_access_token(token)
    except ExpiredSignatureError as exc:
        raise _expired() from exc
    except JWTError as exc:
        raise _invalid() from exc

    session_id = payload.get("sid")
    user_id = payload.get("user_id")
    if not isinstance(session_id, str) or not isinstance(user_id, int):
        raise _invalid()

    record = store.get_session(session_id)
    if record is None or record.user_id != user_id:
        raise _invalid()

    current = (now or datetime.now(timezone.utc)).isoformat(timespec="microseconds")
    if record.expires_at <= current:
        store.delete_session(session_id)
        raise _expired()

    user = store.get_by_id(user_id)
    if user is None:
        raise _invalid()
    return user


def revoke_session(store: UserStore, token: str) -> bool:
    """Delete the session record behind a token (logout).

    Expiry is not checked so a client holding a stale token can still log out
    cleanly. Returns False for tokens that do not verify or were already revoked.
    """
    try:
        payload = decode_access_token(token, verify_exp=False)
    except JWTError:
        return False
    session_id = payload.get("sid")
    if not isinstance(session_id, str):
        return False
    revoked = store.delete_session(session_id)
    if revoked:
        logger.info("Session revoked for user_id=%s", payload.get("user_id"))
    return revoked
