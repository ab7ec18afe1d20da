"""
auth/tokens.py -- Password hashing, credential verification, JWT and cookie utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       user_id, email (sub), session id (sid), issued-at and expiry.
       decode_access_token() raises jose's errors untouched -- auth/sessions.py
       decides which of them means "expired" and which means "invalid".

  Passwords: bcrypt used directly. bcrypt.checkpw compares in constant time and
       its cost factor makes brute-force expensive. The _DUMMY_HASH constant
       enables timing equalization in verify_credentials() so response time
       does not reveal whether an email is registered.

  SECRET_KEY: sourced from core.config.get_settings(). The Settings class
       validates the key at startup: dev mode (DEBUG=true) auto-generates a
       random key with a warning; production mode refuses to start without one.

Layer rule: no imports from api/, web/, resources/, or cache/. Import from
core/ is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

import bcrypt
from jose import jwt

from core.config import get_settings
from core.errors import AuthenticationFailed

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("recipehub.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

COOKIE_NAME = "access_token"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt truncates input at 72 bytes. The API layer caps secrets at 128
    characters; anything past the 72nd byte does not contribute to the hash.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("recipehub_timing_dummy")


# ---------------------------------------------------------------------------
# Credential Verifier (constant-time)
# ---------------------------------------------------------------------------


def verify_credentials(store: UserStore, identity: str, secret: str) -> User:
    """Check an email/password pair and return the matching User.

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Both failures raise the same AuthenticationFailed so neither the status
    code, the body nor the timing tells an attacker which emails exist.
    Read-only: no side effects on the store.
    """
    user = store.get_by_email(identity)
    if user is None:
        verify_password(secret, _DUMMY_HASH)
        raise AuthenticationFailed()
    if not verify_password(secret, user.hashed_password):
        raise AuthenticationFailed()
    return user


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: int, email: str, session_id: str, issued_at: datetime, expires_at: datetime) -> str:
    """Encode a signed JWT binding a user to one server-side session record."""
    payload = {
        "sub": email,
        "user_id": user_id,
        "sid": session_id,
        "iat": issued_at,
        "exp": expires_at,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str, verify_exp: bool = True) -> dict:
    """Decode and verify a JWT signature (and expiry unless verify_exp=False).

    Raises jose.ExpiredSignatureError for an expired token and jose.JWTError
    for anything else wrong with it.
    """
    return jwt.decode(
        token,
        _settings.secret_key,
        algorithms=[_ALGORITHM],
        options={"verify_exp": verify_exp},
    )


# ---------------------------------------------------------------------------
# Cookie helper
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, max_age: int = 0) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": cookie not sent on cross-site POST -- CSRF mitigation.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the session expiry so both expire together.
    """
    duration = max_age if max_age > 0 else _settings.session_lifetime_seconds
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=duration,
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(COOKIE_NAME)
