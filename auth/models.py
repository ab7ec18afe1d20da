"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in resources/models.py -- dataclasses own domain shape; stores and routes do
the work.

Layer rule: no imports from api/, web/, resources/, or cache/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """Represents an identity that can sign in to RecipeHub.

    email is the identity. The store lowercases it on write and lookup so
    "Admin@Example.com" and "admin@example.com" are the same account.

    hashed_password is a bcrypt hash. The plaintext is never stored or logged;
    set-password in main.py is the only mutation after creation.
    """

    email: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None


@dataclass
class Session:
    """Server-side record of one successful sign-in.

    session_id is the JWT "sid" claim. Deleting the row (logout) invalidates
    the token even though its signature and exp are still valid. Records are
    never updated -- a new sign-in issues a new session.
    """

    session_id: str
    user_id: int
    issued_at: str
    expires_at: str


@dataclass(frozen=True)
class IssuedSession:
    """What the Session Issuer hands back to the login route."""

    token: str
    session_id: str
    user_id: int
    issued_at: str
    expires_at: str
    lifetime_seconds: int
