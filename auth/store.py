"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper (same as resources/store.py).
UserStore is the repository; _row_to_user / _row_to_session are the mappers.
Route, guard and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Emails are lowercased on write and on lookup, so the UNIQUE constraint on
  users.email is effectively case-insensitive.

Layer rule: no imports from api/, web/, resources/, or cache/.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from auth.models import Session, User
from core.config import get_settings
from core.db import make_engine, now_iso, transaction

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(40), nullable=False),
)

_sessions = Table(
    "sessions",
    _metadata,
    Column("session_id", String(64), primary_key=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("issued_at", String(40), nullable=False),
    Column("expires_at", String(40), nullable=False, index=True),
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and Session entities.

    Usage:
        store = UserStore()
        store.create_user(User(email="admin@example.com", hashed_password=hash_password("secret")))
        user = store.get_by_email("admin@example.com")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        with transaction(self.engine) as conn:
            count = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (count or 0) > 0

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        with transaction(self.engine) as conn:
            result = conn.execute(
                _users.insert().values(
                    email=normalize_email(user.email),
                    hashed_password=user.hashed_password,
                    created_at=now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive). Returns None if not found."""
        with transaction(self.engine) as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        with transaction(self.engine) as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        with transaction(self.engine) as conn:
            rows = conn.execute(_users.select().order_by(_users.c.email)).fetchall()
        return [_row_to_user(r) for r in rows]

    def set_password(self, user_id: int, hashed_password: str) -> bool:
        """Rotate a user's secret. Existing sessions are revoked in the same transaction.

        Returns True if the user exists.
        """
        with transaction(self.engine) as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(hashed_password=hashed_password)
            )
            conn.execute(_sessions.delete().where(_sessions.c.user_id == user_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Session queries
    # ------------------------------------------------------------------

    def create_session(self, session: Session) -> None:
        with transaction(self.engine) as conn:
            conn.execute(
                _sessions.insert().values(
                    session_id=session.session_id,
                    user_id=session.user_id,
                    issued_at=session.issued_at,
                    expires_at=session.expires_at,
                )
            )

    def get_session(self, session_id: str) -> Session | None:
        with transaction(self.engine) as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.session_id == session_id)).fetchone()
        return _row_to_session(row) if row is not None else None

    def delete_session(self, session_id: str) -> bool:
        """Delete one session (logout). Returns True if a record was removed."""
        with transaction(self.engine) as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.session_id == session_id))
        return result.rowcount > 0

    def purge_expired_sessions(self, now: str | None = None) -> int:
        """Delete every session whose expires_at is in the past. Returns rows removed."""
        cutoff = now or now_iso()
        with transaction(self.engine) as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at < cutoff))
        return result.rowcount

    def ping(self) -> bool:
        """Cheap connectivity check for the health endpoint."""
        with transaction(self.engine) as conn:
            conn.execute(select(1))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
    )


def _row_to_session(row) -> Session:
    return Session(
        session_id=row.session_id,
        user_id=row.user_id,
        issued_at=row.issued_at,
        expires_at=row.expires_at,
    )
