"""
resources/store.py -- SQLAlchemy-backed persistence layer for Resource records.

Uses SQLAlchemy Core (not ORM) so the dataclass in resources/models.py remains
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. ResourceStore is the repository;
_row_to_resource is the mapper. Route handlers never touch SQL directly.

Guarantees:
  - Identifier assignment is the database's own atomic counter. The table is
    created with sqlite_autoincrement so ids are never reused after a delete.
  - Every method is one transaction (core.db.transaction). A write is either
    fully applied or not at all, and is visible to the next read from any
    connection once the method returns.
  - Concurrent updates to the same id are serialized by the database; the
    last committed write wins.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = ResourceStore()                               # DATABASE_URL
    store = ResourceStore("sqlite:///:memory:")
    resource_id = store.create_resource(Resource(title="Pancakes", body="Mix."))
    store.update_resource(resource_id, title="Better pancakes")
    store.list_resources(order="title")
    store.close()
"""

import json
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from core.config import get_settings
from core.db import make_engine, now_iso, transaction
from resources.models import ORDERS, Resource

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_resources = Table(
    "resources",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(200), nullable=False),
    Column("body", Text, nullable=False),
    Column("owner_id", Integer, index=True),
    Column("payload", Text),  # JSON object serialized as text
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
    sqlite_autoincrement=True,
)

_ORDER_BY = {
    "newest": (_resources.c.id.desc(),),
    "oldest": (_resources.c.id.asc(),),
    "title": (func.lower(_resources.c.title).asc(), _resources.c.id.asc()),
    "updated": (_resources.c.updated_at.desc(), _resources.c.id.desc()),
}

# Columns update_resource() will write. Anything else is a programming error.
_MUTABLE_FIELDS = {"title", "body", "payload", "owner_id"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ResourceStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        metadata.create_all(self.engine)

    def create_resource(self, resource: Resource) -> int:
        """Insert a resource and return its newly assigned id.

        created_at and updated_at are both stamped with the insert time.
        """
        stamp = now_iso()
        with transaction(self.engine) as conn:
            result = conn.execute(
                _resources.insert().values(
                    title=resource.title,
                    body=resource.body,
                    owner_id=resource.owner_id,
                    payload=json.dumps(resource.payload or {}),
                    created_at=stamp,
                    updated_at=stamp,
                )
            )
            return result.inserted_primary_key[0]

    def get_resource(self, resource_id: int) -> Optional[Resource]:
        with transaction(self.engine) as conn:
            row = conn.execute(_resources.select().where(_resources.c.id == resource_id)).fetchone()
        return _row_to_resource(row) if row is not None else None

    def update_resource(self, resource_id: int, **fields) -> bool:
        """Apply a partial update and refresh updated_at.

        Accepted fields: title, body, payload, owner_id.
        Returns True if a row was updated, False if resource_id was not found.
        Raises ValueError for unknown field names.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown resource fields: {sorted(unknown)!r}")
        values = dict(fields)
        if "payload" in values:
            values["payload"] = json.dumps(values["payload"] or {})
        values["updated_at"] = now_iso()
        with transaction(self.engine) as conn:
            result = conn.execute(_resources.update().where(_resources.c.id == resource_id).values(**values))
        return result.rowcount > 0

    def delete_resource(self, resource_id: int) -> bool:
        """Delete a resource. Returns True if deleted, False if not found."""
        with transaction(self.engine) as conn:
            result = conn.execute(_resources.delete().where(_resources.c.id == resource_id))
        return result.rowcount > 0

    def list_resources(
        self,
        order: str = "newest",
        owner_id: Optional[int] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Resource]:
        """Return resources in the requested order.

        owner_id restricts to one owner's records. search is a case-insensitive
        substring match on title. Raises ValueError for an unknown order.
        """
        if order not in ORDERS:
            raise ValueError(f"Unknown order {order!r}; expected one of {ORDERS}")
        query = select(_resources)
        if owner_id is not None:
            query = query.where(_resources.c.owner_id == owner_id)
        if search:
            pattern = f"%{_escape_like(search.lower())}%"
            query = query.where(func.lower(_resources.c.title).like(pattern, escape="\\"))
        query = query.order_by(*_ORDER_BY[order])
        if limit is not None:
            query = query.limit(limit)
        if offset:
            query = query.offset(offset)
        with transaction(self.engine) as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_resource(r) for r in rows]

    def count_resources(self, owner_id: Optional[int] = None) -> int:
        query = select(func.count()).select_from(_resources)
        if owner_id is not None:
            query = query.where(_resources.c.owner_id == owner_id)
        with transaction(self.engine) as conn:
            return conn.execute(query).scalar() or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_resource(row) -> Resource:
    return Resource(
        id=row.id,
        title=row.title,
        body=row.body,
        owner_id=row.owner_id,
        payload=json.loads(row.payload) if row.payload else {},
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
