"""
resources/models.py -- Domain dataclasses for user-owned records.

Pure data containers with zero logic. Validation and ownership policy live in
resources/service.py; persistence lives in resources/store.py.

A Resource is the generic CRUD entity behind the recipe box and the article
list. Domain-specific fields (servings, ingredients, source_url, ...) travel in
payload untouched.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

# Sort orders accepted by ResourceStore.list_resources(). "newest" is the default.
ORDERS = ("newest", "oldest", "title", "updated")


@dataclass
class Resource:
    """A stored record.

    id is None before the record is written to the database. Once assigned it
    never changes and is never reused, even after the record is deleted.
    created_at / updated_at are ISO 8601 UTC strings set by the store.
    """

    title: str
    body: str
    id: Optional[int] = None
    owner_id: Optional[int] = None
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""
