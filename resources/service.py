"""
resources/service.py -- CRUD Gateway between request handlers and ResourceStore.

Route handlers hand this service plain dicts (already parsed by the Pydantic
request models) plus the acting user's id. The service:

  1. Re-validates the fields it is about to persist. The API layer validates
     first, but the service is also called from the web layer and the CLI, and
     must never write a record with an empty title.
  2. Applies the identity policy: with require_identity, create / update /
     delete without an acting user raise AuthorizationDenied even if the access
     guard let the request through.
  3. Applies the ownership policy: with owner_scoped, listing shows only the
     actor's records, other owners' records read as NotFound, and mutating
     them raises AuthorizationDenied (403).
  4. Maps absent records to NotFound.

Layer rule: imports resources/ and core/ only. The actor is a plain user id so
this package does not depend on auth/.
"""

import logging
from typing import Any, Optional

from core.errors import AuthorizationDenied, NotFound, ValidationFailed
from resources.models import ORDERS, Resource
from resources.store import ResourceStore

logger = logging.getLogger("recipehub.resources")

TITLE_MAX_LENGTH = 200
BODY_MAX_LENGTH = 20_000
MAX_PAGE_SIZE = 100


# ---------------------------------------------------------------------------
# Field validation
# ---------------------------------------------------------------------------


def _clean_title(value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationFailed("title must be a string.", field="title")
    title = value.strip()
    if not title:
        raise ValidationFailed("title must not be empty.", field="title")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationFailed(f"title must be at most {TITLE_MAX_LENGTH} characters.", field="title")
    return title


def _clean_body(value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationFailed("body must be a string.", field="body")
    if len(value) > BODY_MAX_LENGTH:
        raise ValidationFailed(f"body must be at most {BODY_MAX_LENGTH} characters.", field="body")
    return value


def _clean_payload(value: Any) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationFailed("payload must be an object.", field="payload")
    return value


_CLEANERS = {"title": _clean_title, "body": _clean_body, "payload": _clean_payload}


class ResourceService:
    """Validates, authorizes and forwards CRUD operations to a ResourceStore."""

    def __init__(self, store: ResourceStore, require_identity: bool = True, owner_scoped: bool = False) -> None:
        self.store = store
        self.require_identity = require_identity
        self.owner_scoped = owner_scoped

    # ------------------------------------------------------------------
    # Policy helpers
    # ------------------------------------------------------------------

    def _require_actor(self, actor_id: Optional[int]) -> None:
        if self.require_identity and actor_id is None:
            raise AuthorizationDenied()

    def _owns(self, resource: Resource, actor_id: Optional[int]) -> bool:
        """Under owner scoping only the recorded owner may touch a record; unowned records belong to nobody.

        Matches the listing filter, which returns nothing for an anonymous actor
        and only owner_id == actor_id otherwise.
        """
        if not self.owner_scoped:
            return True
        return actor_id is not None and resource.owner_id == actor_id

    def _load(self, resource_id: int, actor_id: Optional[int], hide_foreign: bool = True) -> Resource:
        resource = self.store.get_resource(resource_id)
        if resource is None:
            raise NotFound(f"Resource {resource_id} not found.")
        # Hide other owners' records entirely rather than confirm they exist.
        if hide_foreign and not self._owns(resource, actor_id):
            raise NotFound(f"Resource {resource_id} not found.")
        return resource

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def list_resources(
        self,
        actor_id: Optional[int] = None,
        order: str = "newest",
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Resource]:
        """Return resources newest-first by default. Shared collection unless owner_scoped."""
        if order not in ORDERS:
            raise ValidationFailed(f"order must be one of: {', '.join(ORDERS)}", field="order")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationFailed(f"limit must be between 1 and {MAX_PAGE_SIZE}.", field="limit")
        if offset < 0:
            raise ValidationFailed("offset must not be negative.", field="offset")
        owner_id = None
        if self.owner_scoped:
            if actor_id is None:
                return []
            owner_id = actor_id
        return self.store.list_resources(
            order=order,
            owner_id=owner_id,
            search=(search or "").strip() or None,
            limit=limit,
            offset=offset,
        )

    def create_resource(self, fields: dict, actor_id: Optional[int] = None) -> Resource:
        """Validate and store a new resource. Nothing is written if validation fails."""
        self._require_actor(actor_id)
        if "title" not in fields:
            raise ValidationFailed("title is required.", field="title")
        if "body" not in fields:
            raise ValidationFailed("body is required.", field="body")
        resource = Resource(
            title=_clean_title(fields["title"]),
            body=_clean_body(fields["body"]),
            payload=_clean_payload(fields.get("payload")),
            owner_id=actor_id,
        )
        resource_id = self.store.create_resource(resource)
        logger.info("Resource %d created by user_id=%s", resource_id, actor_id)
        return self._load(resource_id, actor_id)

    def get_resource(self, resource_id: int, actor_id: Optional[int] = None) -> Resource:
        return self._load(resource_id, actor_id)

    def update_resource(self, resource_id: int, changes: dict, actor_id: Optional[int] = None) -> Resource:
        """Apply a partial update. Only title, body and payload may change."""
        self._require_actor(actor_id)
        unknown = set(changes) - set(_CLEANERS)
        if unknown:
            raise ValidationFailed(f"Unknown field: {sorted(unknown)[0]}", field=sorted(unknown)[0])
        if not changes:
            raise ValidationFailed("No fields to update.")
        cleaned = {name: _CLEANERS[name](value) for name, value in changes.items()}

        existing = self._load(resource_id, actor_id, hide_foreign=False)
        self._check_owner(existing, actor_id)
        if not self.store.update_resource(resource_id, **cleaned):
            # Deleted between the read and the write
            raise NotFound(f"Resource {resource_id} not found.")
        logger.info("Resource %d updated by user_id=%s (%s)", resource_id, actor_id, ", ".join(sorted(cleaned)))
        return self._load(resource_id, actor_id)

    def delete_resource(self, resource_id: int, actor_id: Optional[int] = None) -> None:
        self._require_actor(actor_id)
        existing = self._load(resource_id, actor_id, hide_foreign=False)
        self._check_owner(existing, actor_id)
        if not self.store.delete_resource(resource_id):
            raise NotFound(f"Resource {resource_id} not found.")
        logger.info("Resource %d deleted by user_id=%s", resource_id, actor_id)

    def _check_owner(self, resource: Resource, actor_id: Optional[int]) -> None:
        if not self._owns(resource, actor_id):
            raise AuthorizationDenied("You do not own this resource.", code="forbidden", status_code=403)
