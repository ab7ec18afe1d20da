"""
api/routes/v1/resources.py -- Resource CRUD routes for the RecipeHub REST API.

Routes:
  GET    /resources                -- list (order, q, limit, offset)
  POST   /resources                -- create; 201
  GET    /resources/{resource_id}  -- read; 404 if absent
  PUT    /resources/{resource_id}  -- partial or full update; 404 if absent
  DELETE /resources/{resource_id}  -- delete; 204, 404 if absent

Auth: the access guard denies unauthenticated requests to /api/v1/resources*
before they reach these handlers (default rules). Handlers still pass the
actor's id to ResourceService, which refuses writes without one when
REQUIRE_IDENTITY_FOR_WRITES is set -- so relaxing the guard rules never opens
the write path by accident.

Error mapping happens in api/main.py: ValidationFailed -> 400,
AuthorizationDenied -> 401/403, NotFound -> 404, StoreUnavailable -> 503.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from api.limiter import limiter
from api.models import ResourceCreate, ResourceOrderEnum, ResourceResponse, ResourceUpdate
from auth.dependencies import try_get_current_user
from auth.models import User
from resources.service import MAX_PAGE_SIZE, ResourceService

router = APIRouter()


def _actor_id(user: Optional[User]) -> Optional[int]:
    return user.id if user is not None else None


# ---------------------------------------------------------------------------
# GET /resources -- list
# ---------------------------------------------------------------------------


@router.get("/resources", response_model=list[ResourceResponse])
@limiter.limit("60/minute")
def list_resources(
    request: Request,
    order: ResourceOrderEnum = ResourceOrderEnum.newest,
    q: Optional[str] = Query(default=None, max_length=200),
    limit: int = Query(default=50, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    user: Optional[User] = Depends(try_get_current_user),
) -> list[ResourceResponse]:
    """Return resources, newest first unless another order is requested."""
    service: ResourceService = request.app.state.resources
    resources = service.list_resources(
        actor_id=_actor_id(user),
        order=order.value,
        search=q,
        limit=limit,
        offset=offset,
    )
    return [ResourceResponse.from_resource(r) for r in resources]


# ---------------------------------------------------------------------------
# POST /resources -- create
# ---------------------------------------------------------------------------


@router.post("/resources", response_model=ResourceResponse, status_code=201)
@limiter.limit("30/minute")
def create_resource(
    request: Request,
    body: ResourceCreate,
    user: Optional[User] = Depends(try_get_current_user),
) -> ResourceResponse:
    """Create a resource owned by the caller."""
    service: ResourceService = request.app.state.resources
    created = service.create_resource(body.model_dump(), actor_id=_actor_id(user))
    return ResourceResponse.from_resource(created)


# ---------------------------------------------------------------------------
# GET /resources/{resource_id} -- read
# ---------------------------------------------------------------------------


@router.get("/resources/{resource_id}", response_model=ResourceResponse)
@limiter.limit("60/minute")
def get_resource(
    request: Request,
    resource_id: int,
    user: Optional[User] = Depends(try_get_current_user),
) -> ResourceResponse:
    service: ResourceService = request.app.state.resources
    return ResourceResponse.from_resource(service.get_resource(resource_id, actor_id=_actor_id(user)))


# ---------------------------------------------------------------------------
# PUT /resources/{resource_id} -- update
# ---------------------------------------------------------------------------


@router.put("/resources/{resource_id}", response_model=ResourceResponse)
@limiter.limit("30/minute")
def update_resource(
    request: Request,
    resource_id: int,
    body: ResourceUpdate,
    user: Optional[User] = Depends(try_get_current_user),
) -> ResourceResponse:
    """Apply the fields present in the body; absent fields keep their values.

    updated_at is refreshed on every successful update.
    """
    service: ResourceService = request.app.state.resources
    changes = body.model_dump(exclude_unset=True)
    updated = service.update_resource(resource_id, changes, actor_id=_actor_id(user))
    return ResourceResponse.from_resource(updated)


# ---------------------------------------------------------------------------
# DELETE /resources/{resource_id} -- delete
# ---------------------------------------------------------------------------


@router.delete("/resources/{resource_id}", status_code=204)
@limiter.limit("30/minute")
def delete_resource(
    request: Request,
    resource_id: int,
    user: Optional[User] = Depends(try_get_current_user),
) -> Response:
    """Delete a resource. A second delete of the same id returns 404."""
    service: ResourceService = request.app.state.resources
    service.delete_resource(resource_id, actor_id=_actor_id(user))
    return Response(status_code=204)
