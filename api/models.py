"""
API request and response models for RecipeHub REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in resources/models.py,
auth/models.py and core/models.py, which own the internal domain
representation. Route handlers map between the two.

Separation of concerns: domain dataclasses = domain truth; api/ models = API contract.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.models import NewsArticle
from resources.models import Resource
from resources.service import BODY_MAX_LENGTH, TITLE_MAX_LENGTH

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ResourceOrderEnum(str, Enum):
    newest = "newest"
    oldest = "oldest"
    title = "title"
    updated = "updated"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    No whitespace stripping here: spaces are significant in a password, and
    the store normalizes the email itself.
    """

    identity: str = Field(min_length=1, max_length=255, description="Email address.")
    secret: str = Field(min_length=1, max_length=128)


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_at: str
    expires_in: int
    email: str


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    email: str


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class ResourceCreate(BaseModel):
    """Request body for POST /api/v1/resources.

    payload carries domain-specific fields (servings, ingredients, source_url)
    the server stores without interpreting.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    body: str = Field(max_length=BODY_MAX_LENGTH)
    payload: dict[str, Any] = Field(default_factory=dict)


class ResourceUpdate(BaseModel):
    """Request body for PUT /api/v1/resources/{id}. Every field is optional.

    Only fields the client actually sent are applied (model_dump(exclude_unset=True)),
    so a partial body leaves the other fields untouched.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    body: Optional[str] = Field(default=None, max_length=BODY_MAX_LENGTH)
    payload: Optional[dict[str, Any]] = None


class ResourceResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    body: str
    owner_id: Optional[int]
    payload: dict[str, Any]
    created_at: str
    updated_at: str

    @classmethod
    def from_resource(cls, resource: Resource) -> "ResourceResponse":
        """Factory Method -- the domain-to-transport mapping lives beside the output model."""
        return cls(
            id=resource.id,
            title=resource.title,
            body=resource.body,
            owner_id=resource.owner_id,
            payload=resource.payload,
            created_at=resource.created_at,
            updated_at=resource.updated_at,
        )


# ---------------------------------------------------------------------------
# News
# ---------------------------------------------------------------------------


class NewsArticleRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    source: str
    description: Optional[str]
    published_at: Optional[str]
    image_url: Optional[str]

    @classmethod
    def from_article(cls, article: NewsArticle) -> "NewsArticleRow":
        return cls(**article.to_dict())


class NewsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    count: int
    articles: list[NewsArticleRow]
