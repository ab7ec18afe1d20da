"""
core/errors.py -- Typed failure taxonomy shared by every layer.

Stores, services and the auth package raise these; api/main.py owns the single
exception handler that turns them into the JSON error envelope. Each class
carries its own default HTTP status and machine-readable code so callers raise
by meaning, not by status number.

Layer rule: no imports from api/, web/, auth/, resources/, or cache/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for every expected failure in RecipeHub."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.status_code = status_code or self.status_code
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "detail": self.detail}


class AuthenticationFailed(AppError):
    """Bad credentials. Never says whether the identity exists."""

    status_code = 401
    code = "bad_credentials"
    message = "Invalid email or password."


class AuthorizationDenied(AppError):
    """Missing, expired or insufficient session."""

    status_code = 401
    code = "unauthorized"
    message = "Authentication required."


class ValidationFailed(AppError):
    status_code = 400
    code = "validation_failed"
    message = "Request validation failed."

    def __init__(self, message: str | None = None, *, field: str | None = None) -> None:
        super().__init__(message, detail=field)
        self.field = field


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    message = "Resource not found."


class StoreUnavailable(AppError):
    """Backing database unreachable. Retryable by the caller."""

    status_code = 503
    code = "store_unavailable"
    message = "The data store is temporarily unavailable."


class UpstreamUnavailable(AppError):
    """A proxied third-party call failed."""

    status_code = 502
    code = "upstream_unavailable"
    message = "The upstream service is unavailable."
