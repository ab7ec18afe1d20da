"""
api/main.py -- FastAPI application entry point for RecipeHub.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. log_requests          -- method, path, status, latency for every request
  2. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  3. CORSMiddleware        -- adds CORS headers for allowed browser origins
  4. access_guard          -- path-based allow / redirect / deny (auth/guard.py)
  5. SlowAPIMiddleware     -- default limits; per-route limits come from @limiter.limit

Lifespan handles startup (stores, news cache, resource service, access guard,
purge task) and shutdown (cancel purge task, close connections) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.concurrency import run_in_threadpool

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.news import router as news_router
from api.routes.v1.resources import router as resources_router
from auth.guard import AccessGuard, build_guard
from auth.store import UserStore
from cache.store import NewsCache
from core.config import get_settings
from core.errors import AppError, StoreUnavailable
from resources.service import ResourceService
from resources.store import ResourceStore

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("recipehub.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------

_PURGE_INTERVAL_SECONDS = 60 * 60


async def _purge_loop(app: FastAPI) -> None:
    """Purge expired news cache entries and expired sessions every hour.

    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine cleanly. A failed purge is logged
    and retried on the next cycle rather than killing the loop.
    """
    while True:
        await asyncio.sleep(_PURGE_INTERVAL_SECONDS)
        try:
            cache_rows = await run_in_threadpool(app.state.news_cache.purge_expired)
            session_rows = await run_in_threadpool(app.state.user_store.purge_expired_sessions)
        except StoreUnavailable:
            logger.warning("Purge skipped: store unavailable")
            continue
        logger.info("Purged %d cache entries and %d expired sessions", cache_rows, session_rows)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. Process-wide configuration (SECRET_KEY, DATABASE_URL,
    NEWS_API_KEY) was loaded once by get_settings() at import time and is
    injected from here -- nothing below reads the environment again.
    """
    logger.info("RecipeHub API starting up")
    app.state.user_store = UserStore(_settings.database_url)
    if not app.state.user_store.has_users():
        logger.warning("No users exist yet. Create one with: python main.py create-user EMAIL")
    resource_store = ResourceStore(_settings.database_url)
    app.state.resources = ResourceService(
        resource_store,
        require_identity=_settings.require_identity_for_writes,
        owner_scoped=_settings.owner_scoped_resources,
    )
    app.state.news_cache = NewsCache(ttl=_settings.news_cache_ttl_seconds)
    if not _settings.news_api_key:
        logger.warning("NEWS_API_KEY not set -- news endpoints will report the provider as unavailable")
    app.state.guard = build_guard(_settings)
    logger.info("Access guard initialized (%d protected path rules)", len(app.state.guard.rules))
    app.state.purge_task = asyncio.create_task(_purge_loop(app))

    yield

    app.state.purge_task.cancel()
    app.state.news_cache.close()
    resource_store.close()
    app.state.user_store.close()
    logger.info("RecipeHub API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="RecipeHub API",
    description="Recipes and articles CRUD with session-based access control and a news proxy.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() and @app.middleware both wrap the current stack, so the
# last one registered is the outermost. Register innermost first.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


# ---------------------------------------------------------------------------
# Access guard middleware
#
# Runs before routing, so a protected path is decided before any handler or
# dependency executes. It sits inside TrustedHost and CORS: bad Host headers
# never reach the session lookup, and guard denials still carry CORS headers.
# The session lookup is blocking SQL, so it runs in the threadpool instead of
# on the event loop.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def access_guard(request: Request, call_next):
    # CORSMiddleware answers preflights before they get here; any other
    # OPTIONS request carries no credentials to check.
    if request.method == "OPTIONS":
        return await call_next(request)
    guard: AccessGuard = request.app.state.guard
    start = time.perf_counter()
    try:
        decision = await run_in_threadpool(guard.evaluate, request, request.app.state.user_store)
    except StoreUnavailable as exc:
        response = _error_response(exc.status_code, exc.code, exc.message)
        response.headers["Retry-After"] = "5"
        return response
    guard_ms = (time.perf_counter() - start) * 1000

    if decision.response is not None:
        response = decision.response
    else:
        if decision.user is not None:
            request.state.user = decision.user
        response = await call_next(request)
    response.headers["Server-Timing"] = f"guard;dur={guard_ms:.2f}"
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(resources_router, prefix="/api/v1", tags=["Resources"])
app.include_router(news_router, prefix="/api/v1", tags=["News"])
# Web UI router is mounted by asgi.py, not here.
# api/ and web/ are independent layers -- only the top-level asgi.py imports both.


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map the typed error taxonomy (core/errors.py) to its HTTP status and envelope."""
    if exc.status_code >= 500:
        logger.warning("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    response = _error_response(exc.status_code, exc.code, exc.message, exc.detail)
    if isinstance(exc, StoreUnavailable):
        response.headers["Retry-After"] = "5"
    if exc.status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 validation_failed naming the first offending field.

    Malformed input is a client error like any other ValidationFailed, so it
    uses the same status and code rather than FastAPI's default 422.
    """
    errors = exc.errors()
    field = None
    message = "Request validation failed."
    if errors:
        first = errors[0]
        loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or None
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return _error_response(400, "validation_failed", message, field)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Public (no guard rule matches it) and not rate limited -- load balancer
# probes must never be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and database reachability."""
    try:
        request.app.state.user_store.ping()
        database = "ok"
    except StoreUnavailable:
        database = "error"
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=VERSION,
        components={"app": "ok", "database": database},
    )
