"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for RecipeHub happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Complex fields (PROTECTED_PATHS,
      ALLOWED_HOSTS) are parsed from JSON.

  @model_validator(mode="after"): DEBUG-conditional SECRET_KEY logic. Dev mode
      generates a key with a warning, production mode refuses to start
      without one.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. JWT signing relies on
  key entropy -- a short key weakens every session token.

  SECRET_KEY, DATABASE_URL and NEWS_API_KEY are excluded from the Settings
  repr so an accidental log of the settings object cannot leak them.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, resources/, or cache/.
"""

import logging
import secrets
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("recipehub.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'recipehub.db'}"


class EnforcementMode(str, Enum):
    """What the access guard does with an unauthenticated request to a protected path."""

    redirect = "redirect"  # UI pages: 302 to the sign-in page
    deny = "deny"  # API endpoints: 401 JSON


class ProtectedPath(BaseModel):
    """One access guard rule. pattern is an fnmatch glob matched against the URL path."""

    pattern: str
    mode: EnforcementMode = EnforcementMode.deny


_DEFAULT_PROTECTED_PATHS = [
    ProtectedPath(pattern="/dashboard*", mode=EnforcementMode.redirect),
    ProtectedPath(pattern="/news*", mode=EnforcementMode.redirect),
    ProtectedPath(pattern="/api/v1/resources*", mode=EnforcementMode.deny),
    ProtectedPath(pattern="/api/v1/news*", mode=EnforcementMode.deny),
    ProtectedPath(pattern="/api/v1/auth/me", mode=EnforcementMode.deny),
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = Field(default="", repr=False)
    database_url: str = Field(default=_DEFAULT_DB_URL, repr=False)

    # ------------------------------------------------------------------
    # Sessions and access guard
    # ------------------------------------------------------------------

    session_lifetime_seconds: int = Field(default=24 * 3600, gt=0)
    secure_cookies: bool = False
    sign_in_path: str = "/login"
    # "Token gate" variant: also accept ?token=... on protected paths.
    allow_query_token: bool = False
    protected_paths: list[ProtectedPath] = Field(default_factory=lambda: list(_DEFAULT_PROTECTED_PATHS))

    # ------------------------------------------------------------------
    # Resource policy
    # ------------------------------------------------------------------

    require_identity_for_writes: bool = True
    owner_scoped_resources: bool = False

    # ------------------------------------------------------------------
    # Upstream news provider (empty key = provider disabled)
    # ------------------------------------------------------------------

    news_api_key: str = Field(default="", repr=False)
    news_api_url: str = "https://newsapi.org/v2/everything"
    news_page_size: int = Field(default=20, ge=1, le=100)
    news_cache_ttl_seconds: int = 15 * 60

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    login_rate_limit: str = "10/minute"
    allowed_hosts: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1", "*.localhost", "testserver"])
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost", "http://localhost:3000"])

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
