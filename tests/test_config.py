"""Unit tests for core/config.py -- Settings validation and defaults.

Settings(...) is constructed directly so each test sees exactly the values it
passes; the cached get_settings() singleton is left alone.
"""

import pytest
from pydantic import ValidationError

from core.config import EnforcementMode, ProtectedPath, Settings

_KEY = "k" * 32


class TestSecretKey:
    def test_debug_mode_generates_key(self):
        settings = Settings(debug=True, secret_key="")
        assert len(settings.secret_key) >= 32

    def test_production_requires_key(self):
        with pytest.raises(ValidationError, match="SECRET_KEY is required"):
            Settings(debug=False, secret_key="")

    def test_short_key_rejected(self):
        with pytest.raises(ValidationError, match="at least 32 characters"):
            Settings(debug=True, secret_key="too-short")

    def test_key_hidden_from_repr(self):
        settings = Settings(debug=False, secret_key=_KEY, news_api_key="provider-secret")
        assert _KEY not in repr(settings)
        assert "provider-secret" not in repr(settings)


class TestDefaults:
    def test_default_protected_paths(self):
        rules = {r.pattern: r.mode for r in Settings(debug=True).protected_paths}
        assert rules["/dashboard*"] == EnforcementMode.redirect
        assert rules["/news*"] == EnforcementMode.redirect
        assert rules["/api/v1/resources*"] == EnforcementMode.deny
        assert rules["/api/v1/news*"] == EnforcementMode.deny
        assert rules["/api/v1/auth/me"] == EnforcementMode.deny

    def test_session_and_policy_defaults(self):
        settings = Settings(debug=True)
        assert settings.session_lifetime_seconds == 24 * 3600
        assert settings.sign_in_path == "/login"
        assert settings.allow_query_token is False
        assert settings.require_identity_for_writes is True
        assert settings.owner_scoped_resources is False

    def test_rules_accept_plain_dicts(self):
        settings = Settings(debug=True, protected_paths=[{"pattern": "/admin*", "mode": "deny"}])
        assert settings.protected_paths == [ProtectedPath(pattern="/admin*", mode=EnforcementMode.deny)]

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValidationError):
            Settings(debug=True, protected_paths=[{"pattern": "/x", "mode": "maybe"}])

    def test_session_lifetime_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(debug=True, session_lifetime_seconds=0)


class TestEnvironment:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SESSION_LIFETIME_SECONDS", "600")
        monkeypatch.setenv("OWNER_SCOPED_RESOURCES", "true")
        settings = Settings(debug=True)
        assert settings.session_lifetime_seconds == 600
        assert settings.owner_scoped_resources is True

    def test_protected_paths_from_json_env(self, monkeypatch):
        monkeypatch.setenv("PROTECTED_PATHS", '[{"pattern": "/private*", "mode": "redirect"}]')
        settings = Settings(debug=True)
        assert [r.pattern for r in settings.protected_paths] == ["/private*"]
