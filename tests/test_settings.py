"""Tests for src/config/settings.py — Settings and startup loading."""

import pytest

from src.config.settings import MissingCredentialError, get_settings, load_settings


class TestSettings:

    def test_defaults(self, override_settings, api_key):
        override_settings()
        s = get_settings()
        assert s.did_api_key == api_key
        assert s.port == 3000
        assert s.frontend_origin == "*"
        assert s.did_api_base == "https://api.d-id.com"
        assert s.upstream_verify_tls is True
        assert s.client_key_fallback is True
        assert s.log_level == "INFO"

    def test_default_cors_origins(self, override_settings):
        override_settings()
        assert get_settings().cors_origins_list == [
            "https://portdemy.com",
            "https://portdemy.com/",
            "http://localhost:3000",
            "http://localhost:8080",
        ]

    def test_cors_origins_strips_empty(self, override_settings):
        override_settings(CORS_ALLOWED_ORIGINS="https://a.com, ,https://b.com,")
        assert get_settings().cors_origins_list == ["https://a.com", "https://b.com"]

    def test_env_override(self, override_settings):
        override_settings(
            PORT="8080",
            FRONTEND_ORIGIN="https://portdemy.com",
            UPSTREAM_VERIFY_TLS="false",
            CLIENT_KEY_FALLBACK="false",
        )
        s = get_settings()
        assert s.port == 8080
        assert s.frontend_origin == "https://portdemy.com"
        assert s.upstream_verify_tls is False
        assert s.client_key_fallback is False

    def test_timeout_zero_means_none(self, override_settings):
        override_settings(UPSTREAM_TIMEOUT="0")
        assert get_settings().upstream_timeout_seconds is None

    def test_timeout_seconds(self, override_settings):
        override_settings(UPSTREAM_TIMEOUT="12.5")
        assert get_settings().upstream_timeout_seconds == 12.5


class TestLoadSettings:

    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.delenv("DID_API_KEY")
        get_settings.cache_clear()
        with pytest.raises(MissingCredentialError, match="DID_API_KEY"):
            load_settings()

    def test_empty_key_raises(self, override_settings):
        override_settings(DID_API_KEY="")
        with pytest.raises(MissingCredentialError):
            load_settings()

    def test_returns_settings(self, api_key):
        assert load_settings().did_api_key == api_key
