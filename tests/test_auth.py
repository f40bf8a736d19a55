"""Tests for src/security/auth.py — upstream Authorization selection."""

import base64

from src.security.auth import (
    AuthMode,
    basic_auth_header,
    caller_authorization,
    resolve_authorization,
)


class TestBasicAuthHeader:

    def test_encodes_whole_key(self):
        assert basic_auth_header("id:secret") == "Basic aWQ6c2VjcmV0"

    def test_round_trips_email_style_key(self):
        header = basic_auth_header("user@example.com:sk-123")
        scheme, encoded = header.split(" ")
        assert scheme == "Basic"
        assert base64.b64decode(encoded).decode() == "user@example.com:sk-123"


class TestCallerAuthorization:

    def test_client_key_scheme(self):
        assert caller_authorization("Client-Key ck_abc") == "Client-Key ck_abc"

    def test_basic_scheme(self):
        assert caller_authorization("Basic Y2tfYWJjOg==") == "Basic Y2tfYWJjOg=="

    def test_scheme_is_case_insensitive(self):
        assert caller_authorization("client-key ck_abc") == "client-key ck_abc"

    def test_bearer_rejected(self):
        assert caller_authorization("Bearer token") is None

    def test_missing_credentials_rejected(self):
        assert caller_authorization("Client-Key ") is None

    def test_none(self):
        assert caller_authorization(None) is None
        assert caller_authorization("") is None


class TestResolveAuthorization:

    def test_server_mode_ignores_caller(self):
        header = resolve_authorization(AuthMode.SERVER, "id:secret", "Client-Key ck_abc")
        assert header == "Basic aWQ6c2VjcmV0"

    def test_caller_mode_passes_client_key_through(self):
        header = resolve_authorization(AuthMode.CALLER_OR_SERVER, "id:secret", "Client-Key ck_abc")
        assert header == "Client-Key ck_abc"

    def test_caller_mode_falls_back_to_server(self):
        header = resolve_authorization(AuthMode.CALLER_OR_SERVER, "id:secret", None)
        assert header == "Basic aWQ6c2VjcmV0"

    def test_caller_mode_ignores_unknown_scheme(self):
        header = resolve_authorization(AuthMode.CALLER_OR_SERVER, "id:secret", "Bearer x")
        assert header == "Basic aWQ6c2VjcmV0"
