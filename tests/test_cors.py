"""Tests for src/security/cors.py — origin policy."""

import pytest

from src.security.cors import SIGNALING_PATH, is_origin_allowed, signaling_cors_headers

ALLOW_LIST = [
    "https://portdemy.com",
    "https://portdemy.com/",
    "http://localhost:3000",
    "http://localhost:8080",
]


class TestIsOriginAllowed:

    @pytest.mark.parametrize("origin", [None, ""])
    def test_no_origin_always_allowed(self, origin):
        assert is_origin_allowed(origin, ALLOW_LIST)
        assert is_origin_allowed(origin, [])

    @pytest.mark.parametrize("origin", ALLOW_LIST)
    def test_listed_origins(self, origin):
        assert is_origin_allowed(origin, ALLOW_LIST)

    @pytest.mark.parametrize("origin", [
        "https://evil.example",
        "http://portdemy.com",
        "https://portdemy.com.evil.example",
        "http://localhost:5000",
    ])
    def test_unlisted_origins(self, origin):
        assert not is_origin_allowed(origin, ALLOW_LIST)

    def test_wildcard(self):
        assert is_origin_allowed("https://anything.example", ["*"])


class TestSignaling:

    def test_wildcard_headers(self):
        headers = signaling_cors_headers()
        assert headers["Access-Control-Allow-Origin"] == "*"
        assert "POST" in headers["Access-Control-Allow-Methods"]
        assert "OPTIONS" in headers["Access-Control-Allow-Methods"]

    def test_signaling_path_pattern(self):
        assert SIGNALING_PATH.match("/api/agents/a1/streams/s1/sdp")
        assert SIGNALING_PATH.match("/api/agents/a1/streams/s1/ice")
        assert not SIGNALING_PATH.match("/api/agents/a1/streams")
        assert not SIGNALING_PATH.match("/api/agents/a1/streams/s1/sdp/extra")
