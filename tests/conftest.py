"""Shared fixtures for the D-ID gateway test suite."""

import httpx
import pytest

import src.proxy.upstream as upstream_mod
from src.config.settings import get_settings
from src.proxy.upstream import DIDClient

TEST_API_KEY = "test-user@example.com:sk-test-secret"

# Env vars that would leak host configuration into the tests
GATEWAY_ENV_VARS = (
    "PORT",
    "HOST",
    "FRONTEND_ORIGIN",
    "CORS_ALLOWED_ORIGINS",
    "DID_API_BASE",
    "DID_NOTIFICATIONS_URL",
    "UPSTREAM_TIMEOUT",
    "UPSTREAM_VERIFY_TLS",
    "CLIENT_KEY_FALLBACK",
    "LOG_LEVEL",
    "AUDIT_LOG_FILE",
)


@pytest.fixture(autouse=True)
def gateway_env(monkeypatch):
    """Every test starts with a known credential and fresh singletons."""
    for var in GATEWAY_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DID_API_KEY", TEST_API_KEY)
    get_settings.cache_clear()
    monkeypatch.setattr(upstream_mod, "_upstream", None)
    yield
    get_settings.cache_clear()


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(FRONTEND_ORIGIN="https://example.com", CLIENT_KEY_FALLBACK="false")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        get_settings.cache_clear()

    yield _override

    get_settings.cache_clear()


class UpstreamRecorder:
    """httpx MockTransport handler that records requests to the fake D-ID API."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responder = lambda request: httpx.Response(200, json={})

    def respond_with(self, *args, **kwargs) -> None:
        self.responder = lambda request: httpx.Response(*args, **kwargs)

    def raise_error(self, exc_type=httpx.ConnectError, message="Connection refused") -> None:
        def _raise(request):
            raise exc_type(message, request=request)
        self.responder = _raise

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def upstream(monkeypatch) -> UpstreamRecorder:
    """Route all D-ID calls to an in-memory mock transport."""
    recorder = UpstreamRecorder()
    client = DIDClient()
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    monkeypatch.setattr(upstream_mod, "_upstream", client)
    return recorder


@pytest.fixture
async def app_client():
    """httpx AsyncClient wired to the FastAPI app via ASGI transport."""
    from src.main import app
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def api_key() -> str:
    """The server credential configured for every test."""
    return TEST_API_KEY
