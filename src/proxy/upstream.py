"""HTTP client for the D-ID REST API."""

import json

import httpx

from src.config.settings import get_settings
from src.proxy.models import UpstreamResponse


class UpstreamError(Exception):
    """A D-ID call that failed.

    status_code is the upstream HTTP status, or None for transport errors
    (connection refused, TLS failure, timeout).
    """

    def __init__(self, status_code: int | None, details, response: UpstreamResponse | None = None):
        super().__init__(f"Upstream error {status_code}: {details}")
        self.status_code = status_code
        self.details = details
        self.response = response

    @property
    def relay_status(self) -> int:
        return self.status_code or 500


def decode_body(response: UpstreamResponse):
    """Parse a JSON body, falling back to text for anything else."""
    if not response.content:
        return None
    if response.is_json:
        try:
            return json.loads(response.content)
        except ValueError:
            pass
    return response.text


class DIDClient:
    """Forwards requests to the D-ID API over a shared connection pool."""

    def __init__(self):
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            settings = get_settings()
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(settings.upstream_timeout_seconds),
                verify=settings.upstream_verify_tls,
            )
        return self._client

    async def request(
        self,
        method: str,
        path: str,
        authorization: str,
        *,
        json_body=None,
        content: bytes | None = None,
        content_type: str = "application/json",
        accept: str = "application/json",
        params=None,
        headers: dict | None = None,
    ) -> UpstreamResponse:
        settings = get_settings()
        url = f"{settings.did_api_base.rstrip('/')}{path}"
        request_headers = {
            **(headers or {}),
            "Accept": accept,
            "Authorization": authorization,
        }
        if json_body is not None or content is not None:
            request_headers["Content-Type"] = content_type

        client = await self._get_client()
        try:
            response = await client.request(
                method,
                url,
                json=json_body,
                content=content,
                params=params,
                headers=request_headers,
            )
        except httpx.HTTPError as e:
            raise UpstreamError(None, str(e) or type(e).__name__)

        result = UpstreamResponse(
            status_code=response.status_code,
            content=response.content,
            content_type=response.headers.get("content-type", ""),
        )
        if not response.is_success:
            raise UpstreamError(response.status_code, decode_body(result), result)
        return result

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None


_upstream: DIDClient | None = None


def get_upstream() -> DIDClient:
    global _upstream
    if _upstream is None:
        _upstream = DIDClient()
    return _upstream


async def close_upstream() -> None:
    """Gracefully close the upstream connection pool on shutdown."""
    global _upstream
    if _upstream is not None:
        await _upstream.close()
        _upstream = None
