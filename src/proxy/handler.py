"""Gateway operations: one coroutine per logical D-ID route.

Each operation makes exactly one upstream call (no retries) and either
returns the UpstreamResponse or raises UpstreamError. Client-key issuance
is the exception: upstream failures are converted into a fallback key.
"""

from src.config.settings import Settings
from src.logging.audit import RequestTimer, get_audit_logger
from src.proxy import routes
from src.proxy.models import (
    ClientKeyRequest,
    ClientKeyResult,
    FallbackClientKey,
    IssuedClientKey,
    UpstreamResponse,
)
from src.proxy.routes import RouteSpec, is_signaling_subpath
from src.proxy.upstream import UpstreamError, decode_body, get_upstream
from src.security.auth import resolve_authorization

# Never forwarded on the generic pass-through
DROPPED_HEADERS = frozenset({
    "accept",
    "accept-encoding",
    "authorization",
    "connection",
    "content-length",
    "content-type",
    "cookie",
    "host",
    "keep-alive",
    "origin",
    "referer",
    "transfer-encoding",
    "upgrade",
})


def passthrough_headers(headers) -> dict:
    """Caller headers that are safe to replay upstream."""
    return {k: v for k, v in headers.items() if k.lower() not in DROPPED_HEADERS}


async def forward(
    route: RouteSpec,
    settings: Settings,
    *,
    method: str | None = None,
    authorization: str | None = None,
    json_body=None,
    content: bytes | None = None,
    content_type: str | None = None,
    accept: str | None = None,
    params=None,
    headers: dict | None = None,
    **path_params: str,
) -> UpstreamResponse:
    """Send one request upstream as described by a route table entry."""
    logger = get_audit_logger()
    method = method if route.method == "*" else route.method
    path = route.build_path(**path_params)
    auth_header = resolve_authorization(route.auth, settings.did_api_key, authorization)

    audit = {
        "route": route.name,
        "method": method,
        "upstream_path": path,
        "auth_mode": route.auth.value,
    }
    try:
        with RequestTimer() as timer:
            result = await get_upstream().request(
                method,
                path,
                auth_header,
                json_body=json_body if route.body == "json" else None,
                content=(content or None) if route.body == "raw" else None,
                content_type=content_type or route.content_type,
                accept=accept or route.content_type,
                params=params,
                headers=headers,
            )
    except UpstreamError as e:
        logger.warning(
            route.error_summary,
            extra={"audit_data": {
                **audit,
                "upstream_status": e.status_code,
                "latency_ms": timer.elapsed_ms,
                "details": e.details,
            }},
        )
        raise

    logger.info(
        "Request proxied",
        extra={"audit_data": {
            **audit,
            "upstream_status": result.status_code,
            "latency_ms": timer.elapsed_ms,
        }},
    )
    return result


async def issue_client_key(body: dict | None, settings: Settings) -> ClientKeyResult:
    """Ask D-ID for a browser client key, falling back to the server key."""
    logger = get_audit_logger()
    key_request = ClientKeyRequest.from_body(body, settings.frontend_origin)

    try:
        result = await forward(routes.CLIENT_KEY, settings, json_body=key_request.to_upstream())
    except UpstreamError as e:
        if not settings.client_key_fallback:
            raise
        logger.warning(
            "Client key issuance failed, falling back to server API key",
            extra={"audit_data": {
                "upstream_status": e.status_code,
                "allowed_origins": key_request.allowed,
            }},
        )
        return FallbackClientKey(
            body={
                "client_key": settings.did_api_key,
                "expires_in": 3600,
                "allowed_origins": key_request.allowed,
            },
            reason=str(e),
        )

    return IssuedClientKey(body=decode_body(result))


async def get_agent(agent_id: str, settings: Settings) -> UpstreamResponse:
    return await forward(routes.GET_AGENT, settings, agent_id=agent_id)


async def create_agent(body: dict, settings: Settings) -> UpstreamResponse:
    return await forward(routes.CREATE_AGENT, settings, json_body=body)


async def create_stream(
    agent_id: str, body: dict, settings: Settings, authorization: str | None = None
) -> UpstreamResponse:
    return await forward(
        routes.CREATE_STREAM, settings,
        authorization=authorization, json_body=body, agent_id=agent_id,
    )


async def list_streams(
    agent_id: str, settings: Settings, authorization: str | None = None
) -> UpstreamResponse:
    return await forward(
        routes.LIST_STREAMS, settings, authorization=authorization, agent_id=agent_id,
    )


async def create_chat(
    agent_id: str, body: dict, settings: Settings, authorization: str | None = None
) -> UpstreamResponse:
    return await forward(
        routes.CREATE_CHAT, settings,
        authorization=authorization, json_body=body, agent_id=agent_id,
    )


async def exchange_sdp(
    agent_id: str,
    stream_id: str,
    sdp_body: bytes,
    settings: Settings,
    authorization: str | None = None,
) -> UpstreamResponse:
    """Relay a WebRTC SDP offer/answer. The body is opaque text both ways."""
    return await forward(
        routes.EXCHANGE_SDP, settings,
        authorization=authorization,
        content=sdp_body,
        agent_id=agent_id,
        stream_id=stream_id,
    )


async def exchange_ice(
    agent_id: str,
    stream_id: str,
    candidate_body: dict,
    settings: Settings,
    authorization: str | None = None,
) -> UpstreamResponse:
    return await forward(
        routes.EXCHANGE_ICE, settings,
        authorization=authorization,
        json_body=candidate_body,
        agent_id=agent_id,
        stream_id=stream_id,
    )


async def proxy_agent_subroute(
    agent_id: str,
    sub_path: str,
    method: str,
    body: bytes,
    query,
    settings: Settings,
    *,
    headers=None,
    authorization: str | None = None,
) -> UpstreamResponse | None:
    """Forward any other /agents/{id}/* call.

    Returns None without calling upstream when the sub-path belongs to
    the SDP/ICE routes.
    """
    if is_signaling_subpath(sub_path):
        get_audit_logger().info(
            "Signaling sub-path skipped by pass-through",
            extra={"audit_data": {"agent_id": agent_id, "sub_path": sub_path, "method": method}},
        )
        return None

    headers = headers or {}
    content_type = headers.get("content-type")
    accept = headers.get("accept")
    return await forward(
        routes.AGENT_SUBROUTE, settings,
        method=method,
        authorization=authorization,
        content=body,
        content_type=content_type,
        accept=accept,
        params=query,
        headers=passthrough_headers(headers),
        agent_id=agent_id,
        sub_path=sub_path,
    )
