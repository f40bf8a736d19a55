"""Route table: how each gateway route maps onto the D-ID API.

One entry per logical route. Handlers look up the entry instead of
repeating the upstream path, auth scheme and error summary inline.
"""

from dataclasses import dataclass

from src.security.auth import AuthMode

JSON = "application/json"
SDP = "application/sdp"


@dataclass(frozen=True)
class RouteSpec:
    name: str
    method: str  # "*" = caller's method
    upstream_path: str  # formatted with agent_id / stream_id / sub_path
    auth: AuthMode
    error_summary: str
    body: str = "json"  # json | raw | none
    content_type: str = JSON

    def build_path(self, **params: str) -> str:
        return self.upstream_path.format(**params)


CLIENT_KEY = RouteSpec(
    name="client_key",
    method="POST",
    upstream_path="/agents/client-key",
    auth=AuthMode.SERVER,
    error_summary="Failed to create client key",
)

GET_AGENT = RouteSpec(
    name="get_agent",
    method="GET",
    upstream_path="/agents/{agent_id}",
    auth=AuthMode.SERVER,
    error_summary="Failed to get agent",
    body="none",
)

CREATE_AGENT = RouteSpec(
    name="create_agent",
    method="POST",
    upstream_path="/agents",
    auth=AuthMode.SERVER,
    error_summary="Failed to create agent",
)

CREATE_STREAM = RouteSpec(
    name="create_stream",
    method="POST",
    upstream_path="/agents/{agent_id}/streams",
    auth=AuthMode.CALLER_OR_SERVER,
    error_summary="Failed to create stream",
)

LIST_STREAMS = RouteSpec(
    name="list_streams",
    method="GET",
    upstream_path="/agents/{agent_id}/streams",
    auth=AuthMode.CALLER_OR_SERVER,
    error_summary="Failed to get streams",
    body="none",
)

CREATE_CHAT = RouteSpec(
    name="create_chat",
    method="POST",
    upstream_path="/agents/{agent_id}/chat",
    auth=AuthMode.CALLER_OR_SERVER,
    error_summary="Failed to create chat",
)

EXCHANGE_SDP = RouteSpec(
    name="exchange_sdp",
    method="POST",
    upstream_path="/agents/{agent_id}/streams/{stream_id}/sdp",
    auth=AuthMode.CALLER_OR_SERVER,
    error_summary="Failed to exchange SDP",
    body="raw",
    content_type=SDP,
)

EXCHANGE_ICE = RouteSpec(
    name="exchange_ice",
    method="POST",
    upstream_path="/agents/{agent_id}/streams/{stream_id}/ice",
    auth=AuthMode.CALLER_OR_SERVER,
    error_summary="Failed to submit ICE candidate",
)

AGENT_SUBROUTE = RouteSpec(
    name="agent_subroute",
    method="*",
    upstream_path="/agents/{agent_id}/{sub_path}",
    auth=AuthMode.CALLER_OR_SERVER,
    error_summary="Failed to proxy agent request",
    body="raw",
)

ROUTES = (
    CLIENT_KEY,
    GET_AGENT,
    CREATE_AGENT,
    CREATE_STREAM,
    LIST_STREAMS,
    CREATE_CHAT,
    EXCHANGE_SDP,
    EXCHANGE_ICE,
    AGENT_SUBROUTE,
)

# Sub-path segments owned by the dedicated signaling routes
SIGNALING_SEGMENTS = frozenset({"sdp", "ice"})


def is_signaling_subpath(sub_path: str) -> bool:
    return any(segment in SIGNALING_SEGMENTS for segment in sub_path.split("/"))
