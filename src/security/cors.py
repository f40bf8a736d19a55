"""Origin allow-list enforcement.

Runs before routing: a browser request from an origin outside the allow
list is rejected here and never reaches the D-ID upstream. Requests with
no Origin header (curl, server-to-server, mobile apps) are always let
through.
"""

import re

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from src.config.settings import get_settings
from src.logging.audit import get_audit_logger

ALLOWED_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization, Accept"

# SDP/ICE routes answer their own preflights with a wildcard origin
SIGNALING_PATH = re.compile(r"^/api/agents/[^/]+/streams/[^/]+/(sdp|ice)/?$")


def is_origin_allowed(origin: str | None, allowed: list[str]) -> bool:
    if not origin:
        return True
    if "*" in allowed:
        return True
    return origin in allowed


def signaling_cors_headers() -> dict[str, str]:
    """Headers for the WebRTC signaling routes (SDP offer/answer, ICE)."""
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
    }


def _is_preflight(request: Request) -> bool:
    return (
        request.method == "OPTIONS"
        and "access-control-request-method" in request.headers
    )


async def cors_middleware(request: Request, call_next):
    """Reject disallowed origins, answer preflights, decorate responses."""
    origin = request.headers.get("origin")
    settings = get_settings()

    if not is_origin_allowed(origin, settings.cors_origins_list):
        get_audit_logger().warning(
            "Origin rejected",
            extra={"audit_data": {
                "origin": origin,
                "method": request.method,
                "path": request.url.path,
            }},
        )
        return JSONResponse(
            status_code=403,
            content={"error": "Not allowed by CORS", "origin": origin},
        )

    if _is_preflight(request) and not SIGNALING_PATH.match(request.url.path):
        response = Response(status_code=200)
    else:
        response = await call_next(request)

    if origin:
        response.headers.setdefault("Access-Control-Allow-Origin", origin)
        if response.headers["Access-Control-Allow-Origin"] != "*":
            response.headers.setdefault("Access-Control-Allow-Credentials", "true")
            response.headers.setdefault("Vary", "Origin")
        response.headers.setdefault("Access-Control-Allow-Methods", ALLOWED_METHODS)
        response.headers.setdefault("Access-Control-Allow-Headers", ALLOWED_HEADERS)
    return response
