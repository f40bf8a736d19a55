"""D-ID Agent Gateway — FastAPI application entry point.

A backend-for-frontend proxy between the WordPress D-ID agent plugin
and the D-ID API: issues browser client keys, forwards agent, stream,
chat and WebRTC signaling calls, and relays the notification WebSocket.
The server API key stays here and is only used to build upstream
Authorization headers.
"""

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.config.settings import MissingCredentialError, Settings, get_settings, load_settings
from src.logging.audit import (
    generate_request_id,
    get_audit_logger,
    request_id_var,
    setup_logging,
)
from src.proxy import handler, routes
from src.proxy.models import InvalidClientKeyRequest, UpstreamResponse
from src.proxy.notifications import relay_notifications
from src.proxy.routes import RouteSpec
from src.proxy.upstream import UpstreamError, close_upstream
from src.security.cors import cors_middleware, signaling_cors_headers

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks.

    A missing DID_API_KEY aborts startup: the server exits without serving.
    """
    try:
        settings = load_settings()
    except MissingCredentialError as e:
        get_audit_logger().critical(str(e))
        raise
    setup_logging()
    logger = get_audit_logger()
    logger.info(
        "Gateway started",
        extra={"audit_data": {
            "port": settings.port,
            "frontend_origin": settings.frontend_origin,
            "cors_origins": settings.cors_origins_list,
            "did_api_base": settings.did_api_base,
        }},
    )
    if not settings.upstream_verify_tls:
        logger.warning("Upstream TLS certificate verification is DISABLED")
    if settings.client_key_fallback:
        logger.warning("Client key fallback enabled: server API key is sent to browsers when issuance fails")
    yield
    await close_upstream()
    logger.info("Gateway stopped")


app = FastAPI(
    title="D-ID Agent Gateway",
    description="Backend proxy for the D-ID agent WordPress plugin",
    version=VERSION,
    lifespan=lifespan,
)


async def request_id_middleware(request: Request, call_next):
    rid = generate_request_id()
    request_id_var.set(rid)
    response = await call_next(request)
    response.headers["X-Request-Id"] = rid
    return response


# --- Error handlers ---

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code in (404, 405):
        return JSONResponse(
            status_code=404,
            content={"error": "Not found", "message": f"Route {request.url.path} not found"},
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


def _server_error(request: Request, exc: Exception) -> JSONResponse:
    get_audit_logger().error(
        "Server error",
        exc_info=exc,
        extra={"audit_data": {"method": request.method, "path": request.url.path}},
    )
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc)},
    )


async def server_error_middleware(request: Request, call_next):
    """Answer uncaught route errors inside the CORS and request-id layers."""
    try:
        return await call_next(request)
    except Exception as exc:
        return _server_error(request, exc)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    return _server_error(request, exc)


# Registration order: last added runs outermost.
app.middleware("http")(server_error_middleware)
app.middleware("http")(cors_middleware)
app.middleware("http")(request_id_middleware)


# --- Helpers ---

async def _json_body(request: Request) -> dict:
    """Parse a JSON request body; an empty body reads as {}."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")


def _relay(result: UpstreamResponse, headers: dict | None = None) -> Response:
    """Pass an upstream response back to the caller unchanged."""
    return Response(
        content=result.content,
        status_code=result.status_code,
        media_type=result.content_type or None,
        headers=headers,
    )


def _error_envelope(route: RouteSpec, e: UpstreamError, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=e.relay_status,
        content={"error": route.error_summary, "details": e.details},
        headers=headers,
    )


# --- Routes ---

@app.get("/")
async def health():
    return {
        "status": "OK",
        "message": "D-ID Agent Backend is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/api/client-key")
@app.post("/client-key")
async def client_key(request: Request, settings: Settings = Depends(get_settings)):
    """Issue a browser client key.

    Upstream failures are answered with a fallback object that carries the
    server API key, unless CLIENT_KEY_FALLBACK is off.
    """
    body = await _json_body(request)
    if not isinstance(body, dict):
        body = {}
    try:
        result = await handler.issue_client_key(body, settings)
    except InvalidClientKeyRequest as e:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid client key request", "details": str(e)},
        )
    except UpstreamError as e:
        return _error_envelope(routes.CLIENT_KEY, e)
    return JSONResponse(content=result.body, headers={"X-Client-Key-Source": result.source})


@app.get("/api/agents/{agent_id}")
async def get_agent(agent_id: str, settings: Settings = Depends(get_settings)):
    try:
        return _relay(await handler.get_agent(agent_id, settings))
    except UpstreamError as e:
        return _error_envelope(routes.GET_AGENT, e)


@app.post("/api/agents")
async def create_agent(request: Request, settings: Settings = Depends(get_settings)):
    body = await _json_body(request)
    try:
        return _relay(await handler.create_agent(body, settings))
    except UpstreamError as e:
        return _error_envelope(routes.CREATE_AGENT, e)


@app.post("/api/agents/{agent_id}/streams")
async def create_stream(agent_id: str, request: Request, settings: Settings = Depends(get_settings)):
    body = await _json_body(request)
    authorization = request.headers.get("authorization")
    try:
        return _relay(await handler.create_stream(agent_id, body, settings, authorization))
    except UpstreamError as e:
        return _error_envelope(routes.CREATE_STREAM, e)


@app.get("/api/agents/{agent_id}/streams")
async def list_streams(agent_id: str, request: Request, settings: Settings = Depends(get_settings)):
    authorization = request.headers.get("authorization")
    try:
        return _relay(await handler.list_streams(agent_id, settings, authorization))
    except UpstreamError as e:
        return _error_envelope(routes.LIST_STREAMS, e)


@app.post("/api/agents/{agent_id}/chat")
async def create_chat(agent_id: str, request: Request, settings: Settings = Depends(get_settings)):
    body = await _json_body(request)
    authorization = request.headers.get("authorization")
    try:
        return _relay(await handler.create_chat(agent_id, body, settings, authorization))
    except UpstreamError as e:
        return _error_envelope(routes.CREATE_CHAT, e)


# WebRTC signaling: the browser preflights these, so they answer OPTIONS
# themselves and always send a wildcard origin.

@app.options("/api/agents/{agent_id}/streams/{stream_id}/sdp")
@app.options("/api/agents/{agent_id}/streams/{stream_id}/ice")
async def signaling_preflight(agent_id: str, stream_id: str):
    return Response(status_code=200, headers=signaling_cors_headers())


@app.post("/api/agents/{agent_id}/streams/{stream_id}/sdp")
async def exchange_sdp(
    agent_id: str, stream_id: str, request: Request, settings: Settings = Depends(get_settings)
):
    sdp_body = await request.body()
    authorization = request.headers.get("authorization")
    cors_headers = signaling_cors_headers()
    try:
        result = await handler.exchange_sdp(agent_id, stream_id, sdp_body, settings, authorization)
    except UpstreamError as e:
        if e.response is not None:
            return _relay(e.response, headers=cors_headers)
        return Response(
            content=str(e.details),
            status_code=e.relay_status,
            media_type="text/plain",
            headers=cors_headers,
        )
    return Response(
        content=result.content,
        status_code=result.status_code,
        media_type=routes.SDP,
        headers=cors_headers,
    )


@app.post("/api/agents/{agent_id}/streams/{stream_id}/ice")
async def exchange_ice(
    agent_id: str, stream_id: str, request: Request, settings: Settings = Depends(get_settings)
):
    body = await _json_body(request)
    authorization = request.headers.get("authorization")
    cors_headers = signaling_cors_headers()
    try:
        result = await handler.exchange_ice(agent_id, stream_id, body, settings, authorization)
    except UpstreamError as e:
        return _error_envelope(routes.EXCHANGE_ICE, e, headers=cors_headers)
    return _relay(result, headers=cors_headers)


# Catch-all must stay registered after every specific /api/agents route.
@app.api_route(
    "/api/agents/{agent_id}/{sub_path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
)
async def agent_subroute(
    agent_id: str, sub_path: str, request: Request, settings: Settings = Depends(get_settings)
):
    try:
        result = await handler.proxy_agent_subroute(
            agent_id,
            sub_path,
            request.method,
            await request.body(),
            list(request.query_params.multi_items()),
            settings,
            headers=request.headers,
            authorization=request.headers.get("authorization"),
        )
    except UpstreamError as e:
        return _error_envelope(routes.AGENT_SUBROUTE, e)
    if result is None:
        raise HTTPException(status_code=404)
    return _relay(result)


@app.websocket("/api/notifications/{path:path}")
async def notifications(websocket: WebSocket, path: str, settings: Settings = Depends(get_settings)):
    await relay_notifications(websocket, path, settings)
