"""WebSocket relay to the D-ID notification channel.

The client SDK opens wss://notifications.d-id.com/...; the WordPress
plugin rewrites that to /api/notifications/... on this gateway. Frames
are pumped in both directions without inspection until either side
closes.
"""

import asyncio
import ssl

import websockets
from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

from src.config.settings import Settings
from src.logging.audit import get_audit_logger
from src.security.auth import caller_authorization
from src.security.cors import is_origin_allowed

POLICY_VIOLATION = 1008
UPSTREAM_UNAVAILABLE = 1011


def build_notifications_url(settings: Settings, path: str, query: str = "") -> str:
    url = f"{settings.did_notifications_url.rstrip('/')}/{path.lstrip('/')}"
    return f"{url}?{query}" if query else url


def connect_kwargs(settings: Settings, headers: dict) -> dict:
    """Keyword arguments for websockets.connect.

    ssl is only set when verification is off; websockets rejects ssl=None
    for wss:// URIs.
    """
    kwargs = {"additional_headers": headers}
    if not settings.upstream_verify_tls:
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        kwargs["ssl"] = context
    return kwargs


async def _client_to_upstream(websocket: WebSocket, upstream) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
        if message.get("text") is not None:
            await upstream.send(message["text"])
        elif message.get("bytes") is not None:
            await upstream.send(message["bytes"])


async def _upstream_to_client(websocket: WebSocket, upstream) -> None:
    try:
        async for message in upstream:
            if isinstance(message, str):
                await websocket.send_text(message)
            else:
                await websocket.send_bytes(message)
    except websockets.ConnectionClosed:
        pass


async def relay_notifications(websocket: WebSocket, path: str, settings: Settings) -> None:
    """Bridge one browser WebSocket to the upstream notification channel."""
    logger = get_audit_logger()
    origin = websocket.headers.get("origin")
    if not is_origin_allowed(origin, settings.cors_origins_list):
        logger.warning(
            "Origin rejected",
            extra={"audit_data": {"origin": origin, "path": websocket.url.path}},
        )
        await websocket.close(code=POLICY_VIOLATION)
        return

    url = build_notifications_url(settings, path, websocket.url.query)
    headers = {}
    authorization = caller_authorization(websocket.headers.get("authorization"))
    if authorization:
        headers["Authorization"] = authorization

    await websocket.accept()
    try:
        async with websockets.connect(url, **connect_kwargs(settings, headers)) as upstream:
            logger.info(
                "Notification relay opened",
                extra={"audit_data": {"upstream_path": f"/{path.lstrip('/')}"}},
            )
            tasks = [
                asyncio.create_task(_client_to_upstream(websocket, upstream)),
                asyncio.create_task(_upstream_to_client(websocket, upstream)),
            ]
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in done:
                task.result()
    except WebSocketDisconnect:
        pass
    except (OSError, websockets.WebSocketException) as e:
        logger.warning(
            "Notification relay failed",
            extra={"audit_data": {"upstream_path": f"/{path.lstrip('/')}", "error": str(e)}},
        )
        await websocket.close(code=UPSTREAM_UNAVAILABLE)
        return

    logger.info("Notification relay closed")
    if websocket.client_state != WebSocketState.DISCONNECTED:
        await websocket.close()
