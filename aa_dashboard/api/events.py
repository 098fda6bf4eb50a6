"""
Live event transport: short-poll endpoint and push channel.
"""

from __future__ import annotations

import asyncio
import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect

from aa_dashboard.dependencies import get_app_settings, get_event_hub
from aa_dashboard.schemas import PollResponse, SocketAuthMessage

router = APIRouter(prefix="/events")
logger = logging.getLogger(__name__)

CONNECTED_MESSAGE = "Connected to live event stream."
UNAUTHORIZED_CLOSE_CODE = 4001


@router.get("/poll", response_model=PollResponse)
async def poll_events(
    hub: Annotated[Any, Depends(get_event_hub)],
    token: str | None = Query(None, description="Caller's access token."),
    cursor: int | None = Query(
        None, ge=0, description="Cursor from the previous poll; omit on first attach."
    ),
) -> PollResponse:
    """Return the latest event newer than ``cursor``.

    The first poll (no cursor) only acknowledges the connection, so events
    published before a client attached are never replayed to it.
    """
    if not token:
        raise HTTPException(status_code=HTTPStatus.UNAUTHORIZED, detail="Missing token")

    # A cursor ahead of the hub means the server restarted; treat it as a new attach.
    if cursor is None or cursor > hub.cursor:
        return PollResponse(cursor=hub.cursor, events=[hub.acknowledgement(CONNECTED_MESSAGE)])
    return PollResponse(cursor=hub.cursor, events=hub.latest_since(cursor))


async def _receive_handshake(websocket: WebSocket) -> SocketAuthMessage:
    """Read the first frame and parse it as the auth message. Only text frames are accepted."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000))
    text = message.get("text")
    if text is None:
        raise ValueError("handshake must be sent as a text frame")
    auth = SocketAuthMessage.model_validate_json(text)
    if auth.type != "auth":
        raise ValueError(f"unexpected handshake type {auth.type!r}")
    return auth


@router.websocket("/ws")
async def live_events_socket(
    websocket: WebSocket,
    hub: Annotated[Any, Depends(get_event_hub)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> None:
    """Push channel. The first message must be ``{"type": "auth", "token": ...}``."""
    await websocket.accept()

    try:
        await asyncio.wait_for(
            _receive_handshake(websocket), timeout=settings.events.handshake_timeout_seconds
        )
    except asyncio.TimeoutError:
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE, reason="Authentication timed out")
        return
    except ValueError as exc:
        logger.info("Rejected live connection: %s", exc)
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE, reason="Authentication required")
        return
    except WebSocketDisconnect:
        return

    hub.register(websocket)
    try:
        await websocket.send_json(hub.acknowledgement(CONNECTED_MESSAGE).model_dump(mode="json"))
        while True:
            # Inbound messages after the handshake carry no meaning.
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hub.unregister(websocket)


__all__ = ["router"]
