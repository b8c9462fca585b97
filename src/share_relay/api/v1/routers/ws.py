from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket

from share_relay.infrastructure.ws.connection import ClientConnection
from share_relay.services.relay_service import RelayServer

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@router.websocket("/")
@router.websocket("/ws")
async def ws_relay(websocket: WebSocket) -> None:
    relay: RelayServer = websocket.app.state.relay
    await websocket.accept()
    conn = ClientConnection(websocket, in_band_ping=relay.in_band_ping)
    relay.on_connect(conn)
    try:
        await _read_loop(websocket, conn, relay)
    except Exception:
        logger.exception("WS error for %s", conn.id)
    finally:
        relay.on_disconnect(conn)


async def _read_loop(ws: WebSocket, conn: ClientConnection, relay: RelayServer) -> None:
    while True:
        message = await ws.receive()
        if message["type"] == "websocket.disconnect":
            return
        raw = message.get("text")
        if raw is None:
            raw = message.get("bytes") or b""
        await relay.on_client_message(conn, raw)
