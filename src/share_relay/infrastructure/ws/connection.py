from __future__ import annotations

import uuid

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from share_relay.infrastructure.ws.protocol import PING_FRAME

# Sent when the liveness monitor evicts an unresponsive client.
LIVENESS_CLOSE_CODE = 4000


class ClientConnection:
    """One accepted WebSocket plus its liveness flag."""

    def __init__(
        self,
        websocket: WebSocket,
        connection_id: str | None = None,
        *,
        in_band_ping: bool = False,
    ) -> None:
        self.id = connection_id or uuid.uuid4().hex
        self.is_alive = True
        self._ws = websocket
        self._in_band_ping = in_band_ping

    def __repr__(self) -> str:
        return f"ClientConnection(id={self.id!r}, alive={self.is_alive})"

    @property
    def is_open(self) -> bool:
        return (
            self._ws.client_state == WebSocketState.CONNECTED
            and self._ws.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        await self._ws.send_text(data)

    async def ping(self) -> None:
        """Check that the client is still there.

        In-band mode sends a JSON ping; any frame back before the next sweep
        marks the client alive. Otherwise the server pings at the protocol
        level and closes sockets that miss a pong, so a socket that is still
        connected counts as alive.
        """
        if self._in_band_ping:
            await self._ws.send_text(PING_FRAME)
        elif self.is_open:
            self.mark_alive()

    def mark_alive(self) -> None:
        self.is_alive = True

    async def terminate(self) -> None:
        await self.close(code=LIVENESS_CLOSE_CODE, reason="liveness timeout")

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self._ws.application_state == WebSocketState.DISCONNECTED:
            return
        await self._ws.close(code=code, reason=reason)
