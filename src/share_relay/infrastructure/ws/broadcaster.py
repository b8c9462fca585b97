"""Fan-out of one serialized message to every registered connection."""
from __future__ import annotations

import asyncio
import logging

from share_relay.application.ports.connection import RelayConnection
from share_relay.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class Broadcaster:
    def __init__(self, registry: ConnectionRegistry, *, send_timeout: float | None = 5.0) -> None:
        self._registry = registry
        self._send_timeout = send_timeout
        # One broadcast at a time keeps per-connection delivery in call order.
        self._lock = asyncio.Lock()

    async def broadcast(self, message: str) -> int:
        """Best-effort send to every open connection; returns the delivery count."""
        delivered = 0
        async with self._lock:
            for conn in self._registry.snapshot():
                if not conn.is_open:
                    continue
                try:
                    await asyncio.wait_for(conn.send_text(message), timeout=self._send_timeout)
                except Exception:
                    logger.debug("Send to %s failed, dropping connection", conn.id, exc_info=True)
                    await self._drop(conn)
                    continue
                delivered += 1
        return delivered

    async def _drop(self, conn: RelayConnection) -> None:
        self._registry.remove(conn)
        try:
            await asyncio.wait_for(conn.terminate(), timeout=self._send_timeout)
        except Exception:
            logger.debug("Error terminating %s", conn.id, exc_info=True)
