"""Owned set of live client connections."""
from __future__ import annotations

import logging
import threading
from typing import Iterator

from share_relay.application.ports.connection import RelayConnection

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Tracks live connections; iteration always walks a snapshot.

    Structural changes take a lock so the accept path, the broadcaster and
    the liveness monitor never observe a half-updated set.
    """

    def __init__(self) -> None:
        self._connections: dict[str, RelayConnection] = {}
        self._lock = threading.Lock()

    def add(self, conn: RelayConnection) -> None:
        with self._lock:
            self._connections[conn.id] = conn

    def remove(self, conn: RelayConnection) -> bool:
        with self._lock:
            current = self._connections.get(conn.id)
            if current is not conn:
                return False
            del self._connections[conn.id]
            return True

    def snapshot(self) -> tuple[RelayConnection, ...]:
        with self._lock:
            return tuple(self._connections.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, conn: object) -> bool:
        conn_id = getattr(conn, "id", None)
        with self._lock:
            return conn_id is not None and self._connections.get(conn_id) is conn

    def __iter__(self) -> Iterator[RelayConnection]:
        return iter(self.snapshot())

    async def close_all(self, code: int = 1001, reason: str = "server shutdown") -> int:
        """Close and drop every registered connection; returns how many were closed."""
        with self._lock:
            conns = tuple(self._connections.values())
            self._connections.clear()
        for conn in conns:
            try:
                await conn.close(code=code, reason=reason)
            except Exception:
                logger.debug("Error closing connection %s", conn.id, exc_info=True)
        return len(conns)
