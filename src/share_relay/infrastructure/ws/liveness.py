"""Periodic ping/pong sweep that evicts unresponsive connections."""
from __future__ import annotations

import asyncio
import logging

from share_relay.application.ports.connection import RelayConnection
from share_relay.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class LivenessMonitor:
    def __init__(
        self,
        registry: ConnectionRegistry,
        interval_seconds: float = 30,
        *,
        ping_timeout: float | None = 5.0,
    ) -> None:
        self._registry = registry
        self._interval = interval_seconds
        self._ping_timeout = ping_timeout
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="ws-liveness-monitor")
        logger.info("Liveness monitor started (interval=%ss)", self._interval)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Liveness monitor stopped")

    async def sweep(self) -> list[RelayConnection]:
        """Run one tick: evict silent connections, ping the rest."""
        evicted: list[RelayConnection] = []
        for conn in self._registry.snapshot():
            if not conn.is_alive:
                await self._evict(conn)
                evicted.append(conn)
                continue
            conn.is_alive = False
            try:
                await asyncio.wait_for(conn.ping(), timeout=self._ping_timeout)
            except asyncio.TimeoutError:
                logger.debug("Ping to %s timed out", conn.id)
                await self._evict(conn)
                evicted.append(conn)
            except Exception:
                logger.debug("Ping to %s failed", conn.id, exc_info=True)
        if evicted:
            logger.info(
                "Evicted %d unresponsive connections, total=%d", len(evicted), len(self._registry)
            )
        return evicted

    async def _evict(self, conn: RelayConnection) -> None:
        self._registry.remove(conn)
        try:
            await asyncio.wait_for(conn.terminate(), timeout=self._ping_timeout)
        except Exception:
            logger.debug("Error terminating %s", conn.id, exc_info=True)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Liveness sweep failed")
