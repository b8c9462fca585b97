"""Relay server: bridges connected clients and the durable queue."""
from __future__ import annotations

import logging
from typing import Any, Awaitable

import redis.asyncio as aioredis

from share_relay.application.ports.connection import RelayConnection
from share_relay.config import Settings
from share_relay.infrastructure.bus.redis_streams import (
    QueueMessage,
    RedisStreamConsumer,
    RedisStreamPublisher,
    RetryPolicy,
    connect_with_retry,
)
from share_relay.infrastructure.bus.serializer import (
    decode_client_frame,
    decode_queue_payload,
    encode_client_frame,
    encode_relayed,
)
from share_relay.infrastructure.ws.broadcaster import Broadcaster
from share_relay.infrastructure.ws.liveness import LivenessMonitor
from share_relay.infrastructure.ws.protocol import is_pong
from share_relay.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class RelayServer:
    """Composes the queue consumer, registry, broadcaster and liveness monitor.

    Client frames are re-broadcast unwrapped to every connection, sender
    included. Queue messages are wrapped as ``{"source": "realtime", "payload": ...}``
    before broadcast and acknowledged afterwards; any failure rejects them
    without requeue.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self.registry = ConnectionRegistry()
        self.broadcaster = Broadcaster(
            self.registry, send_timeout=settings.WS_SEND_TIMEOUT_SECONDS
        )
        self.monitor = LivenessMonitor(
            self.registry,
            settings.WS_HEARTBEAT_SECONDS,
            ping_timeout=settings.WS_SEND_TIMEOUT_SECONDS,
        )
        self.redis: aioredis.Redis | None = None
        self.consumer: RedisStreamConsumer | None = None
        self.publisher: RedisStreamPublisher | None = None

    @property
    def in_band_ping(self) -> bool:
        return self._settings.WS_KEEPALIVE == "frame"

    @property
    def ready(self) -> bool:
        return (
            self.redis is not None
            and self.consumer is not None
            and self.consumer.running
            and self.monitor.running
        )

    async def start(self) -> None:
        s = self._settings
        policy = RetryPolicy(
            max_retries=s.QUEUE_RETRY_COUNT,
            initial_delay_ms=s.QUEUE_RETRY_DELAY_MS,
            max_delay_ms=s.QUEUE_RETRY_MAX_DELAY_MS,
            jitter_ms=s.QUEUE_RETRY_JITTER_MS,
        )
        self.redis = await connect_with_retry(s.QUEUE_URL, policy)

        self.consumer = RedisStreamConsumer(
            self.redis,
            stream=s.QUEUE_NAME,
            group=s.QUEUE_GROUP,
            consumer=s.QUEUE_CONSUMER,
            callback=self.on_queue_message,
            batch_size=s.QUEUE_BATCH_SIZE,
            block_ms=s.QUEUE_BLOCK_MS,
            error_backoff_seconds=s.QUEUE_ERROR_BACKOFF_SECONDS,
            dead_letter_stream=s.QUEUE_DEAD_LETTER_STREAM,
        )
        await self.consumer.start()
        self.publisher = RedisStreamPublisher(
            self.redis, s.QUEUE_NAME, max_length=s.QUEUE_MAX_LENGTH
        )

        await self.monitor.start()
        logger.info("Relay ready on ws://%s:%d", s.WS_HOST, s.WS_PORT)

    async def stop(self) -> None:
        """Best-effort shutdown; each step runs even if an earlier one failed."""
        await _best_effort("liveness monitor", self.monitor.stop())
        if self.consumer is not None:
            await _best_effort("queue consumer", self.consumer.stop())
        if self.redis is not None:
            await _best_effort("queue connection", self.redis.aclose())
        await _best_effort("client connections", self.registry.close_all())
        logger.info("Relay stopped")

    def on_connect(self, conn: RelayConnection) -> None:
        self.registry.add(conn)
        logger.info("Client %s connected, total=%d", conn.id, len(self.registry))

    def on_disconnect(self, conn: RelayConnection) -> None:
        self.registry.remove(conn)
        logger.info("Client %s disconnected, total=%d", conn.id, len(self.registry))

    async def on_client_message(self, conn: RelayConnection, raw: str | bytes) -> None:
        conn.mark_alive()
        try:
            data = decode_client_frame(raw)
        except ValueError:
            logger.warning("Dropping non-JSON frame from client %s", conn.id)
            return
        if is_pong(data):
            return
        await self.broadcaster.broadcast(encode_client_frame(data))

    async def on_queue_message(self, message: QueueMessage) -> None:
        try:
            payload = decode_queue_payload(message.body)
            logger.info(
                "Queue message %s received (request_id=%s): %s",
                message.message_id, message.request_id, payload,
            )
            await self.broadcaster.broadcast(encode_relayed(payload))
            await message.ack()
        except Exception:
            logger.exception("Error processing queue message %s", message.message_id)
            try:
                await message.nack()
            except Exception:
                logger.exception("Error rejecting queue message %s", message.message_id)


async def _best_effort(label: str, step: Awaitable[Any]) -> None:
    try:
        await step
    except Exception:
        logger.warning("Error closing %s during shutdown", label, exc_info=True)
