"""Redis Streams durable queue: connect with backoff, consumer group, publisher."""
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Coroutine

import redis.asyncio as aioredis

from share_relay.application.exceptions import (
    MessageAlreadySettledError,
    QueueUnavailableError,
)
from share_relay.infrastructure.bus.serializer import encode_queue_payload

logger = logging.getLogger(__name__)

PAYLOAD_FIELD = "payload"
REQUEST_ID_FIELD = "request_id"


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 30
    initial_delay_ms: int = 1000
    max_delay_ms: int = 30000
    jitter_ms: int = 300


def backoff_delay_ms(attempt: int, initial_delay_ms: int, max_delay_ms: int) -> int:
    """Delay before the retry that follows failed attempt number ``attempt`` (1-based)."""
    return min(initial_delay_ms * (2 ** (attempt - 1)), max_delay_ms)


def _redis_from_url(url: str) -> aioredis.Redis:
    return aioredis.from_url(url, decode_responses=True, encoding_errors="replace")


async def connect_with_retry(
    url: str,
    policy: RetryPolicy,
    *,
    client_factory: Callable[[str], aioredis.Redis] = _redis_from_url,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> aioredis.Redis:
    """Open a client and PING it, retrying with exponential backoff plus jitter.

    Raises QueueUnavailableError once ``policy.max_retries`` attempts have failed.
    """
    attempt = 0
    while True:
        attempt += 1
        logger.info("Connecting to queue (attempt %d) -> %s", attempt, url)
        client = client_factory(url)
        try:
            await client.ping()
        except Exception as exc:
            logger.warning("Queue connect attempt %d failed: %r", attempt, exc)
            await _discard(client)
            if attempt >= policy.max_retries:
                logger.error("Exceeded %d queue connect attempts, giving up", policy.max_retries)
                raise QueueUnavailableError(
                    f"queue unreachable after {attempt} attempts: {exc}"
                ) from exc
            jitter = random.randrange(policy.jitter_ms) if policy.jitter_ms > 0 else 0
            wait_ms = backoff_delay_ms(attempt, policy.initial_delay_ms, policy.max_delay_ms) + jitter
            logger.info("Waiting %dms before next queue connect attempt", wait_ms)
            await sleep(wait_ms / 1000)
            continue
        logger.info("Connected to queue on attempt %d", attempt)
        return client


async def _discard(client: aioredis.Redis) -> None:
    try:
        await client.aclose()
    except Exception:
        logger.debug("Error closing failed queue client", exc_info=True)


@dataclass
class QueueMessage:
    """One stream entry delivered to this consumer, pending until settled."""

    message_id: str
    fields: dict[str, str]
    _consumer: RedisStreamConsumer = field(repr=False)
    settled: bool = False

    @property
    def body(self) -> str:
        return self.fields[PAYLOAD_FIELD]

    @property
    def request_id(self) -> str | None:
        return self.fields.get(REQUEST_ID_FIELD)

    async def ack(self) -> None:
        self._check_unsettled()
        await self._consumer.ack(self.message_id)
        self.settled = True

    async def nack(self) -> None:
        """Reject the message without requeue; it is dropped for good."""
        self._check_unsettled()
        await self._consumer.reject(self.message_id, self.fields)
        self.settled = True

    def _check_unsettled(self) -> None:
        if self.settled:
            raise MessageAlreadySettledError(f"message {self.message_id} already settled")


OnQueueMessageCallback = Callable[[QueueMessage], Coroutine[Any, Any, None]]


class RedisStreamConsumer:
    """XREADGROUP-based consumer with manual acknowledgement."""

    def __init__(
        self,
        redis: aioredis.Redis,
        stream: str,
        group: str,
        consumer: str,
        callback: OnQueueMessageCallback,
        *,
        batch_size: int = 10,
        block_ms: int = 5000,
        error_backoff_seconds: float = 5.0,
        dead_letter_stream: str | None = None,
    ) -> None:
        self._redis = redis
        self._stream = stream
        self._group = group
        self._consumer = consumer
        self._callback = callback
        self._batch_size = batch_size
        self._block_ms = block_ms
        self._error_backoff_seconds = error_backoff_seconds
        self._dead_letter_stream = dead_letter_stream
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def ensure_group(self) -> None:
        """Declare the durable stream and its consumer group.

        The group starts at the head of the stream so entries published before
        the first relay start are still delivered.
        """
        try:
            await self._redis.xgroup_create(
                self._stream, self._group, id="0", mkstream=True
            )
            logger.info("Created consumer group %s on %s", self._group, self._stream)
        except aioredis.ResponseError as e:
            if "BUSYGROUP" in str(e):
                logger.debug("Consumer group %s already exists", self._group)
            else:
                raise

    async def start(self) -> None:
        await self.ensure_group()
        self._task = asyncio.create_task(self._consume(), name="redis-stream-consumer")
        logger.info("Consuming queue: stream=%s group=%s", self._stream, self._group)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Stream consumer stopped")

    async def ack(self, message_id: str) -> None:
        await self._redis.xack(self._stream, self._group, message_id)

    async def reject(self, message_id: str, fields: dict[str, str]) -> None:
        if self._dead_letter_stream:
            await self._redis.xadd(
                self._dead_letter_stream,
                {**fields, "source_stream": self._stream, "source_id": message_id},
            )
        await self._redis.xack(self._stream, self._group, message_id)

    async def _consume(self) -> None:
        # Start by re-reading this consumer's pending entries ("0"), then switch
        # to new ones (">") once the pending list has been walked.
        cursor = "0"
        while True:
            try:
                entries = await self._redis.xreadgroup(
                    groupname=self._group,
                    consumername=self._consumer,
                    streams={self._stream: cursor},
                    count=self._batch_size,
                    block=None if cursor != ">" else self._block_ms,
                )
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(
                    "Stream consumer error, retrying in %.1fs", self._error_backoff_seconds
                )
                await asyncio.sleep(self._error_backoff_seconds)
                cursor = "0"
                continue

            messages = [m for _stream_name, batch in entries or [] for m in batch]
            if cursor != ">":
                if not messages:
                    cursor = ">"
                    continue
                logger.info("Redelivering %d pending stream messages", len(messages))
                cursor = messages[-1][0]
            for msg_id, fields in messages:
                try:
                    await self._dispatch(QueueMessage(msg_id, fields or {}, self))
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Could not settle stream message %s", msg_id)

    async def _dispatch(self, message: QueueMessage) -> None:
        try:
            await self._callback(message)
        except Exception:
            logger.exception("Unhandled error processing stream message %s", message.message_id)
        if not message.settled:
            logger.warning("Stream message %s left unsettled, rejecting", message.message_id)
            await message.nack()


class RedisStreamPublisher:
    """Implements application.ports.bus.EventPublisher on the same stream."""

    def __init__(self, redis: aioredis.Redis, stream: str, *, max_length: int | None = None) -> None:
        self._redis = redis
        self._stream = stream
        self._max_length = max_length

    async def publish(self, payload: Any, *, request_id: str | None = None) -> str:
        fields = {PAYLOAD_FIELD: encode_queue_payload(payload)}
        if request_id:
            fields[REQUEST_ID_FIELD] = request_id
        try:
            return await self._redis.xadd(
                self._stream, fields, maxlen=self._max_length, approximate=True
            )
        except aioredis.RedisError as exc:
            raise QueueUnavailableError(f"could not publish to {self._stream}: {exc}") from exc
