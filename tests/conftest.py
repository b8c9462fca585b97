"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from share_relay.config import Settings


@dataclass(eq=False)
class FakeConnection:
    """In-memory stand-in for ClientConnection."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    is_alive: bool = True
    open: bool = True
    fail_send: bool = False
    fail_ping: bool = False
    send_delay: float = 0.0
    ping_delay: float = 0.0
    sent: list[str] = field(default_factory=list)
    pings: int = 0
    terminated: bool = False
    closed_with: tuple[int, str] | None = None

    @property
    def is_open(self) -> bool:
        return self.open

    async def send_text(self, data: str) -> None:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.fail_send:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    async def ping(self) -> None:
        if self.ping_delay:
            await asyncio.sleep(self.ping_delay)
        if self.fail_ping:
            raise RuntimeError("socket closed")
        self.pings += 1

    def mark_alive(self) -> None:
        self.is_alive = True

    async def terminate(self) -> None:
        self.terminated = True
        self.open = False

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = (code, reason)
        self.open = False


class FakeRedis:
    """Just enough of redis.asyncio.Redis for streams and consumer groups."""

    def __init__(self) -> None:
        self.streams: dict[str, list[tuple[str, dict[str, str]]]] = {}
        self.groups: dict[tuple[str, str], int] = {}
        self.pending: dict[tuple[str, str, str], list[str]] = {}
        self.acked: list[tuple[str, str, str]] = []
        self.closed = False
        self.fail_xadd = False
        self._seq = 0

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True

    async def xgroup_create(self, name: str, groupname: str, id: str = "$", mkstream: bool = False) -> bool:
        if (name, groupname) in self.groups:
            raise ResponseError("BUSYGROUP Consumer Group name already exists")
        entries = self.streams.setdefault(name, [])
        self.groups[(name, groupname)] = len(entries) if id == "$" else 0
        return True

    async def xadd(self, name: str, fields: dict[str, str], **kwargs: Any) -> str:
        if self.fail_xadd:
            raise RedisConnectionError("Connection refused")
        self._seq += 1
        entry_id = f"{self._seq}-0"
        self.streams.setdefault(name, []).append((entry_id, dict(fields)))
        return entry_id

    async def xreadgroup(
        self,
        groupname: str,
        consumername: str,
        streams: dict[str, str],
        count: int | None = None,
        block: int | None = None,
        **kwargs: Any,
    ) -> list[Any]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + (block or 0) / 1000
        while True:
            result = []
            for name, cursor in streams.items():
                entries = self.streams.get(name, [])
                pending = self.pending.setdefault((name, groupname, consumername), [])
                if cursor != ">":
                    after = _seq_of(cursor)
                    ids = [i for i in pending if _seq_of(i) > after][:count]
                    by_id = dict(entries)
                    result.append([name, [(i, by_id.get(i)) for i in ids]])
                    continue
                key = (name, groupname)
                start = self.groups[key]
                batch = entries[start:start + count] if count else entries[start:]
                if batch:
                    self.groups[key] = start + len(batch)
                    pending.extend(entry_id for entry_id, _ in batch)
                    result.append([name, batch])
            if result or loop.time() >= deadline:
                return result
            await asyncio.sleep(0.01)

    async def xack(self, name: str, groupname: str, *ids: str) -> int:
        for (stream, group, _consumer), pending in self.pending.items():
            if stream == name and group == groupname:
                pending[:] = [i for i in pending if i not in ids]
        self.acked.extend((name, groupname, i) for i in ids)
        return len(ids)


def _seq_of(entry_id: str) -> int:
    return int(entry_id.split("-")[0])


@dataclass
class FakeQueueMessage:
    """Records how the relay settles a delivery."""

    payload: str | None
    message_id: str = "1-0"
    request_id: str | None = None
    fail_ack: bool = False
    acked: bool = False
    nacked: bool = False

    @property
    def body(self) -> str:
        if self.payload is None:
            raise KeyError("payload")
        return self.payload

    async def ack(self) -> None:
        if self.fail_ack:
            raise RedisConnectionError("Connection reset")
        self.acked = True

    async def nack(self) -> None:
        self.nacked = True


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() >= deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def relay_settings() -> Settings:
    return Settings(
        QUEUE_BLOCK_MS=20,
        QUEUE_ERROR_BACKOFF_SECONDS=0.01,
        WS_HEARTBEAT_SECONDS=3600,
        WS_SEND_TIMEOUT_SECONDS=1.0,
    )
