from __future__ import annotations

import pytest

from share_relay.infrastructure.ws.registry import ConnectionRegistry
from tests.conftest import FakeConnection


def test_add_remove_and_len():
    registry = ConnectionRegistry()
    c1, c2 = FakeConnection(), FakeConnection()

    registry.add(c1)
    registry.add(c2)
    assert len(registry) == 2
    assert c1 in registry

    assert registry.remove(c1) is True
    assert registry.remove(c1) is False
    assert c1 not in registry
    assert len(registry) == 1


def test_remove_ignores_stale_connection_with_same_id():
    registry = ConnectionRegistry()
    current = FakeConnection(id="abc")
    registry.add(current)

    assert registry.remove(FakeConnection(id="abc")) is False
    assert current in registry


def test_iteration_uses_snapshot():
    registry = ConnectionRegistry()
    conns = [FakeConnection() for _ in range(3)]
    for c in conns:
        registry.add(c)

    seen = []
    for conn in registry:
        seen.append(conn)
        registry.remove(conns[2])
        registry.add(FakeConnection())

    assert seen == conns
    assert conns[2] not in registry
    assert len(registry) == 5


@pytest.mark.asyncio
async def test_close_all_closes_and_clears():
    registry = ConnectionRegistry()
    c1, c2 = FakeConnection(), FakeConnection()
    registry.add(c1)
    registry.add(c2)

    closed = await registry.close_all()

    assert closed == 2
    assert len(registry) == 0
    assert c1.closed_with == (1001, "server shutdown")
    assert c2.closed_with == (1001, "server shutdown")
